"""
Background notification polling
"""
import logging
import threading
from typing import Any, Callable, Dict, Optional

from ammex.client.api_client import ApiClient, ApiError

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 30


class NotificationPoller:
    """
    Polls GET /notifications and calls back when the unread count changes

    Usage:
        poller = NotificationPoller(client, on_change)
        poller.start()
        ...
        poller.stop()
    """

    def __init__(
        self,
        client: ApiClient,
        callback: Callable[[Dict[str, Any]], None],
        interval: float = POLL_INTERVAL_SECONDS
    ):
        self.client = client
        self.callback = callback
        self.interval = interval
        self.last_unread: Optional[int] = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def poll_once(self) -> bool:
        """Fetch once; True when the callback fired"""
        try:
            body = self.client.notifications()
        except ApiError as e:
            logger.warning(f"Notification poll failed: {e.message}")
            return False

        unread = (body or {}).get("unreadCount", 0)
        if unread == self.last_unread:
            return False

        self.last_unread = unread
        try:
            self.callback(body)
        except Exception as e:
            logger.error(f"Notification callback raised: {e}")
        return True

    def _run(self) -> None:
        while not self._stop.is_set():
            self.poll_once()
            self._stop.wait(self.interval)

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="notification-poller", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None
