"""
Rate limiting for sensitive endpoints
Uses in-memory storage with a sliding window algorithm
"""
import threading
import time
from collections import defaultdict
from typing import Dict, List, Tuple

from fastapi import HTTPException, Request, status

from ammex.core.config import settings


class RateLimiter:
    """
    In-memory rate limiter using sliding window algorithm.

    State lives in the process; with several workers each keeps its own window.
    """

    def __init__(self, cleanup_interval: int = 60):
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._lock = threading.Lock()
        self._last_cleanup = time.time()
        self._cleanup_interval = cleanup_interval

    def _cleanup_old_entries(self, now: float, window_seconds: int) -> None:
        if now - self._last_cleanup < self._cleanup_interval:
            return

        cutoff = now - window_seconds * 2
        for identifier in list(self._requests.keys()):
            self._requests[identifier] = [ts for ts in self._requests[identifier] if ts > cutoff]
            if not self._requests[identifier]:
                del self._requests[identifier]

        self._last_cleanup = now

    def is_allowed(self, identifier: str, max_requests: int, window_seconds: int = 60) -> Tuple[bool, int, int]:
        """
        Check if a request is allowed under the rate limit.

        Returns:
            Tuple of (is_allowed, remaining_requests, retry_after_seconds)
        """
        now = time.time()
        with self._lock:
            self._cleanup_old_entries(now, window_seconds)

            window_start = now - window_seconds
            in_window = [ts for ts in self._requests[identifier] if ts > window_start]
            self._requests[identifier] = in_window

            if len(in_window) >= max_requests:
                retry_after = int(min(in_window) + window_seconds - now) + 1
                return False, 0, retry_after

            in_window.append(now)
            return True, max_requests - len(in_window), 0

    def reset(self) -> None:
        with self._lock:
            self._requests.clear()


# Global rate limiter instance
rate_limiter = RateLimiter()


def get_client_ip(request: Request) -> str:
    """Get the client IP, considering proxies"""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def login_rate_limit(request: Request) -> None:
    """Dependency throttling login attempts per client IP"""
    allowed, _, retry_after = rate_limiter.is_allowed(
        identifier=f"login:{get_client_ip(request)}",
        max_requests=settings.RATE_LIMIT_LOGIN_PER_MINUTE,
        window_seconds=60,
    )
    if not allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many login attempts. Please try again later.",
            headers={"Retry-After": str(retry_after)},
        )
