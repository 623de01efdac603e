"""
Client-side cart cache with debounced server sync

The cart lives in a local JSON file so it survives restarts and works
before login. Every mutation writes the file immediately and schedules
one PUT /cart/{customerId}/sync; edits made within the debounce window
are coalesced into a single request.

Author: Ammex Dev Team
Date: 2025-03-18
"""
import json
import logging
import os
import threading
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from ammex.client.api_client import ApiClient, ApiError

logger = logging.getLogger(__name__)

DEBOUNCE_SECONDS = 0.5
PREVENT_SYNC_SECONDS = 5.0


def _line(item_id: int, quantity: int, price=None, name: Optional[str] = None) -> Dict[str, Any]:
    return {"itemId": int(item_id), "quantity": int(quantity), "price": price, "name": name}


def merge_carts(local: List[Dict[str, Any]], server: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Reconcile a guest cart with the server cart by item id

    Union of both; when an item is in both the larger quantity wins. Prices
    always come from the server.
    """
    merged: Dict[int, Dict[str, Any]] = {}
    for line in local:
        merged[int(line["itemId"])] = dict(line)

    for line in server:
        item_id = int(line["itemId"])
        price = line.get("unitPrice", line.get("price"))
        name = line.get("itemName") or line.get("name")
        existing = merged.get(item_id)
        if existing:
            existing["quantity"] = max(int(existing["quantity"]), int(line["quantity"]))
            existing["price"] = price
            existing["name"] = name or existing.get("name")
        else:
            merged[item_id] = _line(item_id, line["quantity"], price, name)

    return list(merged.values())


class CartSync:

    def __init__(
        self,
        client: ApiClient,
        customer_id: int,
        cache_dir: str,
        debounce: float = DEBOUNCE_SECONDS,
        clock=time.monotonic
    ):
        self.client = client
        self.customer_id = customer_id
        self.debounce = debounce
        self._clock = clock
        self._lock = threading.RLock()
        self._timer: Optional[threading.Timer] = None
        self._blocked_until = 0.0
        self._version = 0

        self.path = Path(cache_dir) / f"cart_{customer_id}.json"
        self.backup_path = self.path.with_suffix(".json.bak")
        self.items: List[Dict[str, Any]] = self.load()

    # ------------------------------------------------------------------
    # Local cache
    # ------------------------------------------------------------------

    @staticmethod
    def _read(path: Path) -> List[Dict[str, Any]]:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError("cart cache is not a list")
        return data

    def load(self) -> List[Dict[str, Any]]:
        """Main file, then the backup, then an empty cart"""
        for path in (self.path, self.backup_path):
            if not path.exists():
                continue
            try:
                return self._read(path)
            except (OSError, ValueError) as e:
                logger.warning(f"Ignoring unreadable cart cache {path}: {e}")
        return []

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self.items, f)

        # Keep the previous good copy before replacing it
        if self.path.exists():
            try:
                self._read(self.path)
                os.replace(self.path, self.backup_path)
            except (OSError, ValueError):
                pass
        os.replace(tmp_path, self.path)

    def _find(self, item_id: int) -> Optional[Dict[str, Any]]:
        for line in self.items:
            if int(line["itemId"]) == int(item_id):
                return line
        return None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, item_id: int, quantity: int = 1, price=None, name: Optional[str] = None) -> None:
        if quantity < 1:
            raise ValueError("Quantity must be at least 1")
        with self._lock:
            line = self._find(item_id)
            if line:
                line["quantity"] = int(line["quantity"]) + quantity
                if price is not None:
                    line["price"] = price
            else:
                self.items.append(_line(item_id, quantity, price, name))
            self.save()
            self._version += 1
        self.schedule_sync()

    def update(self, item_id: int, quantity: int) -> None:
        """Set a line quantity; zero or less removes it"""
        if quantity <= 0:
            self.remove(item_id)
            return
        with self._lock:
            line = self._find(item_id)
            if not line:
                raise KeyError(item_id)
            line["quantity"] = int(quantity)
            self.save()
            self._version += 1
        self.schedule_sync()

    def remove(self, item_id: int) -> None:
        with self._lock:
            self.items = [line for line in self.items if int(line["itemId"]) != int(item_id)]
            self.save()
            self._version += 1
        self.schedule_sync()

    def clear(self) -> None:
        with self._lock:
            self.items = []
            self.save()
            self._version += 1
        self.schedule_sync()

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    @property
    def sync_prevented(self) -> bool:
        return self._clock() < self._blocked_until

    @property
    def has_pending_sync(self) -> bool:
        return self._timer is not None

    def prevent_sync(self, seconds: float = PREVENT_SYNC_SECONDS) -> None:
        """Suppress pushes for a while, e.g. right after checkout"""
        with self._lock:
            self._blocked_until = self._clock() + seconds
            self._cancel_timer()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def schedule_sync(self) -> None:
        with self._lock:
            if self.sync_prevented:
                logger.debug(f"Cart sync for customer {self.customer_id} suppressed")
                return
            self._cancel_timer()
            self._timer = threading.Timer(self.debounce, self._run_scheduled)
            self._timer.daemon = True
            self._timer.start()

    def _run_scheduled(self) -> None:
        with self._lock:
            self._timer = None
            if self.sync_prevented:
                return
        self.push()

    def push(self) -> bool:
        """Send the cached cart to the server; the cache is kept on failure"""
        with self._lock:
            payload = [{"itemId": line["itemId"], "quantity": line["quantity"]} for line in self.items]
            version = self._version

        try:
            body = self.client.sync_cart(self.customer_id, payload)
        except ApiError as e:
            logger.error(f"Cart sync failed for customer {self.customer_id}: {e.message}")
            return False

        adjustments = (body or {}).get("adjustments") or []
        server_items = ((body or {}).get("data") or {}).get("items")
        if server_items is not None:
            with self._lock:
                if self._version != version:
                    # Edited while the request was in flight; the pending sync carries it
                    logger.debug(f"Keeping newer local cart for customer {self.customer_id}")
                    return True
                self.items = [
                    _line(line["itemId"], line["quantity"], line.get("unitPrice"), line.get("itemName"))
                    for line in server_items
                ]
                self.save()
        if adjustments:
            logger.info(f"Server adjusted {len(adjustments)} cart line(s) for customer {self.customer_id}")
        return True

    def flush(self) -> bool:
        """Run a pending sync now"""
        with self._lock:
            pending = self._timer is not None
            self._cancel_timer()
        if not pending or self.sync_prevented:
            return False
        return self.push()

    def merge_on_login(self, server_items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        with self._lock:
            self.items = merge_carts(self.items, server_items)
            self._version += 1
            self.save()
            self._cancel_timer()
            prevented = self.sync_prevented
        if not prevented:
            self.push()
        return self.items

    def close(self) -> None:
        with self._lock:
            self._cancel_timer()
