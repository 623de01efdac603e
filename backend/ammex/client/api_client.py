"""
HTTP client for the Ammex API

Used by desktop/CLI front ends and by CartSync. Wraps httpx with the
bearer token, the JSON envelope and a small retry policy: 4xx responses
are raised immediately, network errors, timeouts and 5xx responses are
retried with a linearly growing delay.

Author: Ammex Dev Team
Date: 2025-03-18
"""
import logging
import os
import time
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import httpx

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:5000/api"


class ApiError(Exception):
    """Non-2xx response or transport failure"""

    def __init__(self, message: str, status: Optional[int] = None, errors: Optional[List[Any]] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.errors = errors or []

    @property
    def is_client_error(self) -> bool:
        return self.status is not None and 400 <= self.status < 500


class TokenStore:
    """
    Holds the bearer token, in memory or in a file

    A file-backed store keeps the session across restarts.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path) if path else None
        self._token: Optional[str] = None
        if self.path and self.path.exists():
            self._token = self.path.read_text(encoding="utf-8").strip() or None

    def get(self) -> Optional[str]:
        return self._token

    def set(self, token: Optional[str]) -> None:
        self._token = token
        if self.path:
            if token:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self.path.write_text(token, encoding="utf-8")
            elif self.path.exists():
                self.path.unlink()

    def clear(self) -> None:
        self.set(None)


def resolve_base_url(base_url: Optional[str] = None) -> str:
    """Explicit value, then AMMEX_API_BASE_URL, then the local default"""
    url = (base_url or os.getenv("AMMEX_API_BASE_URL") or DEFAULT_BASE_URL).strip().rstrip("/")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Invalid API base URL: {url}")
    return url


class ApiClient:

    def __init__(
        self,
        base_url: Optional[str] = None,
        token_store: Optional[TokenStore] = None,
        timeout: float = 30.0,
        retries: int = 2,
        retry_delay: float = 1.0,
        transport: Optional[httpx.BaseTransport] = None,
        sleep=time.sleep
    ):
        self.base_url = resolve_base_url(base_url)
        self.token_store = token_store or TokenStore()
        self.retries = retries
        self.retry_delay = retry_delay
        self._sleep = sleep
        self._http = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = self.token_store.get()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    @staticmethod
    def _error_from(response: httpx.Response) -> ApiError:
        message = f"HTTP error! status: {response.status_code}"
        errors = None
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("message") or message
            errors = body.get("errors")
        return ApiError(message, response.status_code, errors)

    def call(self, method: str, endpoint: str, json: Any = None, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Perform a request and return the decoded JSON body

        Raises:
            ApiError: On a 4xx response, or once retries are exhausted
        """
        path = endpoint if endpoint.startswith("/") else f"/{endpoint}"
        last_error: Optional[ApiError] = None

        for attempt in range(self.retries + 1):
            try:
                response = self._http.request(method, path, json=json, params=params, headers=self._headers())
                if response.is_success:
                    return response.json() if response.content else None
                last_error = self._error_from(response)
            except httpx.HTTPError as e:
                last_error = ApiError(f"Network error: {e}")

            logger.warning(
                f"{method} {path} failed (attempt {attempt + 1}/{self.retries + 1}): {last_error.message}"
            )
            if last_error.is_client_error:
                raise last_error
            if attempt < self.retries:
                self._sleep(self.retry_delay * (attempt + 1))

        raise last_error

    def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.call("GET", endpoint, params=params)

    def post(self, endpoint: str, json: Any = None) -> Any:
        return self.call("POST", endpoint, json=json)

    def put(self, endpoint: str, json: Any = None) -> Any:
        return self.call("PUT", endpoint, json=json)

    def patch(self, endpoint: str, json: Any = None) -> Any:
        return self.call("PATCH", endpoint, json=json)

    def delete(self, endpoint: str) -> Any:
        return self.call("DELETE", endpoint)

    def health(self) -> bool:
        try:
            body = self.get("/health")
        except ApiError as e:
            logger.warning(f"Health check failed: {e.message}")
            return False
        return bool(body and body.get("status") == "healthy")

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def login(self, email: str, password: str) -> Dict[str, Any]:
        body = self.post("/auth/login", {"email": email.strip(), "password": password})
        self.token_store.set(body.get("token"))
        return body.get("user")

    def logout(self) -> None:
        self.token_store.clear()

    def me(self) -> Dict[str, Any]:
        return self.get("/auth/me")["data"]

    # ------------------------------------------------------------------
    # Catalog and cart
    # ------------------------------------------------------------------

    def products(self, search: Optional[str] = None, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        params = {"page": page, "limit": limit}
        if search:
            params["search"] = search
        return self.get("/products/", params)

    def get_cart(self, customer_id: int) -> Dict[str, Any]:
        return self.get(f"/cart/{customer_id}")["data"]

    def add_to_cart(self, customer_id: int, item_id: int, quantity: int = 1) -> Dict[str, Any]:
        return self.post(f"/cart/{customer_id}/items", {"itemId": item_id, "quantity": quantity})["data"]

    def update_cart_item(self, cart_item_id: int, quantity: int) -> Dict[str, Any]:
        return self.put(f"/cart/items/{cart_item_id}", {"quantity": quantity})["data"]

    def remove_cart_item(self, cart_item_id: int) -> Dict[str, Any]:
        return self.delete(f"/cart/items/{cart_item_id}")

    def clear_cart(self, customer_id: int) -> Dict[str, Any]:
        return self.delete(f"/cart/{customer_id}/clear")

    def sync_cart(self, customer_id: int, items: List[Dict[str, Any]]) -> Dict[str, Any]:
        return self.put(f"/cart/{customer_id}/sync", {"items": items})

    # ------------------------------------------------------------------
    # Checkout, orders, invoices, payments
    # ------------------------------------------------------------------

    def preview_checkout(self, customer_id: int, cart_item_ids: Optional[List[int]] = None) -> Dict[str, Any]:
        return self.post(f"/checkout/{customer_id}/preview", {"cartItemIds": cart_item_ids})["data"]

    def confirm_checkout(
        self,
        customer_id: int,
        cart_item_ids: Optional[List[int]] = None,
        notes: Optional[str] = None
    ) -> Dict[str, Any]:
        return self.post(
            f"/checkout/{customer_id}/confirm", {"cartItemIds": cart_item_ids, "notes": notes}
        )

    def my_orders(self, status: Optional[str] = None) -> Dict[str, Any]:
        return self.get("/orders/my", {"status": status} if status else None)

    def cancel_order(self, reference: str) -> Dict[str, Any]:
        return self.patch(f"/orders/{reference}/cancel")

    def my_invoices(self, status: Optional[str] = None) -> Dict[str, Any]:
        return self.get("/invoices/my", {"status": status} if status else None)

    def submit_payment(
        self,
        invoice_id: int,
        amount: float,
        payment_method: str,
        reference: Optional[str] = None,
        notes: Optional[str] = None
    ) -> Dict[str, Any]:
        return self.post("/payments/submit", {
            "invoiceId": invoice_id,
            "amount": amount,
            "paymentMethod": payment_method,
            "reference": reference,
            "notes": notes,
        })

    def my_payments(self) -> Dict[str, Any]:
        return self.get("/payments/my")

    def my_receipts(self) -> List[Dict[str, Any]]:
        return self.get("/payments/receipts/my")["data"]

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def notifications(self, unread_only: bool = False) -> Dict[str, Any]:
        return self.get("/notifications/", {"unreadOnly": "true" if unread_only else "false"})

    def mark_notification_read(self, notification_id: int) -> Dict[str, Any]:
        return self.patch(f"/notifications/{notification_id}/read")

    def mark_all_notifications_read(self) -> Dict[str, Any]:
        return self.patch("/notifications/read-all")
