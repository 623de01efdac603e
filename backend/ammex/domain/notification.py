"""
Notification Domain Model
"""
import json
from datetime import datetime
from typing import Any, Dict, Optional

from ammex.domain.base import DomainModel

AUDIENCE_CUSTOMER = "customer"
AUDIENCE_STAFF = "staff"

STOCK_TYPES = ("stock_low", "stock_high")


class Notification(DomainModel):
    id: int
    customer_id: Optional[int] = None
    audience: str = AUDIENCE_CUSTOMER
    type: str
    title: str
    message: str
    data: Optional[Any] = None
    is_read: bool = False
    created_at: Optional[datetime] = None

    @property
    def payload(self) -> Dict[str, Any]:
        if isinstance(self.data, str):
            try:
                return json.loads(self.data)
            except ValueError:
                return {}
        return self.data or {}

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["data"] = self.payload
        return data
