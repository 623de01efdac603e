"""
Cart Domain Models

Author: Ammex Dev Team
Date: 2025-03-06
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from ammex.domain.base import DomainModel


class CartItem(DomainModel):
    """
    Cart line with the item details the catalog needs

    unit_price is the snapshot taken when the line was added or last changed;
    checkout always re-prices from the item.
    """

    id: int
    cart_id: int
    item_id: int
    quantity: int = Field(..., ge=1)
    unit_price: Decimal = Field(..., ge=0)
    added_at: Optional[datetime] = None
    customer_id: Optional[int] = None

    # From items JOIN
    item_name: Optional[str] = None
    item_code: Optional[str] = None
    vendor: Optional[str] = None
    price: Optional[Decimal] = None
    available_quantity: Optional[int] = None
    item_active: Optional[bool] = None

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["lineTotal"] = float(self.line_total)
        return data


class Cart(DomainModel):
    id: int
    customer_id: int
    status: str = "active"
    last_updated: Optional[datetime] = None
    created_at: Optional[datetime] = None
    items: List[CartItem] = Field(default_factory=list)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def subtotal(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal("0"))

    def find_line(self, item_id: int) -> Optional[CartItem]:
        for line in self.items:
            if line.item_id == item_id:
                return line
        return None

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["items"] = [item.to_dict() for item in self.items]
        data["itemCount"] = self.item_count
        data["subtotal"] = float(self.subtotal)
        return data
