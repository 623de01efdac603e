"""
Order Domain Models

Represents customer orders placed through checkout.

Author: Ammex Dev Team
Date: 2025-03-06
"""
import json
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from ammex.domain.base import DomainModel

ORDER_STATUSES = ("pending", "approved", "rejected", "cancelled", "completed")

# Allowed status changes; anything else is rejected
ORDER_TRANSITIONS = {
    "pending": {"approved", "rejected", "cancelled"},
    "rejected": {"pending"},
    "approved": {"completed"},
    "cancelled": set(),
    "completed": set(),
}


class OrderItem(DomainModel):
    id: Optional[int] = None
    order_id: Optional[int] = None
    item_id: int
    item_name: Optional[str] = None
    item_code: Optional[str] = None
    quantity: int = Field(..., ge=1)
    unit_price: Decimal = Field(..., ge=0)
    total_price: Decimal = Field(..., ge=0)


class Order(DomainModel):
    """
    Order domain model

    total_amount is the undiscounted subtotal, final_amount what the
    customer owes after the single chosen discount (see PricingService).
    """

    id: int
    order_number: str
    customer_id: int
    user_id: Optional[int] = None
    status: str = "pending"

    total_amount: Decimal
    discount_amount: Decimal = Decimal("0")
    final_amount: Decimal
    applied_discount: Optional[str] = "none"

    shipping_address: Optional[str] = None
    billing_address: Optional[str] = None
    notes: Optional[str] = None
    payment_terms: Optional[str] = None
    rejection_reason: Optional[str] = None

    order_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # From customers JOIN
    customer_name: Optional[str] = None
    customer_code: Optional[str] = None
    has_invoice: Optional[bool] = None

    items: List[OrderItem] = Field(default_factory=list)

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in ORDER_TRANSITIONS.get(self.status, set())

    @property
    def items_total(self) -> Decimal:
        return sum((item.total_price for item in self.items), Decimal("0"))

    def to_dict(self) -> dict:
        data = super().to_dict()
        for key in ("shippingAddress", "billingAddress"):
            if data.get(key):
                try:
                    data[key] = json.loads(data[key])
                except (TypeError, ValueError):
                    pass
        return data

    def to_client_dict(self) -> dict:
        """Shape used by the client order history screens"""
        return {
            "id": self.id,
            "orderNumber": self.order_number,
            "orderDate": self.order_date.isoformat() if self.order_date else None,
            "status": self.status,
            "totalAmount": float(self.total_amount),
            "discountAmount": float(self.discount_amount),
            "finalAmount": float(self.final_amount),
            "appliedDiscount": self.applied_discount,
            "paymentTerms": self.payment_terms,
            "rejectionReason": self.rejection_reason,
            "items": [
                {
                    "itemId": item.item_id,
                    "name": item.item_name,
                    "quantity": item.quantity,
                    "price": float(item.unit_price),
                    "total": float(item.total_price),
                }
                for item in self.items
            ],
        }
