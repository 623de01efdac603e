"""
Pricing Domain Models

Result types of PricingService: per-line prices and the order-level
best-of discount breakdown.
"""
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from ammex.domain.base import DomainModel


class PricedLine(DomainModel):
    item_id: int
    cart_item_id: Optional[int] = None
    name: str
    quantity: int
    base_price: Decimal
    unit_price: Decimal = Field(..., description="Price after product discount, if any")
    product_discount_percent: Decimal = Decimal("0")

    @property
    def base_total(self) -> Decimal:
        return self.base_price * self.quantity

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class DiscountBreakdown(DomainModel):
    """
    applied is one of 'tier', 'product' or 'none'; discounts never stack
    """

    applied: str = "none"
    base_subtotal: Decimal
    product_total: Decimal
    tier_total: Decimal
    chosen_total: Decimal
    savings: Decimal
    tier_name: Optional[str] = None
    tier_percent: Decimal = Decimal("0")

    @property
    def discount_amount(self) -> Decimal:
        return self.base_subtotal - self.chosen_total


class PricedCart(DomainModel):
    lines: List[PricedLine] = Field(default_factory=list)
    discount: DiscountBreakdown
