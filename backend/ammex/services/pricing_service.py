"""
Pricing Service

Authoritative pricing for checkout: product discounts per line and the
order-level best-of rule between product discounts and the customer tier.
Discounts never stack.

Author: Ammex Dev Team
Date: 2025-03-08
"""
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Tuple

from ammex.domain.catalog import Item, ProductDiscount, Tier
from ammex.domain.pricing import DiscountBreakdown, PricedLine
from ammex.repositories.tier_repository import TierRepository

CENT = Decimal("0.01")
ZERO = Decimal("0")


def money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def discounted_price(
    price: Decimal,
    discount: Optional[ProductDiscount],
    on: Optional[date] = None
) -> Tuple[Decimal, Decimal]:
    """
    Unit price after an effective product discount, floored at 0

    Returns:
        Tuple of (unit price, applied percentage)
    """
    price = Decimal(str(price))
    if discount is None or not discount.is_effective(on):
        return money(price), ZERO

    pct = Decimal(str(discount.discount_percentage))
    reduced = price - price * pct / Decimal("100")
    return money(max(ZERO, reduced)), pct


def compute_best_of(lines: Iterable[PricedLine], tier: Optional[Tier] = None) -> DiscountBreakdown:
    """
    Pick the cheaper of the product-discount path and the tier path

    base subtotal  = sum(base price x qty)
    product path   = sum(discounted or base price x qty)
    tier path      = base subtotal less tier %, floored at 0
    """
    lines = list(lines)
    base_subtotal = money(sum((line.base_total for line in lines), ZERO))
    product_total = money(sum((line.line_total for line in lines), ZERO))

    tier_percent = Decimal(str(tier.discount_percent)) if tier and tier.is_active else ZERO
    tier_percent = max(ZERO, tier_percent)
    tier_total = money(max(ZERO, base_subtotal - base_subtotal * tier_percent / Decimal("100")))

    applied = "none"
    chosen_total = product_total
    if tier_total < product_total:
        applied = "tier" if tier_percent > 0 else "none"
        chosen_total = tier_total
    elif product_total < base_subtotal:
        applied = "product"

    return DiscountBreakdown(
        applied=applied,
        base_subtotal=base_subtotal,
        product_total=product_total,
        tier_total=tier_total,
        chosen_total=chosen_total,
        savings=max(ZERO, product_total - chosen_total),
        tier_name=tier.name if tier else None,
        tier_percent=tier_percent,
    )


class PricingService:
    """
    Prices a selection of items for a customer
    """

    def __init__(self, tier_repo: TierRepository = None):
        self.tier_repo = tier_repo or TierRepository()

    def price_line(self, item: Item, quantity: int, cart_item_id: Optional[int] = None,
                   on: Optional[date] = None) -> PricedLine:
        unit_price, pct = discounted_price(item.price, item.discount, on)
        return PricedLine(
            item_id=item.id,
            cart_item_id=cart_item_id,
            name=item.item_name,
            quantity=quantity,
            base_price=money(item.price),
            unit_price=unit_price,
            product_discount_percent=pct,
        )

    def breakdown_for_customer(self, customer_id: int, lines: List[PricedLine], conn=None) -> DiscountBreakdown:
        tier = self.tier_repo.find_for_customer(customer_id, conn=conn)
        return compute_best_of(lines, tier)
