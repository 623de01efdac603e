"""
Unit tests for PricingService

The best-of rule: the customer pays the cheaper of the product-discount
path and the tier path. Discounts never stack.

Author: Ammex Dev Team
Date: 2025-03-21
"""
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from ammex.domain.catalog import Item, ProductDiscount, Tier
from ammex.domain.pricing import PricedLine
from ammex.services.pricing_service import PricingService, compute_best_of, discounted_price, money


def make_item(**overrides):
    data = dict(id=1, item_code='ACM-TOO-001-X1', item_name='Cordless Drill', vendor='Acme',
                price=Decimal('100.00'), quantity=12, min_level=5)
    data.update(overrides)
    return Item(**data)


def line(base, unit, qty, item_id=1):
    return PricedLine(item_id=item_id, name=f'Item {item_id}', quantity=qty,
                      base_price=Decimal(base), unit_price=Decimal(unit))


class TestDiscountedPrice:

    def test_effective_discount_reduces_price(self):
        discount = ProductDiscount(item_id=1, discount_percentage=Decimal('15'))

        price, pct = discounted_price(Decimal('200.00'), discount)

        assert price == Decimal('170.00')
        assert pct == Decimal('15')

    def test_expired_discount_ignored(self):
        discount = ProductDiscount(item_id=1, discount_percentage=Decimal('15'),
                                   end_date=date(2025, 1, 31))

        price, pct = discounted_price(Decimal('200.00'), discount, on=date(2025, 2, 1))

        assert price == Decimal('200.00')
        assert pct == Decimal('0')

    def test_future_discount_ignored(self):
        discount = ProductDiscount(item_id=1, discount_percentage=Decimal('15'),
                                   start_date=date(2025, 3, 1))

        price, _ = discounted_price(Decimal('200.00'), discount, on=date(2025, 2, 28))

        assert price == Decimal('200.00')

    def test_full_discount_floors_at_zero(self):
        discount = ProductDiscount(item_id=1, discount_percentage=Decimal('100'))

        price, _ = discounted_price(Decimal('49.99'), discount)

        assert price == Decimal('0.00')

    def test_rounds_half_up_to_cents(self):
        discount = ProductDiscount(item_id=1, discount_percentage=Decimal('33'))

        price, _ = discounted_price(Decimal('10.05'), discount)

        assert price == Decimal('6.73')

    def test_no_discount(self):
        assert discounted_price(Decimal('10'), None) == (Decimal('10.00'), Decimal('0'))


class TestComputeBestOf:

    def test_tier_wins_when_cheaper(self):
        tier = Tier(name='Gold', discount_percent=Decimal('20'), min_spend=Decimal('0'), priority=3)

        result = compute_best_of([line('100', '90', 2)], tier)

        assert result.applied == 'tier'
        assert result.base_subtotal == Decimal('200.00')
        assert result.product_total == Decimal('180.00')
        assert result.tier_total == Decimal('160.00')
        assert result.chosen_total == Decimal('160.00')
        assert result.savings == Decimal('20.00')
        assert result.discount_amount == Decimal('40.00')
        assert result.tier_name == 'Gold'

    def test_product_wins_when_cheaper(self):
        tier = Tier(name='Silver', discount_percent=Decimal('5'), min_spend=Decimal('0'))

        result = compute_best_of([line('100', '90', 2)], tier)

        assert result.applied == 'product'
        assert result.chosen_total == Decimal('180.00')
        assert result.savings == Decimal('0.00')

    def test_tie_keeps_product_discount(self):
        tier = Tier(name='Silver', discount_percent=Decimal('10'), min_spend=Decimal('0'))

        result = compute_best_of([line('100', '90', 2)], tier)

        assert result.applied == 'product'
        assert result.chosen_total == Decimal('180.00')

    def test_no_discounts(self):
        result = compute_best_of([line('100', '100', 1), line('25.50', '25.50', 2, item_id=2)])

        assert result.applied == 'none'
        assert result.chosen_total == Decimal('151.00')
        assert result.discount_amount == Decimal('0.00')

    def test_inactive_tier_ignored(self):
        tier = Tier(name='Gold', discount_percent=Decimal('20'), min_spend=Decimal('0'), is_active=False)

        result = compute_best_of([line('100', '100', 1)], tier)

        assert result.applied == 'none'
        assert result.tier_percent == Decimal('0')
        assert result.chosen_total == Decimal('100.00')

    def test_tier_mixed_with_partial_product_discounts(self):
        tier = Tier(name='Gold', discount_percent=Decimal('20'), min_spend=Decimal('0'))
        lines = [line('100', '50', 1), line('100', '100', 1, item_id=2)]

        result = compute_best_of(lines, tier)

        # product path 150 beats tier path 160
        assert result.applied == 'product'
        assert result.chosen_total == Decimal('150.00')


class TestPricingService:

    def test_price_line_uses_item_discount(self):
        item = make_item(discount_percentage=Decimal('10'), discount_active=True)

        priced = PricingService(tier_repo=MagicMock()).price_line(item, 3, cart_item_id=11)

        assert priced.unit_price == Decimal('90.00')
        assert priced.base_price == Decimal('100.00')
        assert priced.cart_item_id == 11
        assert priced.line_total == Decimal('270.00')

    def test_price_line_ignores_inactive_discount(self):
        item = make_item(discount_percentage=Decimal('10'), discount_active=False)

        priced = PricingService(tier_repo=MagicMock()).price_line(item, 1)

        assert priced.unit_price == Decimal('100.00')
        assert priced.product_discount_percent == Decimal('0')

    def test_breakdown_looks_up_customer_tier(self):
        tier_repo = MagicMock()
        tier_repo.find_for_customer.return_value = Tier(
            name='Platinum', discount_percent=Decimal('30'), min_spend=Decimal('100000'))
        conn = MagicMock()

        result = PricingService(tier_repo=tier_repo).breakdown_for_customer(100, [line('10', '10', 1)], conn=conn)

        tier_repo.find_for_customer.assert_called_once_with(100, conn=conn)
        assert result.applied == 'tier'
        assert result.chosen_total == Decimal('7.00')


@pytest.mark.parametrize("value,expected", [
    ('1.005', Decimal('1.01')),
    (2, Decimal('2.00')),
    (Decimal('3.333'), Decimal('3.33')),
])
def test_money(value, expected):
    assert money(value) == expected
