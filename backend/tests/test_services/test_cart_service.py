"""
Unit tests for CartService

Repositories are MagicMocks; the service logic is exercised directly.

Author: Ammex Dev Team
Date: 2025-03-21
"""
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from ammex.core.exceptions import AmmexError, NotFoundError, ProfileIncomplete, ValidationFailed
from ammex.domain.cart import Cart, CartItem
from ammex.domain.catalog import Item
from ammex.domain.customer import Customer
from ammex.services.cart_service import CartService


def make_item(item_id=1, quantity=12, price='100.00', is_active=True):
    return Item(id=item_id, item_code=f'ACM-TOO-00{item_id}-X', item_name=f'Item {item_id}',
                vendor='Acme', price=Decimal(price), quantity=quantity, is_active=is_active)


def make_line(line_id, item_id, quantity, unit_price='100.00'):
    return CartItem(id=line_id, cart_id=5, item_id=item_id, quantity=quantity,
                    unit_price=Decimal(unit_price), customer_id=100)


@pytest.fixture
def repos():
    cart_repo = MagicMock()
    item_repo = MagicMock()
    customer_repo = MagicMock()
    cart_repo.find_active.return_value = Cart(id=5, customer_id=100)
    return cart_repo, item_repo, customer_repo


@pytest.fixture
def service(repos):
    cart_repo, item_repo, customer_repo = repos
    return CartService(cart_repo=cart_repo, item_repo=item_repo, customer_repo=customer_repo)


class TestGetOrCreate:

    def test_returns_existing_cart(self, service, repos):
        cart_repo, _, _ = repos

        cart = service.get_or_create(100)

        assert cart.id == 5
        cart_repo.create.assert_not_called()

    def test_creates_cart_for_known_customer(self, service, repos):
        cart_repo, _, customer_repo = repos
        cart_repo.find_active.return_value = None
        customer_repo.find_by_id.return_value = MagicMock()
        cart_repo.create.return_value = Cart(id=6, customer_id=100)

        cart = service.get_or_create(100)

        assert cart.id == 6
        cart_repo.create.assert_called_once_with(100)

    def test_unknown_customer(self, service, repos):
        cart_repo, _, customer_repo = repos
        cart_repo.find_active.return_value = None
        customer_repo.find_by_id.return_value = None

        with pytest.raises(NotFoundError, match="Customer not found"):
            service.get_or_create(100)


class TestAddItem:

    def test_adds_new_line_with_price_snapshot(self, service, repos):
        cart_repo, item_repo, _ = repos
        item_repo.find_by_id.return_value = make_item()

        service.add_item(100, 1, 2)

        cart_repo.add_item.assert_called_once_with(5, 1, 2, Decimal('100.00'))
        cart_repo.touch.assert_called_once_with(5)

    def test_merges_into_existing_line(self, service, repos):
        cart_repo, item_repo, _ = repos
        cart_repo.find_active.return_value = Cart(id=5, customer_id=100, items=[make_line(9, 1, 3)])
        item_repo.find_by_id.return_value = make_item(price='95.00')

        service.add_item(100, 1, 2)

        cart_repo.update_item.assert_called_once_with(9, 5, unit_price=Decimal('95.00'))
        cart_repo.add_item.assert_not_called()

    def test_rejects_quantity_above_stock(self, service, repos):
        _, item_repo, _ = repos
        item_repo.find_by_id.return_value = make_item(quantity=3)

        with pytest.raises(AmmexError, match="Insufficient stock. Available: 3"):
            service.add_item(100, 1, 4)

    def test_rejects_merge_above_stock(self, service, repos):
        cart_repo, item_repo, _ = repos
        cart_repo.find_active.return_value = Cart(id=5, customer_id=100, items=[make_line(9, 1, 10)])
        item_repo.find_by_id.return_value = make_item(quantity=12)

        with pytest.raises(AmmexError, match="Cannot add 5 more"):
            service.add_item(100, 1, 5)

    @pytest.mark.parametrize("quantity", [0, -1, None])
    def test_rejects_invalid_quantity(self, service, quantity):
        with pytest.raises(ValidationFailed, match="Quantity must be at least 1"):
            service.add_item(100, 1, quantity)

    def test_rejects_archived_item(self, service, repos):
        _, item_repo, _ = repos
        item_repo.find_by_id.return_value = make_item(is_active=False)

        with pytest.raises(NotFoundError, match="Item not found"):
            service.add_item(100, 1, 1)


class TestUpdateAndRemove:

    def test_update_checks_stock(self, service, repos):
        _, item_repo, _ = repos
        item_repo.find_by_id.return_value = make_item(quantity=2)

        with pytest.raises(AmmexError):
            service.update_item(make_line(9, 1, 1), 3)

    def test_update_refreshes_price(self, service, repos):
        cart_repo, item_repo, _ = repos
        item_repo.find_by_id.return_value = make_item(price='80.00')

        service.update_item(make_line(9, 1, 1), 2)

        cart_repo.update_item.assert_called_once_with(9, 2, unit_price=Decimal('80.00'))
        cart_repo.find_active.assert_called_with(100)

    def test_get_line_missing(self, service, repos):
        cart_repo, _, _ = repos
        cart_repo.find_item.return_value = None

        with pytest.raises(NotFoundError, match="Cart item not found"):
            service.get_line(99)

    def test_clear_requires_active_cart(self, service, repos):
        cart_repo, _, _ = repos
        cart_repo.find_active.return_value = None

        with pytest.raises(NotFoundError, match="No active cart found"):
            service.clear(100)

    def test_clear_empties_cart(self, service, repos):
        cart_repo, _, _ = repos
        cart_repo.find_active.return_value = Cart(id=5, customer_id=100, items=[make_line(9, 1, 3)])

        cart = service.clear(100)

        cart_repo.clear.assert_called_once_with(5)
        assert cart.items == []


class TestConvert:

    def test_incomplete_profile_blocks_conversion(self, service, repos):
        _, _, customer_repo = repos
        customer_repo.find_by_id.return_value = Customer(id=100, customer_code='CUST-0100', customer_name='Acme')

        with pytest.raises(ProfileIncomplete) as exc_info:
            service.convert(100)

        assert 'street' in exc_info.value.missing_fields
        assert 'email1' in exc_info.value.missing_fields

    def test_marks_cart_converted(self, service, repos):
        cart_repo, _, customer_repo = repos
        customer_repo.find_by_id.return_value = Customer(
            id=100, customer_code='CUST-0100', customer_name='Acme', street='1 Main St', city='Manila',
            postal_code='1000', country='PH', telephone1='555-0100', email1='buyer@acme.com',
        )

        cart = service.convert(100)

        cart_repo.set_status.assert_called_once_with(5, 'converted')
        assert cart.status == 'converted'


class TestSync:

    def test_clamps_drops_and_removes_stale_lines(self, service, repos):
        cart_repo, item_repo, _ = repos
        cart_repo.find_active.return_value = Cart(
            id=5, customer_id=100,
            items=[make_line(9, 1, 2), make_line(10, 3, 1)],
        )
        item_repo.find_by_ids.return_value = {
            1: make_item(1, quantity=12),
            2: make_item(2, is_active=False),
        }

        result = service.sync(100, [
            {'item_id': 1, 'quantity': 20},
            {'item_id': 2, 'quantity': 1},
            {'item_id': 4, 'quantity': 0},
        ])

        assert result['adjustments'] == [
            {'itemId': 1, 'action': 'clamped', 'requested': 20, 'quantity': 12},
            {'itemId': 2, 'action': 'removed', 'reason': 'unavailable'},
        ]
        cart_repo.update_item.assert_called_once_with(9, 12, unit_price=Decimal('100.00'))
        cart_repo.remove_item.assert_called_once_with(10)
        cart_repo.add_item.assert_not_called()

    def test_adds_new_lines_and_sums_duplicates(self, service, repos):
        cart_repo, item_repo, _ = repos
        item_repo.find_by_ids.return_value = {7: make_item(7, quantity=10, price='5.00')}

        result = service.sync(100, [{'item_id': 7, 'quantity': 2}, {'item_id': '7', 'quantity': 3}])

        cart_repo.add_item.assert_called_once_with(5, 7, 5, Decimal('5.00'))
        assert result['adjustments'] == []

    def test_unchanged_line_not_rewritten(self, service, repos):
        cart_repo, item_repo, _ = repos
        cart_repo.find_active.return_value = Cart(id=5, customer_id=100, items=[make_line(9, 1, 2)])
        item_repo.find_by_ids.return_value = {1: make_item(1)}

        service.sync(100, [{'item_id': 1, 'quantity': 2}])

        cart_repo.update_item.assert_not_called()
        cart_repo.remove_item.assert_not_called()
