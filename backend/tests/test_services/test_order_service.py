"""
Unit tests for OrderService status workflow

Author: Ammex Dev Team
Date: 2025-03-22
"""
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from ammex.core.exceptions import NotFoundError, PermissionDenied, ValidationFailed
from ammex.domain.catalog import Item
from ammex.domain.invoice import Invoice
from ammex.domain.order import Order, OrderItem
from ammex.services.order_service import OrderService


def make_order(status='pending', customer_id=100):
    return Order(
        id=7, order_number='ORD-20250301-1234', customer_id=customer_id, status=status,
        total_amount=Decimal('200.00'), discount_amount=Decimal('0'), final_amount=Decimal('200.00'),
        items=[OrderItem(item_id=1, item_name='Drill', quantity=2,
                         unit_price=Decimal('100.00'), total_price=Decimal('200.00'))],
    )


@pytest.fixture
def deps():
    order_repo = MagicMock()
    order_repo.find_by_id.return_value = make_order()
    return {
        'order_repo': order_repo,
        'invoices': MagicMock(),
        'items': MagicMock(),
        'notifications': MagicMock(),
    }


@pytest.fixture
def service(deps):
    return OrderService(**deps)


@pytest.fixture
def mock_transaction():
    conn = MagicMock()
    with patch('ammex.services.order_service.transaction') as mock_tx:
        mock_tx.return_value.__enter__.return_value = conn
        yield conn


class TestUpdateStatus:

    def test_unknown_status(self, service):
        with pytest.raises(ValidationFailed, match="Invalid status"):
            service.update_status(7, 'shipped', 2)

    def test_disallowed_transition(self, service, deps):
        deps['order_repo'].find_by_id.return_value = make_order(status='completed')

        with pytest.raises(ValidationFailed, match="Cannot change order status from completed to approved"):
            service.update_status(7, 'approved', 2)

    def test_reject_requires_reason(self, service):
        with pytest.raises(ValidationFailed, match="Rejection reason is required"):
            service.update_status(7, 'rejected', 2, rejection_reason='   ')

    def test_reject_records_reason_and_notifies(self, service, deps):
        service.update_status(7, 'rejected', 2, rejection_reason=' Credit limit reached ')

        deps['order_repo'].update_status.assert_called_once_with(7, 'rejected', 'Credit limit reached')
        args = deps['notifications'].notify_customer.call_args[0]
        assert args[0] == 100
        assert args[1] == 'order_rejected'
        assert args[4]['rejectionReason'] == 'Credit limit reached'

    def test_rejected_order_can_return_to_pending(self, service, deps):
        deps['order_repo'].find_by_id.return_value = make_order(status='rejected')

        service.update_status(7, 'pending', 2)

        deps['order_repo'].update_status.assert_called_once_with(7, 'pending', None)
        deps['notifications'].notify_customer.assert_not_called()

    def test_approve_takes_stock_and_invoices(self, service, deps, mock_transaction):
        item = Item(id=1, item_code='ACM-TOO-001-X1', item_name='Drill', vendor='Acme', quantity=3, min_level=5)
        deps['items'].decrement_for_order.return_value = [(item, 5)]
        deps['invoices'].create_from_order.return_value = Invoice(
            id=3, invoice_number='INV-20250301-5555', order_id=7, customer_id=100,
            invoice_date=date(2025, 3, 1), due_date=date(2025, 3, 31),
            total_amount=Decimal('200.00'), remaining_balance=Decimal('200.00'),
        )

        service.update_status(7, 'approved', 2)

        order_items = deps['items'].decrement_for_order.call_args[0][0]
        assert order_items[0].quantity == 2
        deps['order_repo'].update_status.assert_called_once_with(7, 'approved', None, conn=mock_transaction)
        deps['invoices'].create_from_order.assert_called_once_with(7, 2, conn=mock_transaction)
        deps['items'].notifications.check_stock_levels.assert_called_once_with(item, 5)
        args = deps['notifications'].notify_customer.call_args[0]
        assert args[1] == 'order_approved'
        assert '2025-03-31' in args[3]

    def test_approve_failure_skips_notifications(self, service, deps, mock_transaction):
        deps['items'].decrement_for_order.side_effect = ValidationFailed("Insufficient stock")

        with pytest.raises(ValidationFailed):
            service.update_status(7, 'approved', 2)

        deps['invoices'].create_from_order.assert_not_called()
        deps['notifications'].notify_customer.assert_not_called()

    def test_notification_errors_are_swallowed(self, service, deps):
        deps['notifications'].notify_customer.side_effect = RuntimeError("boom")

        order = service.update_status(7, 'rejected', 2, rejection_reason='No stock')

        assert order.id == 7


class TestLookupAndCancel:

    def test_get_missing(self, service, deps):
        deps['order_repo'].find_by_id.return_value = None

        with pytest.raises(NotFoundError, match="Order not found"):
            service.get(7)

    def test_reference_by_id(self, service, deps):
        service.get_by_reference('7')

        deps['order_repo'].find_by_id.assert_called_once_with(7)
        deps['order_repo'].find_by_number.assert_not_called()

    def test_reference_by_number(self, service, deps):
        deps['order_repo'].find_by_number.return_value = make_order()

        order = service.get_by_reference('ORD-20250301-1234')

        assert order.id == 7
        deps['order_repo'].find_by_id.assert_not_called()

    def test_cancel_other_customers_order(self, service):
        with pytest.raises(PermissionDenied):
            service.cancel('7', customer_id=200)

    def test_cancel_only_pending(self, service, deps):
        deps['order_repo'].find_by_id.return_value = make_order(status='approved')

        with pytest.raises(ValidationFailed, match="Only pending orders can be cancelled"):
            service.cancel('7', customer_id=100)

    def test_cancel(self, service, deps):
        service.cancel('7', customer_id=100)

        deps['order_repo'].update_status.assert_called_once_with(7, 'cancelled')

    def test_delete_approved_order_blocked(self, service, deps):
        deps['order_repo'].find_by_id.return_value = make_order(status='approved')

        with pytest.raises(ValidationFailed):
            service.delete(7)

        deps['order_repo'].delete.assert_not_called()
