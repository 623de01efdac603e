"""
Unit tests for InvoiceService and PaymentService

Author: Ammex Dev Team
Date: 2025-03-22
"""
from datetime import date, datetime, timedelta
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from ammex.core.exceptions import ConflictError, NotFoundError, PermissionDenied, ValidationFailed
from ammex.domain.invoice import Invoice
from ammex.domain.order import Order, OrderItem
from ammex.domain.payment import Payment
from ammex.services.invoice_service import InvoiceService, derive_invoice_status, payment_terms_days
from ammex.services.payment_service import PaymentService


def make_invoice(total='1000.00', paid='0', remaining=None, customer_id=100, due_in_days=30):
    remaining = remaining if remaining is not None else str(Decimal(total) - Decimal(paid))
    return Invoice(
        id=3, invoice_number='INV-20250301-5555', order_id=7, customer_id=customer_id,
        invoice_date=date.today(), due_date=date.today() + timedelta(days=due_in_days),
        total_amount=Decimal(total), paid_amount=Decimal(paid), remaining_balance=Decimal(remaining),
    )


def make_payment(status='pending_approval', amount='400.00', customer_id=100):
    return Payment(
        id=5, payment_number='PAY-20250302-4321', invoice_id=3, customer_id=customer_id,
        amount=Decimal(amount), payment_method='bank_transfer', status=status,
        invoice_number='INV-20250301-5555',
    )


@pytest.fixture
def mock_transaction():
    conn = MagicMock()
    with patch('ammex.services.payment_service.transaction') as mock_tx:
        mock_tx.return_value.__enter__.return_value = conn
        yield conn


class TestDeriveInvoiceStatus:

    @pytest.mark.parametrize("total,paid,due,expected_status,expected_remaining", [
        ('1000', '0', date(2025, 4, 1), 'awaiting payment', Decimal('1000.00')),
        ('1000', '250', date(2025, 4, 1), 'partially paid', Decimal('750.00')),
        ('1000', '1000', date(2025, 4, 1), 'completed', Decimal('0')),
        ('1000', '1200', date(2025, 4, 1), 'completed', Decimal('0')),
        ('1000', '250', date(2025, 2, 1), 'overdue', Decimal('750.00')),
        ('1000', '1000', date(2025, 2, 1), 'completed', Decimal('0')),
    ])
    def test_status(self, total, paid, due, expected_status, expected_remaining):
        remaining, status = derive_invoice_status(Decimal(total), Decimal(paid), due, today=date(2025, 3, 1))

        assert status == expected_status
        assert remaining == expected_remaining

    @pytest.mark.parametrize("terms,days", [
        ('45 days', 45),
        ('Net 15', 15),
        (None, 30),
        ('on receipt', 30),
    ])
    def test_payment_terms_days(self, terms, days):
        assert payment_terms_days(terms) == days


class TestInvoiceService:

    def _approved_order(self, status='approved'):
        return Order(
            id=7, order_number='ORD-20250301-1234', customer_id=100, status=status,
            total_amount=Decimal('200.00'), discount_amount=Decimal('20.00'), final_amount=Decimal('180.00'),
            payment_terms='15 days',
            items=[OrderItem(item_id=1, item_name='Drill', quantity=2,
                             unit_price=Decimal('90.00'), total_price=Decimal('180.00'))],
        )

    def test_create_from_order(self):
        invoice_repo = MagicMock()
        order_repo = MagicMock()
        order_repo.find_by_id.return_value = self._approved_order()
        invoice_repo.find_by_order_id.return_value = None
        invoice_repo.number_exists.return_value = False

        InvoiceService(invoice_repo=invoice_repo, order_repo=order_repo).create_from_order(7, 2)

        data, items = invoice_repo.create.call_args[0]
        assert data['invoice_number'].startswith('INV-')
        assert data['total_amount'] == Decimal('180.00')
        assert data['status'] == 'awaiting payment'
        assert data['due_date'] == date.today() + timedelta(days=15)
        assert data['created_by'] == 2
        assert items[0].unit_price == Decimal('90.00')

    def test_create_requires_approved_order(self):
        order_repo = MagicMock()
        order_repo.find_by_id.return_value = self._approved_order(status='pending')

        with pytest.raises(ValidationFailed, match="Only approved orders can be invoiced"):
            InvoiceService(invoice_repo=MagicMock(), order_repo=order_repo).create_from_order(7, 2)

    def test_one_invoice_per_order(self):
        invoice_repo = MagicMock()
        order_repo = MagicMock()
        order_repo.find_by_id.return_value = self._approved_order()
        invoice_repo.find_by_order_id.return_value = make_invoice()

        with pytest.raises(ConflictError, match="Invoice already exists for this order"):
            InvoiceService(invoice_repo=invoice_repo, order_repo=order_repo).create_from_order(7, 2)

        invoice_repo.create.assert_not_called()

    def test_apply_payment_updates_balance(self):
        invoice_repo = MagicMock()
        conn = MagicMock()

        invoice = InvoiceService(invoice_repo=invoice_repo, order_repo=MagicMock()).apply_payment(
            make_invoice(), Decimal('400'), conn=conn)

        invoice_repo.update_balance.assert_called_once_with(
            3, Decimal('400.00'), Decimal('600.00'), 'partially paid', conn=conn)
        assert invoice.status == 'partially paid'
        assert invoice.remaining_balance == Decimal('600.00')

    def test_recalculate_marks_overdue(self):
        invoice_repo = MagicMock()
        invoice_repo.find_open.return_value = [make_invoice(paid='100', due_in_days=-1), make_invoice()]

        changed = InvoiceService(invoice_repo=invoice_repo, order_repo=MagicMock()).recalculate_open_invoices()

        assert changed == 1
        invoice_repo.update_balance.assert_called_once_with(3, Decimal('100'), Decimal('900.00'), 'overdue')

    def test_update_status_validates(self):
        with pytest.raises(ValidationFailed):
            InvoiceService(invoice_repo=MagicMock(), order_repo=MagicMock()).update_status(3, 'lost')


class TestPaymentSubmit:

    @pytest.fixture
    def deps(self):
        payment_repo = MagicMock()
        invoice_repo = MagicMock()
        invoice_repo.find_by_id.return_value = make_invoice()
        payment_repo.number_exists.return_value = False
        payment_repo.create.return_value = make_payment()
        return payment_repo, invoice_repo

    @pytest.fixture
    def service(self, deps):
        payment_repo, invoice_repo = deps
        return PaymentService(payment_repo=payment_repo, invoice_repo=invoice_repo,
                              notifications=MagicMock(), tiers=MagicMock())

    def test_submit(self, service, deps, mock_transaction):
        payment_repo, _ = deps

        payment = service.submit(100, 3, Decimal('400'), 'bank_transfer', 10, reference='TRX-1')

        data = payment_repo.create.call_args[0][0]
        assert data['amount'] == Decimal('400.00')
        assert data['payment_number'].startswith('PAY-')
        assert data['reference'] == 'TRX-1'
        payment_repo.add_history.assert_called_once_with(payment, 'submitted', 10, notes=None, conn=mock_transaction)
        service.notifications.notify_staff.assert_called_once()

    def test_other_customers_invoice(self, service, mock_transaction):
        with pytest.raises(PermissionDenied):
            service.submit(200, 3, Decimal('400'), 'cash', 10)

    def test_amount_above_balance(self, service, mock_transaction):
        with pytest.raises(ValidationFailed, match="cannot exceed remaining balance"):
            service.submit(100, 3, Decimal('1000.01'), 'cash', 10)

    def test_fully_paid_invoice(self, service, deps, mock_transaction):
        _, invoice_repo = deps
        invoice_repo.find_by_id.return_value = make_invoice(paid='1000')

        with pytest.raises(ValidationFailed, match="already fully paid"):
            service.submit(100, 3, Decimal('1'), 'cash', 10)

    def test_zero_amount(self, service, mock_transaction):
        with pytest.raises(ValidationFailed, match="greater than 0"):
            service.submit(100, 3, Decimal('0'), 'cash', 10)

    def test_missing_invoice(self, service, deps, mock_transaction):
        _, invoice_repo = deps
        invoice_repo.find_by_id.return_value = None

        with pytest.raises(NotFoundError):
            service.submit(100, 3, Decimal('10'), 'cash', 10)


class TestPaymentReview:

    @pytest.fixture
    def deps(self):
        payment_repo = MagicMock()
        invoice_repo = MagicMock()
        payment_repo.find_by_id.return_value = make_payment()
        invoice_repo.find_by_id.return_value = make_invoice()
        return payment_repo, invoice_repo

    @pytest.fixture
    def service(self, deps):
        payment_repo, invoice_repo = deps
        return PaymentService(payment_repo=payment_repo, invoice_repo=invoice_repo,
                              notifications=MagicMock(), tiers=MagicMock())

    def test_approve_applies_amount_and_checks_tier(self, service, deps, mock_transaction):
        payment_repo, invoice_repo = deps

        service.approve(5, 2)

        payment_repo.mark_approved.assert_called_once_with(5, Decimal('400.00'), 2, conn=mock_transaction)
        invoice_repo.update_balance.assert_called_once_with(
            3, Decimal('400.00'), Decimal('600.00'), 'partially paid', conn=mock_transaction)
        service.tiers.check_and_upgrade_tier.assert_called_once_with(100)
        assert service.notifications.notify_customer.call_args[0][1] == 'payment_approved'

    def test_approve_with_adjusted_amount(self, service, deps, mock_transaction):
        payment_repo, invoice_repo = deps

        service.approve(5, 2, amount=Decimal('1000'))

        payment_repo.mark_approved.assert_called_once_with(5, Decimal('1000.00'), 2, conn=mock_transaction)
        assert invoice_repo.update_balance.call_args[0][3] == 'completed'

    def test_approve_rejects_non_positive_override(self, service, mock_transaction):
        with pytest.raises(ValidationFailed, match="Approved amount must be greater than 0"):
            service.approve(5, 2, amount=Decimal('0'))

    def test_approve_only_pending(self, service, deps, mock_transaction):
        payment_repo, _ = deps
        payment_repo.find_by_id.return_value = make_payment(status='approved')

        with pytest.raises(ValidationFailed, match="Only pending payments can be approved"):
            service.approve(5, 2)

        payment_repo.mark_approved.assert_not_called()
        service.tiers.check_and_upgrade_tier.assert_not_called()

    def test_reject_requires_reason(self, service, mock_transaction):
        with pytest.raises(ValidationFailed, match="Rejection reason is required"):
            service.reject(5, 2, '  ')

    def test_reject(self, service, deps, mock_transaction):
        payment_repo, _ = deps

        service.reject(5, 2, 'Reference not found')

        payment_repo.mark_rejected.assert_called_once_with(5, 'Reference not found', 2, conn=mock_transaction)
        assert service.notifications.notify_customer.call_args[0][1] == 'payment_rejected'

    def test_appeal_only_rejected(self, service):
        with pytest.raises(ValidationFailed, match="Only rejected payments can be appealed"):
            service.appeal(5, 100, 10, 'I sent it twice')

    def test_appeal_notifies_staff(self, service, deps):
        payment_repo, _ = deps
        payment_repo.find_by_id.return_value = make_payment(status='rejected')

        service.appeal(5, 100, 10, 'Bank confirmed the transfer')

        payment_repo.add_history.assert_called_once()
        assert service.notifications.notify_staff.call_args[0][0] == 'payment_appeal'

    def test_appeal_by_other_customer(self, service, deps):
        payment_repo, _ = deps
        payment_repo.find_by_id.return_value = make_payment(status='rejected', customer_id=200)

        with pytest.raises(PermissionDenied):
            service.appeal(5, 100, 10, 'Mine')

    def test_reopen(self, service, deps, mock_transaction):
        payment_repo, _ = deps
        payment_repo.find_by_id.return_value = make_payment(status='rejected')

        service.reopen(5, 2)

        payment_repo.reopen.assert_called_once_with(5, conn=mock_transaction)

    def test_delete_only_rejected(self, service, deps):
        payment_repo, _ = deps

        with pytest.raises(ValidationFailed):
            service.delete(5)

        payment_repo.delete.assert_not_called()

    def test_receipts(self, service, deps):
        payment_repo, _ = deps
        approved = make_payment(status='approved')
        approved.reviewed_at = datetime(2025, 3, 3, 9, 30)
        approved.invoice_total = Decimal('1000.00')
        approved.invoice_remaining = Decimal('600.00')
        payment_repo.approved_for_customer.return_value = [approved]

        receipts = service.receipts(100)

        assert receipts[0]['receiptNumber'] == 'RCPT-20250302-4321'
        assert receipts[0]['remainingBalance'] == 600.0
        assert receipts[0]['paidAt'] == '2025-03-03T09:30:00'
