"""
Payment Service

Client-submitted payments go through staff approval. Approval applies the
amount to the invoice balance; rejection can be appealed by the client and
re-opened by staff.

Author: Ammex Dev Team
Date: 2025-03-12
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ammex.core.database import transaction
from ammex.core.exceptions import NotFoundError, PermissionDenied, ValidationFailed
from ammex.domain.payment import Payment, PAYMENT_PENDING, PAYMENT_REJECTED
from ammex.repositories.invoice_repository import InvoiceRepository
from ammex.repositories.payment_repository import PaymentRepository
from ammex.services.invoice_service import InvoiceService
from ammex.services.notification_service import NotificationService
from ammex.services.numbering import generate_unique_number
from ammex.services.pricing_service import money
from ammex.services.tier_service import TierService

logger = logging.getLogger(__name__)


class PaymentService:

    def __init__(
        self,
        payment_repo: PaymentRepository = None,
        invoice_repo: InvoiceRepository = None,
        invoices: InvoiceService = None,
        notifications: NotificationService = None,
        tiers: TierService = None
    ):
        self.payment_repo = payment_repo or PaymentRepository()
        self.invoice_repo = invoice_repo or InvoiceRepository()
        self.invoices = invoices or InvoiceService(invoice_repo=self.invoice_repo)
        self.notifications = notifications or NotificationService()
        self.tiers = tiers or TierService()

    def get(self, payment_id: int, conn=None, for_update: bool = False) -> Payment:
        payment = self.payment_repo.find_by_id(payment_id, conn=conn, for_update=for_update)
        if not payment:
            raise NotFoundError("Payment not found")
        return payment

    def submit(
        self,
        customer_id: int,
        invoice_id: int,
        amount: Decimal,
        payment_method: str,
        user_id: Optional[int],
        reference: Optional[str] = None,
        notes: Optional[str] = None
    ) -> Payment:
        """
        Record a client payment awaiting staff approval

        Raises:
            PermissionDenied: Invoice belongs to another customer
            ValidationFailed: Invoice fully paid, or amount outside (0, remaining]
        """
        amount = money(amount)

        with transaction() as conn:
            invoice = self.invoice_repo.find_by_id(invoice_id, conn=conn)
            if not invoice:
                raise NotFoundError("Invoice not found")
            if invoice.customer_id != customer_id:
                raise PermissionDenied("Not authorized to pay this invoice")
            if invoice.remaining_balance <= 0:
                raise ValidationFailed("Invoice is already fully paid")
            if amount <= 0:
                raise ValidationFailed("Payment amount must be greater than 0")
            if amount > invoice.remaining_balance:
                raise ValidationFailed(
                    f"Payment amount cannot exceed remaining balance of {invoice.remaining_balance}"
                )

            payment_number = generate_unique_number(
                "PAY", lambda number: self.payment_repo.number_exists(number, conn=conn)
            )
            payment = self.payment_repo.create({
                "payment_number": payment_number,
                "invoice_id": invoice.id,
                "customer_id": customer_id,
                "amount": amount,
                "payment_method": payment_method,
                "reference": reference,
                "notes": notes,
            }, conn=conn)
            self.payment_repo.add_history(payment, "submitted", user_id, notes=notes, conn=conn)

        logger.info(f"Payment {payment.payment_number} of {amount} submitted for invoice {invoice.invoice_number}")
        self._notify_staff(
            "general", "Payment submitted",
            f"{payment.customer_name or 'A customer'} submitted {payment.payment_number} "
            f"for invoice {invoice.invoice_number}",
            payment,
        )
        return payment

    def approve(self, payment_id: int, reviewer_id: int, amount: Optional[Decimal] = None) -> Payment:
        """
        Approve a pending payment, optionally overriding the amount received

        The invoice balance is updated in the same transaction; the tier
        check and customer notification run after commit.
        """
        if amount is not None and Decimal(str(amount)) <= 0:
            raise ValidationFailed("Approved amount must be greater than 0")

        with transaction() as conn:
            payment = self.get(payment_id, conn=conn, for_update=True)
            if payment.status != PAYMENT_PENDING:
                raise ValidationFailed("Only pending payments can be approved")

            approved_amount = money(amount) if amount is not None else payment.amount
            invoice = self.invoice_repo.find_by_id(payment.invoice_id, conn=conn, for_update=True)
            if not invoice:
                raise NotFoundError("Invoice not found")

            self.payment_repo.mark_approved(payment.id, approved_amount, reviewer_id, conn=conn)
            invoice = self.invoices.apply_payment(invoice, approved_amount, conn=conn)
            self.payment_repo.add_history(payment, "approved", reviewer_id, amount=approved_amount, conn=conn)

        logger.info(
            f"Payment {payment.payment_number} approved for {approved_amount}; "
            f"invoice {invoice.invoice_number} now {invoice.status}"
        )

        self.tiers.check_and_upgrade_tier(payment.customer_id)
        self._notify_customer(
            payment, "payment_approved", "Payment approved",
            f"Your payment {payment.payment_number} of {approved_amount} for invoice "
            f"{invoice.invoice_number} was approved. Remaining balance: {invoice.remaining_balance}",
            {"amount": approved_amount, "remainingBalance": invoice.remaining_balance},
        )
        return self.get(payment_id)

    def reject(self, payment_id: int, reviewer_id: int, reason: Optional[str]) -> Payment:
        if not (reason or "").strip():
            raise ValidationFailed("Rejection reason is required")
        reason = reason.strip()

        with transaction() as conn:
            payment = self.get(payment_id, conn=conn, for_update=True)
            if payment.status != PAYMENT_PENDING:
                raise ValidationFailed("Only pending payments can be rejected")
            self.payment_repo.mark_rejected(payment.id, reason, reviewer_id, conn=conn)
            self.payment_repo.add_history(payment, "rejected", reviewer_id, notes=reason, conn=conn)

        logger.info(f"Payment {payment.payment_number} rejected: {reason}")
        self._notify_customer(
            payment, "payment_rejected", "Payment rejected",
            f"Your payment {payment.payment_number} was rejected: {reason}",
            {"rejectionReason": reason},
        )
        return self.get(payment_id)

    def appeal(self, payment_id: int, customer_id: int, user_id: Optional[int], appeal_reason: Optional[str]) -> Payment:
        if not (appeal_reason or "").strip():
            raise ValidationFailed("Appeal reason is required")

        payment = self.get(payment_id)
        if payment.customer_id != customer_id:
            raise PermissionDenied("Not authorized to appeal this payment")
        if payment.status != PAYMENT_REJECTED:
            raise ValidationFailed("Only rejected payments can be appealed")

        self.payment_repo.add_history(payment, "appealed", user_id, notes=appeal_reason.strip())
        self._notify_staff(
            "payment_appeal", "Payment appeal",
            f"{payment.customer_name or 'A customer'} appealed the rejection of {payment.payment_number}: "
            f"{appeal_reason.strip()}",
            payment,
        )
        return payment

    def reopen(self, payment_id: int, reviewer_id: int) -> Payment:
        """Send a rejected payment back to the approval queue"""
        with transaction() as conn:
            payment = self.get(payment_id, conn=conn, for_update=True)
            if payment.status != PAYMENT_REJECTED:
                raise ValidationFailed("Only rejected payments can be re-opened")
            self.payment_repo.reopen(payment.id, conn=conn)
            self.payment_repo.add_history(payment, "reopened", reviewer_id, conn=conn)

        return self.get(payment_id)

    def delete(self, payment_id: int) -> None:
        payment = self.get(payment_id)
        if payment.status != PAYMENT_REJECTED:
            raise ValidationFailed("Only rejected payments can be deleted")
        self.payment_repo.delete(payment_id)

    def receipts(self, customer_id: int, payment_id: Optional[int] = None) -> List[Dict[str, Any]]:
        payments = self.payment_repo.approved_for_customer(customer_id, payment_id)
        return [
            {
                "receiptNumber": payment.payment_number.replace("PAY-", "RCPT-", 1),
                "paymentId": payment.id,
                "paymentNumber": payment.payment_number,
                "invoiceNumber": payment.invoice_number,
                "amount": float(payment.amount),
                "paymentMethod": payment.payment_method,
                "reference": payment.reference,
                "paidAt": payment.reviewed_at.isoformat() if payment.reviewed_at else None,
                "invoiceTotal": float(payment.invoice_total or 0),
                "remainingBalance": float(payment.invoice_remaining or 0),
            }
            for payment in payments
        ]

    def _notify_customer(self, payment: Payment, type: str, title: str, message: str,
                         extra: Dict[str, Any]) -> None:
        try:
            self.notifications.notify_customer(
                payment.customer_id, type, title, message,
                {"paymentId": payment.id, "paymentNumber": payment.payment_number,
                 "invoiceId": payment.invoice_id, **extra},
            )
        except Exception as e:
            logger.error(f"Could not notify customer about payment {payment.payment_number}: {e}")

    def _notify_staff(self, type: str, title: str, message: str, payment: Payment) -> None:
        try:
            self.notifications.notify_staff(
                type, title, message,
                {"paymentId": payment.id, "paymentNumber": payment.payment_number,
                 "invoiceId": payment.invoice_id, "customerId": payment.customer_id},
            )
        except Exception as e:
            logger.error(f"Could not notify staff about payment {payment.payment_number}: {e}")
