"""
Invoice Service

Invoices are created from approved orders and carry the running balance
that payment approvals reduce.

Author: Ammex Dev Team
Date: 2025-03-10
"""
import logging
import re
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional, Tuple

from ammex.core.config import settings
from ammex.core.exceptions import ConflictError, NotFoundError, ValidationFailed
from ammex.domain.invoice import (
    Invoice, InvoiceItem, INVOICE_STATUSES,
    STATUS_AWAITING, STATUS_COMPLETED, STATUS_OVERDUE, STATUS_PARTIAL,
)
from ammex.repositories.invoice_repository import InvoiceRepository
from ammex.repositories.order_repository import OrderRepository
from ammex.services.numbering import generate_unique_number
from ammex.services.pricing_service import money

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def payment_terms_days(terms: Optional[str]) -> int:
    """Number of days in a "30 days" style term, default when unparseable"""
    match = re.search(r"(\d+)", terms or "")
    return int(match.group(1)) if match else settings.DEFAULT_PAYMENT_TERMS_DAYS


def derive_invoice_status(
    total: Decimal,
    paid: Decimal,
    due_date: date,
    today: Optional[date] = None
) -> Tuple[Decimal, str]:
    """
    Balance and status for an invoice

    Returns:
        Tuple of (remaining balance, status)
    """
    today = today or date.today()
    remaining = max(ZERO, money(Decimal(str(total)) - Decimal(str(paid))))

    if remaining <= 0:
        return remaining, STATUS_COMPLETED
    if due_date < today:
        return remaining, STATUS_OVERDUE
    if Decimal(str(paid)) > 0:
        return remaining, STATUS_PARTIAL
    return remaining, STATUS_AWAITING


class InvoiceService:

    def __init__(self, invoice_repo: InvoiceRepository = None, order_repo: OrderRepository = None):
        self.invoice_repo = invoice_repo or InvoiceRepository()
        self.order_repo = order_repo or OrderRepository()

    def get(self, invoice_id: int) -> Invoice:
        invoice = self.invoice_repo.find_by_id(invoice_id)
        if not invoice:
            raise NotFoundError("Invoice not found")
        return invoice

    def create_from_order(
        self,
        order_id: int,
        user_id: Optional[int],
        payment_terms: Optional[str] = None,
        notes: Optional[str] = None,
        conn=None
    ) -> Invoice:
        order = self.order_repo.find_by_id(order_id, conn=conn)
        if not order:
            raise NotFoundError("Order not found")
        if order.status != "approved":
            raise ValidationFailed("Only approved orders can be invoiced")
        if self.invoice_repo.find_by_order_id(order_id, conn=conn):
            raise ConflictError("Invoice already exists for this order")

        terms = payment_terms or order.payment_terms or settings.default_payment_terms
        invoice_date = date.today()
        invoice_number = generate_unique_number(
            "INV", lambda number: self.invoice_repo.number_exists(number, conn=conn)
        )

        items = [
            InvoiceItem(
                item_id=line.item_id,
                item_name=line.item_name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                total_price=line.total_price,
            )
            for line in order.items
        ]

        invoice = self.invoice_repo.create({
            "invoice_number": invoice_number,
            "order_id": order.id,
            "customer_id": order.customer_id,
            "invoice_date": invoice_date,
            "due_date": invoice_date + timedelta(days=payment_terms_days(terms)),
            "total_amount": order.final_amount,
            "status": STATUS_AWAITING,
            "payment_terms": terms,
            "notes": notes,
            "created_by": user_id,
        }, items, conn=conn)

        logger.info(f"Invoice {invoice.invoice_number} created for order {order.order_number}")
        return invoice

    def apply_payment(self, invoice: Invoice, amount: Decimal, conn=None) -> Invoice:
        """Add an approved amount to the invoice and re-derive its status"""
        paid = money(Decimal(str(invoice.paid_amount)) + Decimal(str(amount)))
        remaining, status = derive_invoice_status(invoice.total_amount, paid, invoice.due_date)
        self.invoice_repo.update_balance(invoice.id, paid, remaining, status, conn=conn)

        invoice.paid_amount = paid
        invoice.remaining_balance = remaining
        invoice.status = status
        return invoice

    def recalculate_status(self, invoice: Invoice) -> Invoice:
        """Persist corrected balance/status only when they differ from the stored ones"""
        remaining, status = derive_invoice_status(invoice.total_amount, invoice.paid_amount, invoice.due_date)
        if remaining != invoice.remaining_balance or status != invoice.status:
            self.invoice_repo.update_balance(invoice.id, invoice.paid_amount, remaining, status)
            logger.info(f"Invoice {invoice.invoice_number} recalculated: {invoice.status} -> {status}")
            invoice.remaining_balance = remaining
            invoice.status = status
        return invoice

    def recalculate_open_invoices(self) -> int:
        changed = 0
        for invoice in self.invoice_repo.find_open():
            before = invoice.status
            if self.recalculate_status(invoice).status != before:
                changed += 1
        return changed

    def update_status(self, invoice_id: int, status: str) -> Invoice:
        if status not in INVOICE_STATUSES:
            raise ValidationFailed(f"Invalid status. Allowed: {', '.join(INVOICE_STATUSES)}")
        self.get(invoice_id)
        self.invoice_repo.update_status(invoice_id, status)
        return self.get(invoice_id)
