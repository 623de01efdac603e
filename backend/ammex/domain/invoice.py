"""
Invoice Domain Models

Author: Ammex Dev Team
Date: 2025-03-10
"""
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from ammex.domain.base import DomainModel

STATUS_AWAITING = "awaiting payment"
STATUS_PARTIAL = "partially paid"
STATUS_COMPLETED = "completed"
STATUS_OVERDUE = "overdue"
STATUS_REJECTED = "rejected"

INVOICE_STATUSES = (STATUS_AWAITING, STATUS_PARTIAL, STATUS_COMPLETED, STATUS_OVERDUE, STATUS_REJECTED)

# Invoices counted as spend when evaluating customer tiers
SPEND_STATUSES = (STATUS_COMPLETED, STATUS_PARTIAL)


class InvoiceItem(DomainModel):
    id: Optional[int] = None
    invoice_id: Optional[int] = None
    item_id: int
    item_name: Optional[str] = None
    quantity: int
    unit_price: Decimal
    total_price: Decimal


class Invoice(DomainModel):
    id: int
    invoice_number: str
    order_id: int
    customer_id: int
    invoice_date: date
    due_date: date

    total_amount: Decimal
    paid_amount: Decimal = Decimal("0")
    remaining_balance: Decimal

    status: str = STATUS_AWAITING
    payment_terms: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # From JOINs
    order_number: Optional[str] = None
    customer_name: Optional[str] = None
    customer_code: Optional[str] = None

    items: List[InvoiceItem] = Field(default_factory=list)

    def is_past_due(self, today: Optional[date] = None) -> bool:
        today = today or date.today()
        return self.due_date < today and self.remaining_balance > 0

    def to_client_dict(self) -> dict:
        """Shape used by the client invoice screens"""
        return {
            "id": self.id,
            "invoiceNumber": self.invoice_number,
            "orderNumber": self.order_number,
            "invoiceDate": self.invoice_date.isoformat(),
            "dueDate": self.due_date.isoformat(),
            "totalAmount": float(self.total_amount),
            "paidAmount": float(self.paid_amount),
            "remainingAmount": float(self.remaining_balance),
            "status": self.status,
            "paymentTerms": self.payment_terms,
            "items": [
                {
                    "itemId": item.item_id,
                    "name": item.item_name,
                    "quantity": item.quantity,
                    "unitPrice": float(item.unit_price),
                    "total": float(item.total_price),
                }
                for item in self.items
            ],
        }
