"""
Payment Domain Models

Author: Ammex Dev Team
Date: 2025-03-12
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ammex.domain.base import DomainModel

PAYMENT_PENDING = "pending_approval"
PAYMENT_APPROVED = "approved"
PAYMENT_REJECTED = "rejected"

PAYMENT_METHODS = ("bank_transfer", "check", "cash", "gcash", "maya", "credit_card", "other")


class Payment(DomainModel):
    id: int
    payment_number: str
    invoice_id: int
    customer_id: int
    amount: Decimal
    payment_method: str
    reference: Optional[str] = None
    notes: Optional[str] = None
    status: str = PAYMENT_PENDING
    rejection_reason: Optional[str] = None
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[int] = None

    # From JOINs
    invoice_number: Optional[str] = None
    invoice_total: Optional[Decimal] = None
    invoice_remaining: Optional[Decimal] = None
    customer_name: Optional[str] = None
    reviewer_name: Optional[str] = None


class PaymentHistoryEntry(DomainModel):
    id: int
    payment_id: Optional[int] = None
    invoice_id: int
    customer_id: int
    action: str
    amount: Decimal
    payment_method: Optional[str] = None
    reference: Optional[str] = None
    notes: Optional[str] = None
    performed_by: Optional[int] = None
    performed_by_name: Optional[str] = None
    created_at: Optional[datetime] = None

    # From JOINs
    invoice_number: Optional[str] = None
    payment_number: Optional[str] = None
    customer_name: Optional[str] = None
