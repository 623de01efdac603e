"""
Payments API Endpoints

Clients submit manual payments against their invoices; Admin and Sales
Marketing review them.
"""
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field

from ammex.api.responses import paginated, success
from ammex.core.auth import (
    assert_customer_access,
    require_client,
    require_customer_id,
    require_sales,
)
from ammex.core.exceptions import NotFoundError, ValidationFailed
from ammex.core.pagination import paginate
from ammex.domain.base import RequestModel, to_jsonable
from ammex.domain.payment import PAYMENT_METHODS, PAYMENT_PENDING, PAYMENT_REJECTED
from ammex.domain.user import User
from ammex.repositories.payment_repository import PaymentRepository
from ammex.services.payment_service import PaymentService

router = APIRouter()


class PaymentSubmit(RequestModel):
    invoice_id: int
    amount: Decimal = Field(..., gt=0)
    payment_method: str
    reference: Optional[str] = None
    notes: Optional[str] = None


class PaymentApprove(RequestModel):
    amount: Optional[Decimal] = None


class PaymentReject(RequestModel):
    rejection_reason: Optional[str] = None


class PaymentAppeal(RequestModel):
    appeal_reason: Optional[str] = None


def get_payment_service() -> PaymentService:
    return PaymentService()


def get_payment_repository() -> PaymentRepository:
    return PaymentRepository()


# =============================================================================
# Client
# =============================================================================

@router.post("/submit", status_code=status.HTTP_201_CREATED)
def submit_payment(
    body: PaymentSubmit,
    user: User = Depends(require_client),
    payments: PaymentService = Depends(get_payment_service)
):
    if body.payment_method not in PAYMENT_METHODS:
        raise ValidationFailed(f"Invalid payment method. Allowed: {', '.join(PAYMENT_METHODS)}")

    payment = payments.submit(
        require_customer_id(user),
        body.invoice_id,
        body.amount,
        body.payment_method,
        user.id,
        reference=body.reference,
        notes=body.notes,
    )
    return success(payment.to_dict(), message="Payment submitted for approval")


@router.get("/my")
def my_payments(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    user: User = Depends(require_client),
    repo: PaymentRepository = Depends(get_payment_repository)
):
    size, offset = paginate(page, limit)
    payments, total = repo.find_all(customer_id=require_customer_id(user), limit=size, offset=offset)
    return paginated([p.to_dict() for p in payments], page, size, total)


@router.post("/{payment_id}/appeal")
def appeal_payment(
    payment_id: int,
    body: PaymentAppeal,
    user: User = Depends(require_client),
    payments: PaymentService = Depends(get_payment_service)
):
    payment = payments.appeal(payment_id, require_customer_id(user), user.id, body.appeal_reason)
    return success(payment.to_dict(), message="Appeal submitted")


@router.get("/history/invoice/{invoice_id}")
def invoice_payment_history(
    invoice_id: int,
    user: User = Depends(require_client),
    payments: PaymentService = Depends(get_payment_service),
    repo: PaymentRepository = Depends(get_payment_repository)
):
    invoice = payments.invoices.get(invoice_id)
    assert_customer_access(user, invoice.customer_id)
    entries, total = repo.history(invoice_id=invoice_id)
    return success([e.to_dict() for e in entries], total=total)


@router.get("/receipts/my")
def my_receipts(
    user: User = Depends(require_client),
    payments: PaymentService = Depends(get_payment_service)
):
    return success(payments.receipts(require_customer_id(user)))


@router.get("/receipts/{payment_id}")
def receipt_details(
    payment_id: int,
    user: User = Depends(require_client),
    payments: PaymentService = Depends(get_payment_service)
):
    receipts = payments.receipts(require_customer_id(user), payment_id)
    if not receipts:
        raise NotFoundError("Receipt not found")
    return success(receipts[0])


# =============================================================================
# Staff
# =============================================================================

@router.get("/pending")
def pending_payments(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(require_sales),
    repo: PaymentRepository = Depends(get_payment_repository)
):
    size, offset = paginate(page, limit)
    payments, total = repo.find_all(status=PAYMENT_PENDING, oldest_first=True, limit=size, offset=offset)
    return paginated([p.to_dict() for p in payments], page, size, total)


@router.get("/rejected")
def rejected_payments(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(require_sales),
    repo: PaymentRepository = Depends(get_payment_repository)
):
    size, offset = paginate(page, limit)
    payments, total = repo.find_all(status=PAYMENT_REJECTED, limit=size, offset=offset)
    return paginated([p.to_dict() for p in payments], page, size, total)


@router.patch("/{payment_id}/approve")
def approve_payment(
    payment_id: int,
    body: Optional[PaymentApprove] = None,
    user: User = Depends(require_sales),
    payments: PaymentService = Depends(get_payment_service)
):
    amount = body.amount if body else None
    payment = payments.approve(payment_id, user.id, amount)
    return success(payment.to_dict(), message="Payment approved")


@router.patch("/{payment_id}/reject")
def reject_payment(
    payment_id: int,
    body: PaymentReject,
    user: User = Depends(require_sales),
    payments: PaymentService = Depends(get_payment_service)
):
    payment = payments.reject(payment_id, user.id, body.rejection_reason)
    return success(payment.to_dict(), message="Payment rejected")


@router.patch("/{payment_id}/reapprove")
def reopen_payment(
    payment_id: int,
    user: User = Depends(require_sales),
    payments: PaymentService = Depends(get_payment_service)
):
    payment = payments.reopen(payment_id, user.id)
    return success(payment.to_dict(), message="Payment moved back to pending approval")


@router.delete("/{payment_id}")
def delete_payment(
    payment_id: int,
    user: User = Depends(require_sales),
    payments: PaymentService = Depends(get_payment_service)
):
    payments.delete(payment_id)
    return success(message="Payment deleted")


@router.get("/history")
def payment_history(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(require_sales),
    repo: PaymentRepository = Depends(get_payment_repository)
):
    size, offset = paginate(page, limit)
    entries, total = repo.history(limit=size, offset=offset)
    return paginated([e.to_dict() for e in entries], page, size, total)


@router.get("/history/customer/{customer_id}")
def customer_payment_history(
    customer_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(require_sales),
    repo: PaymentRepository = Depends(get_payment_repository)
):
    size, offset = paginate(page, limit)
    entries, total = repo.history(customer_id=customer_id, limit=size, offset=offset)
    return paginated([e.to_dict() for e in entries], page, size, total)


@router.get("/balance-history")
def balance_history(
    customer_id: Optional[int] = Query(None, alias="customerId"),
    user: User = Depends(require_sales),
    repo: PaymentRepository = Depends(get_payment_repository)
):
    return success(to_jsonable(repo.balance_history(customer_id)))
