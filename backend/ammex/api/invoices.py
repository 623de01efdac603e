"""
Invoices API Endpoints
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ammex.api.responses import paginated, success
from ammex.core.auth import require_client, require_customer_id, require_sales
from ammex.core.pagination import paginate
from ammex.domain.base import RequestModel
from ammex.domain.user import User
from ammex.repositories.invoice_repository import InvoiceRepository
from ammex.services.invoice_service import InvoiceService

router = APIRouter()


class InvoiceCreate(RequestModel):
    order_id: int
    payment_terms: Optional[str] = None
    notes: Optional[str] = None


class InvoiceStatusUpdate(RequestModel):
    status: str


def get_invoice_service() -> InvoiceService:
    return InvoiceService()


def get_invoice_repository() -> InvoiceRepository:
    return InvoiceRepository()


@router.get("/")
def list_invoices(
    status: Optional[str] = Query(None),
    from_date: Optional[str] = Query(None, alias="from"),
    to_date: Optional[str] = Query(None, alias="to"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=200),
    user: User = Depends(require_sales),
    repo: InvoiceRepository = Depends(get_invoice_repository)
):
    size, offset = paginate(page, limit)
    invoices, total = repo.find_all(
        status=status, from_date=from_date, to_date=to_date, limit=size, offset=offset
    )
    return paginated([i.to_dict() for i in invoices], page, size, total)


@router.get("/status/{invoice_status}")
def list_invoices_by_status(
    invoice_status: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=200),
    user: User = Depends(require_sales),
    repo: InvoiceRepository = Depends(get_invoice_repository)
):
    size, offset = paginate(page, limit)
    invoices, total = repo.find_all(status=invoice_status, limit=size, offset=offset)
    return paginated([i.to_dict() for i in invoices], page, size, total)


@router.get("/my")
def my_invoices(
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    user: User = Depends(require_client),
    repo: InvoiceRepository = Depends(get_invoice_repository)
):
    size, offset = paginate(page, limit)
    invoices, total = repo.find_all(
        status=status, customer_id=require_customer_id(user), limit=size, offset=offset
    )
    return paginated([i.to_client_dict() for i in invoices], page, size, total)


@router.post("/recalculate-overdue")
def recalculate_overdue(
    user: User = Depends(require_sales),
    invoices: InvoiceService = Depends(get_invoice_service)
):
    changed = invoices.recalculate_open_invoices()
    return success({"updated": changed}, message=f"{changed} invoice(s) updated")


@router.get("/{invoice_id}")
def get_invoice(
    invoice_id: int,
    user: User = Depends(require_sales),
    invoices: InvoiceService = Depends(get_invoice_service)
):
    return success(invoices.get(invoice_id).to_dict())


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_invoice(
    body: InvoiceCreate,
    user: User = Depends(require_sales),
    invoices: InvoiceService = Depends(get_invoice_service)
):
    invoice = invoices.create_from_order(body.order_id, user.id, body.payment_terms, body.notes)
    return success(invoice.to_dict(), message="Invoice created")


@router.patch("/{invoice_id}/status")
def update_invoice_status(
    invoice_id: int,
    body: InvoiceStatusUpdate,
    user: User = Depends(require_sales),
    invoices: InvoiceService = Depends(get_invoice_service)
):
    invoice = invoices.update_status(invoice_id, body.status)
    return success(invoice.to_dict(), message="Invoice status updated")
