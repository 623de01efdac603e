"""
Suppliers API Endpoints
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field

from ammex.api.responses import paginated, success
from ammex.core.auth import require_warehouse
from ammex.core.exceptions import NotFoundError, ValidationFailed
from ammex.core.pagination import paginate
from ammex.domain.base import RequestModel
from ammex.domain.user import User
from ammex.repositories.supplier_repository import SupplierRepository
from ammex.services.numbering import sequence_code

router = APIRouter()


class SupplierBody(RequestModel):
    supplier_code: Optional[str] = None
    company_name: Optional[str] = Field(None, min_length=1, max_length=255)
    contact_name: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    telephone1: Optional[str] = None
    email1: Optional[str] = None
    notes: Optional[str] = None


def get_supplier_repository() -> SupplierRepository:
    return SupplierRepository()


@router.get("/")
def list_suppliers(
    search: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(True, alias="isActive"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=200),
    user: User = Depends(require_warehouse),
    repo: SupplierRepository = Depends(get_supplier_repository)
):
    size, offset = paginate(page, limit)
    suppliers, total = repo.find_all(search=search, is_active=is_active, limit=size, offset=offset)
    return paginated([s.to_dict() for s in suppliers], page, size, total)


@router.get("/stats")
def supplier_stats(
    user: User = Depends(require_warehouse),
    repo: SupplierRepository = Depends(get_supplier_repository)
):
    return success(repo.get_stats())


@router.get("/{supplier_id}")
def get_supplier(
    supplier_id: int,
    user: User = Depends(require_warehouse),
    repo: SupplierRepository = Depends(get_supplier_repository)
):
    supplier = repo.find_by_id(supplier_id)
    if not supplier:
        raise NotFoundError("Supplier not found")
    return success(supplier.to_dict())


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_supplier(
    body: SupplierBody,
    user: User = Depends(require_warehouse),
    repo: SupplierRepository = Depends(get_supplier_repository)
):
    data = body.model_dump()
    if not data.get("company_name"):
        raise ValidationFailed("Company name is required")

    if data.get("supplier_code"):
        if repo.code_exists(data["supplier_code"]):
            raise ValidationFailed("Supplier ID already exists")
    else:
        data["supplier_code"] = sequence_code("SUPP", repo.next_sequence())

    return success(repo.create(data).to_dict(), message="Supplier created")


@router.put("/{supplier_id}")
def update_supplier(
    supplier_id: int,
    body: SupplierBody,
    user: User = Depends(require_warehouse),
    repo: SupplierRepository = Depends(get_supplier_repository)
):
    fields = body.model_dump(exclude_unset=True)
    if fields.get("supplier_code") and repo.code_exists(fields["supplier_code"], exclude_id=supplier_id):
        raise ValidationFailed("Supplier ID already exists")

    supplier = repo.update(supplier_id, fields)
    if not supplier:
        raise NotFoundError("Supplier not found")
    return success(supplier.to_dict(), message="Supplier updated")


@router.delete("/{supplier_id}")
def archive_supplier(
    supplier_id: int,
    user: User = Depends(require_warehouse),
    repo: SupplierRepository = Depends(get_supplier_repository)
):
    supplier = repo.archive(supplier_id)
    if not supplier:
        raise NotFoundError("Supplier not found")
    return success(supplier.to_dict(), message="Supplier archived")


@router.patch("/{supplier_id}/restore")
def restore_supplier(
    supplier_id: int,
    user: User = Depends(require_warehouse),
    repo: SupplierRepository = Depends(get_supplier_repository)
):
    supplier = repo.restore(supplier_id)
    if not supplier:
        raise NotFoundError("Supplier not found")
    return success(supplier.to_dict(), message="Supplier restored")
