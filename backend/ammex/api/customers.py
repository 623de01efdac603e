"""
Customers API Endpoints
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field

from ammex.api.responses import paginated, success
from ammex.core.auth import require_client, require_customer_id, require_sales
from ammex.core.exceptions import NotFoundError, ValidationFailed
from ammex.core.pagination import paginate
from ammex.domain.base import RequestModel
from ammex.domain.user import User
from ammex.repositories.customer_repository import CustomerRepository
from ammex.repositories.order_repository import OrderRepository
from ammex.services.numbering import sequence_code

router = APIRouter()


class CustomerBody(RequestModel):
    customer_code: Optional[str] = None
    customer_name: Optional[str] = Field(None, min_length=1, max_length=255)
    contact_name: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    telephone1: Optional[str] = None
    telephone2: Optional[str] = None
    email1: Optional[str] = None
    email2: Optional[str] = None
    notes: Optional[str] = None


def get_customer_repository() -> CustomerRepository:
    return CustomerRepository()


@router.get("/")
def list_customers(
    search: Optional[str] = Query(None, description="Customer name, code or email"),
    is_active: Optional[bool] = Query(True, alias="isActive"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=200),
    user: User = Depends(require_sales),
    repo: CustomerRepository = Depends(get_customer_repository)
):
    size, offset = paginate(page, limit)
    customers, total = repo.find_all(search=search, is_active=is_active, limit=size, offset=offset)
    return paginated([c.to_dict() for c in customers], page, size, total)


@router.get("/stats")
def customer_stats(
    user: User = Depends(require_sales),
    repo: CustomerRepository = Depends(get_customer_repository)
):
    return success(repo.get_stats())


@router.get("/me")
def get_my_customer(
    user: User = Depends(require_client),
    repo: CustomerRepository = Depends(get_customer_repository)
):
    customer = repo.find_by_id(require_customer_id(user))
    if not customer:
        raise NotFoundError("Customer not found")
    data = customer.to_dict()
    data["missingFields"] = customer.missing_profile_fields()
    return success(data)


@router.put("/me")
def update_my_customer(
    body: CustomerBody,
    user: User = Depends(require_client),
    repo: CustomerRepository = Depends(get_customer_repository)
):
    customer = repo.update_profile(require_customer_id(user), body.model_dump(exclude_unset=True))
    if not customer:
        raise NotFoundError("Customer not found")
    data = customer.to_dict()
    data["missingFields"] = customer.missing_profile_fields()
    return success(data, message="Profile updated")


@router.get("/{customer_id}")
def get_customer(
    customer_id: int,
    include: Optional[str] = Query(None, description="Set to 'orders' to embed the customer's orders"),
    user: User = Depends(require_sales),
    repo: CustomerRepository = Depends(get_customer_repository)
):
    customer = repo.find_by_id(customer_id)
    if not customer:
        raise NotFoundError("Customer not found")

    data = customer.to_dict()
    if include == "orders":
        orders, _ = OrderRepository().find_all(customer_id=customer_id, limit=50)
        data["orders"] = [o.to_dict() for o in orders]
    return success(data)


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_customer(
    body: CustomerBody,
    user: User = Depends(require_sales),
    repo: CustomerRepository = Depends(get_customer_repository)
):
    data = body.model_dump()
    if not data.get("customer_name"):
        raise ValidationFailed("Customer name is required")

    if data.get("customer_code"):
        if repo.code_exists(data["customer_code"]):
            raise ValidationFailed("Customer ID already exists")
    else:
        data["customer_code"] = sequence_code("CUST", repo.next_sequence())

    customer = repo.create(data)
    return success(customer.to_dict(), message="Customer created")


@router.put("/{customer_id}")
def update_customer(
    customer_id: int,
    body: CustomerBody,
    user: User = Depends(require_sales),
    repo: CustomerRepository = Depends(get_customer_repository)
):
    fields = body.model_dump(exclude_unset=True)
    if fields.get("customer_code") and repo.code_exists(fields["customer_code"], exclude_id=customer_id):
        raise ValidationFailed("Customer ID already exists")

    customer = repo.update(customer_id, fields)
    if not customer:
        raise NotFoundError("Customer not found")
    return success(customer.to_dict(), message="Customer updated")


@router.delete("/{customer_id}")
def archive_customer(
    customer_id: int,
    user: User = Depends(require_sales),
    repo: CustomerRepository = Depends(get_customer_repository)
):
    customer = repo.set_active(customer_id, False)
    if not customer:
        raise NotFoundError("Customer not found")
    return success(customer.to_dict(), message="Customer archived")


@router.patch("/{customer_id}/restore")
def restore_customer(
    customer_id: int,
    user: User = Depends(require_sales),
    repo: CustomerRepository = Depends(get_customer_repository)
):
    customer = repo.set_active(customer_id, True)
    if not customer:
        raise NotFoundError("Customer not found")
    return success(customer.to_dict(), message="Customer restored")
