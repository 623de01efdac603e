"""
Orders API Endpoints
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ammex.api.responses import paginated, success
from ammex.core.auth import (
    assert_customer_access,
    get_current_user,
    is_client,
    require_admin,
    require_client,
    require_customer_id,
    require_sales,
)
from ammex.core.pagination import paginate
from ammex.domain.base import RequestModel
from ammex.domain.user import User
from ammex.repositories.order_repository import OrderRepository
from ammex.services.order_service import OrderService

router = APIRouter()


class OrderStatusUpdate(RequestModel):
    status: str
    rejection_reason: Optional[str] = None


def get_order_service() -> OrderService:
    return OrderService()


def get_order_repository() -> OrderRepository:
    return OrderRepository()


@router.get("/")
def list_orders(
    status: Optional[str] = Query(None),
    from_date: Optional[str] = Query(None, alias="from", description="YYYY-MM-DD"),
    to_date: Optional[str] = Query(None, alias="to", description="YYYY-MM-DD"),
    search: Optional[str] = Query(None, description="Order number or customer name"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=200),
    user: User = Depends(require_sales),
    repo: OrderRepository = Depends(get_order_repository)
):
    size, offset = paginate(page, limit)
    orders, total = repo.find_all(
        status=status, from_date=from_date, to_date=to_date, search=search, limit=size, offset=offset
    )
    return paginated([o.to_dict() for o in orders], page, size, total)


@router.get("/status/{status}")
def list_orders_by_status(
    status: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=200),
    user: User = Depends(require_sales),
    repo: OrderRepository = Depends(get_order_repository)
):
    size, offset = paginate(page, limit)
    orders, total = repo.find_all(status=status, limit=size, offset=offset)
    return paginated([o.to_dict() for o in orders], page, size, total)


@router.get("/my")
def my_orders(
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    user: User = Depends(require_client),
    repo: OrderRepository = Depends(get_order_repository)
):
    size, offset = paginate(page, limit)
    orders, total = repo.find_all(
        status=status, customer_id=require_customer_id(user), limit=size, offset=offset
    )
    return paginated([o.to_client_dict() for o in orders], page, size, total)


@router.get("/{order_id}")
def get_order(
    order_id: int,
    user: User = Depends(get_current_user),
    orders: OrderService = Depends(get_order_service)
):
    order = orders.get(order_id)
    if is_client(user):
        assert_customer_access(user, order.customer_id)
        return success(order.to_client_dict())
    return success(order.to_dict())


@router.patch("/{order_id}/status")
def update_order_status(
    order_id: int,
    body: OrderStatusUpdate,
    user: User = Depends(require_sales),
    orders: OrderService = Depends(get_order_service)
):
    order = orders.update_status(order_id, body.status, user.id, body.rejection_reason)
    return success(order.to_dict(), message=f"Order {order.status}")


@router.patch("/{reference}/cancel")
def cancel_order(
    reference: str,
    user: User = Depends(require_client),
    orders: OrderService = Depends(get_order_service)
):
    order = orders.cancel(reference, require_customer_id(user))
    return success(order.to_client_dict(), message="Order cancelled")


@router.delete("/{order_id}")
def delete_order(
    order_id: int,
    user: User = Depends(require_admin),
    orders: OrderService = Depends(get_order_service)
):
    orders.delete(order_id)
    return success(message="Order deleted")
