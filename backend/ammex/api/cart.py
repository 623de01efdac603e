"""
Cart API Endpoints

Clients may only touch their own cart; staff may act on any customer's.
"""
from typing import List

from fastapi import APIRouter, Depends
from pydantic import Field

from ammex.api.responses import success
from ammex.core.auth import assert_customer_access, get_current_user
from ammex.domain.base import RequestModel
from ammex.domain.user import User
from ammex.services.cart_service import CartService

router = APIRouter()


class CartItemAdd(RequestModel):
    item_id: int
    quantity: int = Field(1, ge=1)


class CartItemUpdate(RequestModel):
    quantity: int = Field(..., ge=1)


class SyncLine(RequestModel):
    item_id: int
    quantity: int = Field(..., ge=0)


class CartSyncRequest(RequestModel):
    items: List[SyncLine] = Field(default_factory=list)


def get_cart_service() -> CartService:
    return CartService()


@router.get("/{customer_id}")
def get_cart(
    customer_id: int,
    user: User = Depends(get_current_user),
    carts: CartService = Depends(get_cart_service)
):
    assert_customer_access(user, customer_id)
    return success(carts.get_or_create(customer_id).to_dict())


@router.post("/{customer_id}/items")
def add_cart_item(
    customer_id: int,
    body: CartItemAdd,
    user: User = Depends(get_current_user),
    carts: CartService = Depends(get_cart_service)
):
    assert_customer_access(user, customer_id)
    cart = carts.add_item(customer_id, body.item_id, body.quantity)
    return success(cart.to_dict(), message="Item added to cart")


@router.put("/items/{cart_item_id}")
def update_cart_item(
    cart_item_id: int,
    body: CartItemUpdate,
    user: User = Depends(get_current_user),
    carts: CartService = Depends(get_cart_service)
):
    line = carts.get_line(cart_item_id)
    assert_customer_access(user, line.customer_id)
    cart = carts.update_item(line, body.quantity)
    return success(cart.to_dict(), message="Cart item updated")


@router.delete("/items/{cart_item_id}")
def remove_cart_item(
    cart_item_id: int,
    user: User = Depends(get_current_user),
    carts: CartService = Depends(get_cart_service)
):
    line = carts.get_line(cart_item_id)
    assert_customer_access(user, line.customer_id)
    cart = carts.remove_item(line)
    return success(cart.to_dict() if cart else None, message="Item removed from cart")


@router.delete("/{customer_id}/clear")
def clear_cart(
    customer_id: int,
    user: User = Depends(get_current_user),
    carts: CartService = Depends(get_cart_service)
):
    assert_customer_access(user, customer_id)
    cart = carts.clear(customer_id)
    return success(cart.to_dict(), message="Cart cleared")


@router.post("/{customer_id}/convert")
def convert_cart(
    customer_id: int,
    user: User = Depends(get_current_user),
    carts: CartService = Depends(get_cart_service)
):
    assert_customer_access(user, customer_id)
    cart = carts.convert(customer_id)
    return success(cart.to_dict(), message="Cart converted")


@router.put("/{customer_id}/sync")
def sync_cart(
    customer_id: int,
    body: CartSyncRequest,
    user: User = Depends(get_current_user),
    carts: CartService = Depends(get_cart_service)
):
    """Replace the cart with the client's cached snapshot"""
    assert_customer_access(user, customer_id)
    result = carts.sync(customer_id, [line.model_dump() for line in body.items])
    return success(result["cart"].to_dict(), adjustments=result["adjustments"])
