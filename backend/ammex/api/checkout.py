"""
Checkout API Endpoints

Two phases: preview prices the selected cart lines without writing,
confirm creates the order. Pricing is always recomputed server-side.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, status

from ammex.api.responses import success
from ammex.core.auth import assert_customer_access, require_client
from ammex.domain.base import RequestModel
from ammex.domain.user import User
from ammex.services.checkout_service import CheckoutService

router = APIRouter()


class CheckoutSelection(RequestModel):
    cart_item_ids: Optional[List[int]] = None
    item_ids: Optional[List[int]] = None


class CheckoutConfirm(CheckoutSelection):
    notes: Optional[str] = None
    payment_terms: Optional[str] = None


def get_checkout_service() -> CheckoutService:
    return CheckoutService()


@router.post("/{customer_id}/preview")
def preview_checkout(
    customer_id: int,
    body: CheckoutSelection,
    user: User = Depends(require_client),
    checkout: CheckoutService = Depends(get_checkout_service)
):
    assert_customer_access(user, customer_id)
    return success(checkout.preview(customer_id, body.cart_item_ids, body.item_ids))


@router.post("/{customer_id}/confirm", status_code=status.HTTP_201_CREATED)
def confirm_checkout(
    customer_id: int,
    body: CheckoutConfirm,
    user: User = Depends(require_client),
    checkout: CheckoutService = Depends(get_checkout_service)
):
    assert_customer_access(user, customer_id)
    order = checkout.confirm(
        customer_id,
        user.id,
        cart_item_ids=body.cart_item_ids,
        item_ids=body.item_ids,
        notes=body.notes,
        payment_terms=body.payment_terms,
    )
    return success(
        order.to_dict(),
        message="Order placed successfully",
        clientView=order.to_client_dict(),
    )
