"""
Product Discounts API Endpoints
"""
from datetime import date
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import Field

from ammex.api.items import get_item_repository, get_item_service, product_view
from ammex.api.responses import success
from ammex.core.auth import require_sales
from ammex.domain.base import RequestModel
from ammex.domain.user import User
from ammex.repositories.item_repository import ItemRepository
from ammex.services.item_service import ItemService

router = APIRouter()


class DiscountApply(RequestModel):
    item_ids: List[int] = Field(..., min_length=1)
    discount_percentage: Decimal = Field(..., gt=0, le=100)
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class DiscountUpdate(RequestModel):
    discount_percentage: Decimal = Field(..., gt=0, le=100)
    start_date: Optional[date] = None
    end_date: Optional[date] = None


@router.get("/")
def list_discounted_products(
    user: User = Depends(require_sales),
    repo: ItemRepository = Depends(get_item_repository)
):
    return success([product_view(i) for i in repo.find_discounted()])


@router.post("/")
def apply_discount(
    body: DiscountApply,
    user: User = Depends(require_sales),
    items: ItemService = Depends(get_item_service)
):
    updated = items.apply_discount(
        body.item_ids, body.discount_percentage, user.id, body.start_date, body.end_date
    )
    return success(
        [product_view(i) for i in updated],
        message=f"Discount applied to {len(updated)} item(s)"
    )


@router.put("/{item_id}")
def update_discount(
    item_id: int,
    body: DiscountUpdate,
    user: User = Depends(require_sales),
    items: ItemService = Depends(get_item_service)
):
    updated = items.apply_discount(
        [item_id], body.discount_percentage, user.id, body.start_date, body.end_date
    )
    return success(product_view(updated[0]), message="Discount updated")


@router.delete("/{item_id}")
def remove_discount(
    item_id: int,
    user: User = Depends(require_sales),
    items: ItemService = Depends(get_item_service)
):
    items.remove_discount(item_id)
    return success(message="Discount removed")
