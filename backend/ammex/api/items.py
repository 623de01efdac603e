"""
Inventory Items API Endpoints

Staff-facing inventory management under /api/items and the client-facing
catalog under /api/products.
"""
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field

from ammex.api.responses import paginated, success
from ammex.core.auth import get_current_user, require_staff, require_warehouse
from ammex.core.exceptions import NotFoundError
from ammex.core.pagination import paginate
from ammex.domain.base import RequestModel
from ammex.domain.catalog import Item
from ammex.domain.user import User
from ammex.repositories.item_repository import ItemRepository
from ammex.services.item_service import ItemService
from ammex.services.pricing_service import discounted_price

router = APIRouter()
products_router = APIRouter()


class ItemCreate(RequestModel):
    item_name: str = Field(..., min_length=1, max_length=255)
    vendor: str = Field(..., min_length=1, max_length=100)
    model_no: Optional[str] = None
    description: Optional[str] = None
    category_id: int
    unit_id: Optional[int] = None
    supplier_id: Optional[int] = None
    price: Decimal = Field(Decimal("0"), ge=0)
    cost_price: Optional[Decimal] = Field(None, ge=0)
    quantity: int = Field(0, ge=0)
    min_level: int = Field(0, ge=0)
    max_level: Optional[int] = Field(None, ge=0)


class ItemUpdate(RequestModel):
    item_code: Optional[str] = None
    item_name: Optional[str] = Field(None, min_length=1, max_length=255)
    vendor: Optional[str] = None
    model_no: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[int] = None
    unit_id: Optional[int] = None
    supplier_id: Optional[int] = None
    cost_price: Optional[Decimal] = Field(None, ge=0)
    min_level: Optional[int] = Field(None, ge=0)
    max_level: Optional[int] = Field(None, ge=0)


class StockUpdate(RequestModel):
    quantity: Optional[int] = Field(None, ge=0)
    adjustment: Optional[int] = None
    reason: Optional[str] = None


class PriceUpdate(RequestModel):
    price: Decimal = Field(..., ge=0)
    reason: Optional[str] = None


def get_item_service() -> ItemService:
    return ItemService()


def get_item_repository() -> ItemRepository:
    return ItemRepository()


def _list(repo: ItemRepository, search, category_id, is_active, page, limit):
    size, offset = paginate(page, limit)
    items, total = repo.find_all(
        search=search, category_id=category_id, is_active=is_active, limit=size, offset=offset
    )
    return items, size, total


@router.get("/")
def list_items(
    search: Optional[str] = Query(None, description="Item name or code"),
    category: Optional[int] = Query(None, description="Category ID"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=200),
    user: User = Depends(require_staff),
    repo: ItemRepository = Depends(get_item_repository)
):
    items, size, total = _list(repo, search, category, True, page, limit)
    return paginated([i.to_dict() for i in items], page, size, total)


@router.get("/archived")
def list_archived_items(
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=200),
    user: User = Depends(require_staff),
    repo: ItemRepository = Depends(get_item_repository)
):
    items, size, total = _list(repo, search, None, False, page, limit)
    return paginated([i.to_dict() for i in items], page, size, total)


@router.get("/low-stock")
def list_low_stock(
    user: User = Depends(require_staff),
    repo: ItemRepository = Depends(get_item_repository)
):
    items = repo.find_low_stock()
    return success([i.to_dict() for i in items], count=len(items))


@router.get("/{item_id}")
def get_item(
    item_id: int,
    user: User = Depends(require_staff),
    items: ItemService = Depends(get_item_service)
):
    return success(items.get(item_id).to_dict())


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_item(
    body: ItemCreate,
    user: User = Depends(require_warehouse),
    items: ItemService = Depends(get_item_service)
):
    item = items.create(body.model_dump())
    return success(item.to_dict(), message="Item created")


@router.put("/{item_id}")
def update_item(
    item_id: int,
    body: ItemUpdate,
    user: User = Depends(require_warehouse),
    items: ItemService = Depends(get_item_service)
):
    item = items.update(item_id, body.model_dump(exclude_unset=True))
    return success(item.to_dict(), message="Item updated")


@router.delete("/{item_id}")
def archive_item(
    item_id: int,
    user: User = Depends(require_warehouse),
    items: ItemService = Depends(get_item_service)
):
    item = items.archive(item_id, user.id)
    return success(item.to_dict(), message="Item archived")


@router.patch("/{item_id}/restore")
def restore_item(
    item_id: int,
    user: User = Depends(require_warehouse),
    items: ItemService = Depends(get_item_service)
):
    item = items.restore(item_id)
    return success(item.to_dict(), message="Item restored")


@router.patch("/{item_id}/stock")
def update_stock(
    item_id: int,
    body: StockUpdate,
    user: User = Depends(require_warehouse),
    items: ItemService = Depends(get_item_service)
):
    item = items.adjust_stock(
        item_id, user.id, quantity=body.quantity, adjustment=body.adjustment, reason=body.reason
    )
    return success(item.to_dict(), message="Stock updated")


@router.patch("/{item_id}/price")
def update_price(
    item_id: int,
    body: PriceUpdate,
    user: User = Depends(require_warehouse),
    items: ItemService = Depends(get_item_service)
):
    item = items.change_price(item_id, body.price, user.id, body.reason)
    return success(item.to_dict(), message="Price updated")


@router.get("/{item_id}/stock-history")
def get_stock_history(
    item_id: int,
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(require_staff),
    items: ItemService = Depends(get_item_service),
    repo: ItemRepository = Depends(get_item_repository)
):
    items.get(item_id)
    return success([h.to_dict() for h in repo.stock_history(item_id, limit)])


@router.get("/{item_id}/price-history")
def get_price_history(
    item_id: int,
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(require_staff),
    items: ItemService = Depends(get_item_service),
    repo: ItemRepository = Depends(get_item_repository)
):
    items.get(item_id)
    return success([h.to_dict() for h in repo.price_history(item_id, limit)])


# =============================================================================
# Client catalog
# =============================================================================

def product_view(item: Item) -> dict:
    """Item as shown in the catalog, with its effective discount applied"""
    data = item.to_dict()
    unit_price, pct = discounted_price(item.price, item.discount)
    data["discountedPrice"] = float(unit_price)
    data["effectiveDiscount"] = float(pct)
    data["hasDiscount"] = pct > 0
    return data


@products_router.get("/")
def list_products(
    search: Optional[str] = Query(None),
    category: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    user: User = Depends(get_current_user),
    repo: ItemRepository = Depends(get_item_repository)
):
    items, size, total = _list(repo, search, category, True, page, limit)
    return paginated([product_view(i) for i in items], page, size, total)


@products_router.get("/{item_id}")
def get_product(
    item_id: int,
    user: User = Depends(get_current_user),
    items: ItemService = Depends(get_item_service)
):
    item = items.get(item_id)
    if not item.is_active:
        raise NotFoundError("Product not found")
    return success(product_view(item))
