"""
Categories and Units API Endpoints
"""
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import Field

from ammex.api.responses import success
from ammex.core.auth import require_staff, require_warehouse
from ammex.core.exceptions import NotFoundError, ValidationFailed
from ammex.domain.base import RequestModel
from ammex.domain.user import User
from ammex.repositories.catalog_repository import CategoryRepository, UnitRepository

categories_router = APIRouter()
units_router = APIRouter()


class CategoryBody(RequestModel):
    name: str = Field(..., min_length=1, max_length=100)
    parent_id: Optional[int] = None


class UnitBody(RequestModel):
    name: str = Field(..., min_length=1, max_length=50)


def get_category_repository() -> CategoryRepository:
    return CategoryRepository()


def get_unit_repository() -> UnitRepository:
    return UnitRepository()


# =============================================================================
# Categories
# =============================================================================

@categories_router.get("/")
def list_categories(
    user: User = Depends(require_staff),
    repo: CategoryRepository = Depends(get_category_repository)
):
    return success([c.to_dict() for c in repo.find_all()])


@categories_router.get("/{category_id}")
def get_category(
    category_id: int,
    user: User = Depends(require_staff),
    repo: CategoryRepository = Depends(get_category_repository)
):
    category = repo.find_by_id(category_id)
    if not category:
        raise NotFoundError("Category not found")
    return success(category.to_dict())


def _check_parent(repo: CategoryRepository, parent_id: Optional[int], category_id: Optional[int] = None):
    if parent_id is None:
        return
    if parent_id == category_id:
        raise ValidationFailed("A category cannot be its own parent")
    if not repo.find_by_id(parent_id):
        raise ValidationFailed("Parent category not found")


@categories_router.post("/", status_code=status.HTTP_201_CREATED)
def create_category(
    body: CategoryBody,
    user: User = Depends(require_warehouse),
    repo: CategoryRepository = Depends(get_category_repository)
):
    if repo.name_exists(body.name):
        raise ValidationFailed("Category name already exists")
    _check_parent(repo, body.parent_id)
    return success(repo.create(body.name, body.parent_id).to_dict(), message="Category created")


@categories_router.put("/{category_id}")
def update_category(
    category_id: int,
    body: CategoryBody,
    user: User = Depends(require_warehouse),
    repo: CategoryRepository = Depends(get_category_repository)
):
    if repo.name_exists(body.name, exclude_id=category_id):
        raise ValidationFailed("Category name already exists")
    _check_parent(repo, body.parent_id, category_id)

    category = repo.update(category_id, body.name, body.parent_id)
    if not category:
        raise NotFoundError("Category not found")
    return success(category.to_dict(), message="Category updated")


@categories_router.delete("/{category_id}")
def delete_category(
    category_id: int,
    user: User = Depends(require_warehouse),
    repo: CategoryRepository = Depends(get_category_repository)
):
    in_use = repo.count_active_items(category_id)
    if in_use:
        raise ValidationFailed(f"Cannot delete category. It is used by {in_use} active item(s)")
    if not repo.delete(category_id):
        raise NotFoundError("Category not found")
    return success(message="Category deleted")


# =============================================================================
# Units
# =============================================================================

@units_router.get("/")
def list_units(
    user: User = Depends(require_staff),
    repo: UnitRepository = Depends(get_unit_repository)
):
    return success([u.to_dict() for u in repo.find_all()])


@units_router.post("/", status_code=status.HTTP_201_CREATED)
def create_unit(
    body: UnitBody,
    user: User = Depends(require_warehouse),
    repo: UnitRepository = Depends(get_unit_repository)
):
    if repo.name_exists(body.name):
        raise ValidationFailed("Unit name already exists")
    return success(repo.create(body.name).to_dict(), message="Unit created")


@units_router.put("/{unit_id}")
def update_unit(
    unit_id: int,
    body: UnitBody,
    user: User = Depends(require_warehouse),
    repo: UnitRepository = Depends(get_unit_repository)
):
    if repo.name_exists(body.name, exclude_id=unit_id):
        raise ValidationFailed("Unit name already exists")
    unit = repo.update(unit_id, body.name)
    if not unit:
        raise NotFoundError("Unit not found")
    return success(unit.to_dict(), message="Unit updated")


@units_router.delete("/{unit_id}")
def delete_unit(
    unit_id: int,
    user: User = Depends(require_warehouse),
    repo: UnitRepository = Depends(get_unit_repository)
):
    in_use = repo.count_active_items(unit_id)
    if in_use:
        raise ValidationFailed(f"Cannot delete unit. It is used by {in_use} active item(s)")
    if not repo.delete(unit_id):
        raise NotFoundError("Unit not found")
    return success(message="Unit deleted")
