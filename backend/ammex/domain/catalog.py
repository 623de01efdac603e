"""
Catalog Domain Models

Categories, units, inventory items and their history records.

Author: Ammex Dev Team
Date: 2025-03-04
"""
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from ammex.domain.base import DomainModel


class Unit(DomainModel):
    id: int
    name: str
    created_at: Optional[datetime] = None


class Category(DomainModel):
    id: int
    name: str
    parent_id: Optional[int] = None
    created_at: Optional[datetime] = None
    subcategories: List["Category"] = Field(default_factory=list)


class ProductDiscount(DomainModel):
    """
    Percentage discount on a single item, optionally bounded by a date window
    """

    id: Optional[int] = None
    item_id: int
    discount_percentage: Decimal = Field(..., gt=0, le=100)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: bool = True

    def is_effective(self, on: Optional[date] = None) -> bool:
        """Active, positive and today within [start_date, end_date] (open ends allowed)"""
        on = on or date.today()
        if not self.is_active or self.discount_percentage <= 0:
            return False
        if self.start_date and on < self.start_date:
            return False
        if self.end_date and on > self.end_date:
            return False
        return True


class Item(DomainModel):
    """
    Inventory item - also the product clients see in the catalog

    Fields joined from related tables (category_name, unit_name,
    supplier_name, discount_*) are optional and only present when the
    repository query selects them.
    """

    id: int = Field(..., description="Item ID")
    item_code: str = Field(..., description="VEN-CAT-###-MODEL code")
    item_name: str
    vendor: str
    model_no: Optional[str] = None
    description: Optional[str] = None

    category_id: Optional[int] = None
    unit_id: Optional[int] = None
    supplier_id: Optional[int] = None

    price: Decimal = Field(Decimal("0"), ge=0, description="Selling price")
    cost_price: Optional[Decimal] = None
    quantity: int = Field(0, ge=0, description="Units in stock")
    min_level: int = 0
    max_level: Optional[int] = None

    is_active: bool = True
    archived_at: Optional[datetime] = None
    archived_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # From JOINs
    category_name: Optional[str] = None
    unit_name: Optional[str] = None
    supplier_name: Optional[str] = None
    discount_percentage: Optional[Decimal] = None
    discount_start_date: Optional[date] = None
    discount_end_date: Optional[date] = None
    discount_active: Optional[bool] = None

    @property
    def discount(self) -> Optional[ProductDiscount]:
        if self.discount_percentage is None:
            return None
        return ProductDiscount(
            item_id=self.id,
            discount_percentage=self.discount_percentage,
            start_date=self.discount_start_date,
            end_date=self.discount_end_date,
            is_active=bool(self.discount_active),
        )

    @property
    def stock_status(self) -> str:
        if self.quantity <= 0:
            return "out_of_stock"
        if self.quantity <= self.min_level:
            return "low_stock"
        if self.max_level is not None and self.quantity >= self.max_level:
            return "overstock"
        return "in_stock"

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["stockStatus"] = self.stock_status
        return data


class StockHistory(DomainModel):
    id: int
    item_id: int
    previous_quantity: int
    new_quantity: int
    change: int
    reason: Optional[str] = None
    adjusted_by: Optional[int] = None
    adjusted_by_name: Optional[str] = None
    created_at: Optional[datetime] = None


class PriceHistory(DomainModel):
    id: int
    item_id: int
    previous_price: Decimal
    new_price: Decimal
    reason: Optional[str] = None
    changed_by: Optional[int] = None
    changed_by_name: Optional[str] = None
    created_at: Optional[datetime] = None


class Tier(DomainModel):
    id: Optional[int] = None
    name: str
    discount_percent: Decimal = Field(Decimal("0"), ge=0, le=100)
    min_spend: Decimal = Field(Decimal("0"), ge=0)
    priority: int = 0
    is_active: bool = True
