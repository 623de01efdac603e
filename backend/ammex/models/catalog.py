"""
Catalog and inventory tables: categories, units, items, stock and price
history, product discounts and customer tiers
"""
from sqlalchemy import (
    Column, Integer, String, Boolean, Date, DateTime, Text, DECIMAL, ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ammex.core.database import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True)
    parent_id = Column(Integer, ForeignKey("categories.id"), index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    subcategories = relationship("Category")


class Unit(Base):
    __tablename__ = "units"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Item(Base):
    """
    Inventory item, also the product shown in the client catalog
    """
    __tablename__ = "items"

    id = Column(Integer, primary_key=True, index=True)
    item_code = Column(String(100), nullable=False, unique=True, index=True)
    item_name = Column(String(255), nullable=False)
    vendor = Column(String(255), nullable=False)
    model_no = Column(String(100))
    description = Column(Text)

    category_id = Column(Integer, ForeignKey("categories.id"), index=True)
    unit_id = Column(Integer, ForeignKey("units.id"))
    supplier_id = Column(Integer, ForeignKey("suppliers.id"))

    price = Column(DECIMAL(12, 2), nullable=False, default=0)
    cost_price = Column(DECIMAL(12, 2))
    quantity = Column(Integer, nullable=False, default=0)
    min_level = Column(Integer, nullable=False, default=0)
    max_level = Column(Integer)

    is_active = Column(Boolean, default=True, nullable=False, index=True)
    archived_at = Column(DateTime(timezone=True))
    archived_by = Column(Integer, ForeignKey("users.id"))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    category = relationship("Category")
    unit = relationship("Unit")
    discount = relationship("ProductDiscount", uselist=False, back_populates="item")


class StockHistory(Base):
    __tablename__ = "item_stock_history"

    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="CASCADE"), nullable=False, index=True)
    previous_quantity = Column(Integer, nullable=False)
    new_quantity = Column(Integer, nullable=False)
    change = Column(Integer, nullable=False)
    reason = Column(String(255))
    adjusted_by = Column(Integer, ForeignKey("users.id"))
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class PriceHistory(Base):
    __tablename__ = "item_price_history"

    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="CASCADE"), nullable=False, index=True)
    previous_price = Column(DECIMAL(12, 2), nullable=False)
    new_price = Column(DECIMAL(12, 2), nullable=False)
    reason = Column(String(255))
    changed_by = Column(Integer, ForeignKey("users.id"))
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class ProductDiscount(Base):
    __tablename__ = "product_discounts"
    __table_args__ = (UniqueConstraint("item_id", name="uq_product_discounts_item"),)

    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="CASCADE"), nullable=False)
    discount_percentage = Column(DECIMAL(5, 2), nullable=False)
    start_date = Column(Date)
    end_date = Column(Date)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    item = relationship("Item", back_populates="discount")


class Tier(Base):
    __tablename__ = "tiers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False, unique=True)
    discount_percent = Column(DECIMAL(5, 2), nullable=False, default=0)
    min_spend = Column(DECIMAL(14, 2), nullable=False, default=0)
    priority = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)
