"""
Database schema (SQLAlchemy declarative models)

Repositories query these tables with raw SQL; the declarations here are the
source used by scripts/init_db.py to create them.
"""
from .user import User, Customer, Supplier
from .catalog import Category, Unit, Item, StockHistory, PriceHistory, ProductDiscount, Tier
from .order import Cart, CartItem, Order, OrderItem
from .invoice import Invoice, InvoiceItem, Payment, PaymentHistory
from .notification import Notification

__all__ = [
    "User",
    "Customer",
    "Supplier",
    "Category",
    "Unit",
    "Item",
    "StockHistory",
    "PriceHistory",
    "ProductDiscount",
    "Tier",
    "Cart",
    "CartItem",
    "Order",
    "OrderItem",
    "Invoice",
    "InvoiceItem",
    "Payment",
    "PaymentHistory",
    "Notification",
]
