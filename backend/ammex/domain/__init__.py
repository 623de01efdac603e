"""
Domain Layer - Business Entities

Pydantic models representing Ammex business entities. Repositories return
these, services operate on them and API handlers serialize them with
to_dict().
"""
from ammex.domain.user import User
from ammex.domain.customer import Customer, Supplier
from ammex.domain.catalog import Category, Unit, Item, StockHistory, PriceHistory, ProductDiscount, Tier
from ammex.domain.cart import Cart, CartItem
from ammex.domain.order import Order, OrderItem
from ammex.domain.invoice import Invoice, InvoiceItem
from ammex.domain.payment import Payment, PaymentHistoryEntry
from ammex.domain.notification import Notification
from ammex.domain.pricing import PricedLine, DiscountBreakdown, PricedCart

__all__ = [
    'User', 'Customer', 'Supplier',
    'Category', 'Unit', 'Item', 'StockHistory', 'PriceHistory', 'ProductDiscount', 'Tier',
    'Cart', 'CartItem', 'Order', 'OrderItem', 'Invoice', 'InvoiceItem',
    'Payment', 'PaymentHistoryEntry', 'Notification',
    'PricedLine', 'DiscountBreakdown', 'PricedCart',
]
