"""
Repository Layer - Data Access

This layer handles all database queries and returns domain models.
Repositories abstract away SQL details from business logic.
"""
from ammex.repositories.user_repository import UserRepository
from ammex.repositories.customer_repository import CustomerRepository
from ammex.repositories.supplier_repository import SupplierRepository
from ammex.repositories.catalog_repository import CategoryRepository, UnitRepository
from ammex.repositories.item_repository import ItemRepository
from ammex.repositories.tier_repository import TierRepository
from ammex.repositories.cart_repository import CartRepository
from ammex.repositories.order_repository import OrderRepository
from ammex.repositories.invoice_repository import InvoiceRepository
from ammex.repositories.payment_repository import PaymentRepository
from ammex.repositories.notification_repository import NotificationRepository
from ammex.repositories.dashboard_repository import DashboardRepository

__all__ = [
    'UserRepository',
    'CustomerRepository',
    'SupplierRepository',
    'CategoryRepository',
    'UnitRepository',
    'ItemRepository',
    'TierRepository',
    'CartRepository',
    'OrderRepository',
    'InvoiceRepository',
    'PaymentRepository',
    'NotificationRepository',
    'DashboardRepository',
]
