"""
Ammex Commerce Backend

B2B catalog, cart, checkout and order-to-cash workflow (orders, invoices,
payments) with back-office administration for inventory and customers.
"""
__version__ = "1.0.0"
