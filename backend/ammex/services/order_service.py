"""
Order Service

Order status workflow. Approval takes stock, creates the invoice and
notifies the customer in one transaction; rejection records the reason.

Author: Ammex Dev Team
Date: 2025-03-09
"""
import logging
from typing import Optional

from ammex.core.database import transaction
from ammex.core.exceptions import NotFoundError, PermissionDenied, ValidationFailed
from ammex.domain.order import Order, ORDER_STATUSES
from ammex.repositories.order_repository import OrderRepository
from ammex.services.invoice_service import InvoiceService
from ammex.services.item_service import ItemService
from ammex.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class OrderService:

    def __init__(
        self,
        order_repo: OrderRepository = None,
        invoices: InvoiceService = None,
        items: ItemService = None,
        notifications: NotificationService = None
    ):
        self.order_repo = order_repo or OrderRepository()
        self.invoices = invoices or InvoiceService(order_repo=self.order_repo)
        self.items = items or ItemService()
        self.notifications = notifications or NotificationService()

    def get(self, order_id: int) -> Order:
        order = self.order_repo.find_by_id(order_id)
        if not order:
            raise NotFoundError("Order not found")
        return order

    def get_by_reference(self, reference: str) -> Order:
        """Look an order up by numeric id or order number"""
        order = None
        if str(reference).isdigit():
            order = self.order_repo.find_by_id(int(reference))
        if not order:
            order = self.order_repo.find_by_number(str(reference))
        if not order:
            raise NotFoundError("Order not found")
        return order

    def update_status(
        self,
        order_id: int,
        new_status: str,
        user_id: Optional[int],
        rejection_reason: Optional[str] = None
    ) -> Order:
        if new_status not in ORDER_STATUSES:
            raise ValidationFailed(f"Invalid status. Allowed: {', '.join(ORDER_STATUSES)}")

        order = self.get(order_id)
        if not order.can_transition_to(new_status):
            raise ValidationFailed(f"Cannot change order status from {order.status} to {new_status}")

        if new_status == "rejected" and not (rejection_reason or "").strip():
            raise ValidationFailed("Rejection reason is required")

        if new_status == "approved":
            return self._approve(order, user_id)

        reason = rejection_reason.strip() if new_status == "rejected" else None
        self.order_repo.update_status(order.id, new_status, reason)
        logger.info(f"Order {order.order_number} {order.status} -> {new_status}")

        if new_status == "rejected":
            self._notify(order, "order_rejected", "Order rejected",
                         f"Your order {order.order_number} was rejected: {reason}",
                         {"rejectionReason": reason})

        return self.get(order.id)

    def _approve(self, order: Order, user_id: Optional[int]) -> Order:
        with transaction() as conn:
            changed = self.items.decrement_for_order(order.items, user_id, order.order_number, conn)
            self.order_repo.update_status(order.id, "approved", None, conn=conn)
            invoice = self.invoices.create_from_order(order.id, user_id, conn=conn)

        logger.info(f"Order {order.order_number} approved, invoice {invoice.invoice_number}")

        for item, previous in changed:
            self.items.notifications.check_stock_levels(item, previous)

        self._notify(order, "order_approved", "Order approved",
                     f"Your order {order.order_number} was approved. Invoice {invoice.invoice_number} "
                     f"is due on {invoice.due_date.isoformat()}.",
                     {"invoiceId": invoice.id, "invoiceNumber": invoice.invoice_number})
        return self.get(order.id)

    def _notify(self, order: Order, type: str, title: str, message: str, extra: dict) -> None:
        try:
            self.notifications.notify_customer(
                order.customer_id, type, title, message,
                {"orderId": order.id, "orderNumber": order.order_number, **extra},
            )
        except Exception as e:
            logger.error(f"Could not notify customer about order {order.order_number}: {e}")

    def cancel(self, reference: str, customer_id: int) -> Order:
        """Client cancellation of an own pending order"""
        order = self.get_by_reference(reference)
        if order.customer_id != customer_id:
            raise PermissionDenied("Not authorized to cancel this order")
        if order.status != "pending":
            raise ValidationFailed("Only pending orders can be cancelled")

        self.order_repo.update_status(order.id, "cancelled")
        logger.info(f"Order {order.order_number} cancelled by customer {customer_id}")
        return self.get(order.id)

    def delete(self, order_id: int) -> None:
        order = self.get(order_id)
        if order.status in ("approved", "completed"):
            raise ValidationFailed("Approved orders cannot be deleted")
        self.order_repo.delete(order_id)
