"""
Notification Service

Creates customer and staff notifications and runs the stock level checks
that fire when an item's quantity crosses its minimum or maximum level.

Author: Ammex Dev Team
Date: 2025-03-14
"""
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ammex.core.auth import ROLE_WAREHOUSE, canonical_role, is_client
from ammex.core.exceptions import NotFoundError, PermissionDenied
from ammex.domain.catalog import Item
from ammex.domain.notification import Notification, AUDIENCE_CUSTOMER, AUDIENCE_STAFF, STOCK_TYPES
from ammex.domain.user import User
from ammex.repositories.notification_repository import NotificationRepository

logger = logging.getLogger(__name__)

SEVERITY_CRITICAL = "CRITICAL"
SEVERITY_HIGH = "HIGH"
SEVERITY_MEDIUM = "MEDIUM"


def stock_severity(quantity: int, min_level: int) -> str:
    if quantity <= 0:
        return SEVERITY_CRITICAL
    if quantity <= min_level * 0.3:
        return SEVERITY_HIGH
    return SEVERITY_MEDIUM


class NotificationService:

    def __init__(self, repo: NotificationRepository = None):
        self.repo = repo or NotificationRepository()

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def notify_customer(self, customer_id: int, type: str, title: str, message: str,
                        data: Optional[Dict[str, Any]] = None, conn=None) -> Notification:
        return self.repo.create(
            type=type, title=title, message=message, customer_id=customer_id,
            audience=AUDIENCE_CUSTOMER, data=data, conn=conn,
        )

    def notify_staff(self, type: str, title: str, message: str,
                     data: Optional[Dict[str, Any]] = None, conn=None) -> Notification:
        return self.repo.create(
            type=type, title=title, message=message, customer_id=None,
            audience=AUDIENCE_STAFF, data=data, conn=conn,
        )

    def check_stock_levels(self, item: Item, previous_quantity: Optional[int] = None) -> List[Notification]:
        """
        Emit stock_low / stock_high when the quantity crosses a threshold

        A low alert fires when quantity drops to min_level or below from
        above it (or when there is no previous quantity). A high alert fires
        when max_level is set and quantity reaches it from below. Errors are
        logged and never propagate to the stock operation.
        """
        created = []
        try:
            quantity = item.quantity
            min_level = item.min_level or 0
            max_level = item.max_level

            crossed_low = quantity <= min_level and (previous_quantity is None or previous_quantity > min_level)
            if crossed_low:
                severity = stock_severity(quantity, min_level)
                reorder_amount = max(0, min_level - quantity)
                created.append(self.notify_staff(
                    type="stock_low",
                    title=f"Low stock: {item.item_name}",
                    message=(
                        f"{item.item_name} ({item.item_code}) is at {quantity} units, "
                        f"minimum level is {min_level}. Reorder {reorder_amount} units."
                    ),
                    data={
                        "itemId": item.id,
                        "itemCode": item.item_code,
                        "quantity": quantity,
                        "minLevel": min_level,
                        "severity": severity,
                        "reorderAmount": reorder_amount,
                    },
                ))
                logger.info(f"stock_low ({severity}) raised for item {item.id} at {quantity}")

            crossed_high = (
                max_level is not None and max_level > 0 and quantity >= max_level
                and (previous_quantity is None or previous_quantity < max_level)
            )
            if crossed_high:
                excess = quantity - max_level
                created.append(self.notify_staff(
                    type="stock_high",
                    title=f"Overstock: {item.item_name}",
                    message=(
                        f"{item.item_name} ({item.item_code}) is at {quantity} units, "
                        f"maximum level is {max_level}."
                    ),
                    data={
                        "itemId": item.id,
                        "itemCode": item.item_code,
                        "quantity": quantity,
                        "maxLevel": max_level,
                        "excessAmount": excess,
                    },
                ))
                logger.info(f"stock_high raised for item {item.id} at {quantity}")

        except Exception as e:
            logger.error(f"Stock level check failed for item {item.id}: {e}")

        return created

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    @staticmethod
    def scope_for(user: User) -> Tuple[Optional[int], Optional[Sequence[str]]]:
        """
        (customer_id, types) visible to a user

        Clients see their own notifications, warehouse staff only stock
        alerts, other staff everything addressed to staff.
        """
        if is_client(user):
            if not user.customer_id:
                raise NotFoundError("No customer record linked to this account")
            return user.customer_id, None
        if canonical_role(user.role) == ROLE_WAREHOUSE:
            return None, STOCK_TYPES
        return None, None

    def list_for(self, user: User, unread_only: bool = False, limit: int = 50, offset: int = 0):
        customer_id, types = self.scope_for(user)
        return self.repo.find_for(customer_id, types, unread_only=unread_only, limit=limit, offset=offset)

    def list_stock(self, unread_only: bool = False, limit: int = 50):
        return self.repo.find_for(None, STOCK_TYPES, unread_only=unread_only, limit=limit)

    def mark_read(self, user: User, notification_id: int) -> Notification:
        notification = self.repo.find_by_id(notification_id)
        if not notification:
            raise NotFoundError("Notification not found")

        customer_id, _ = self.scope_for(user)
        if customer_id is not None and notification.customer_id != customer_id:
            raise PermissionDenied("Not authorized to update this notification")
        if customer_id is None and notification.audience != AUDIENCE_STAFF:
            raise PermissionDenied("Not authorized to update this notification")

        self.repo.mark_read(notification_id)
        notification.is_read = True
        return notification

    def mark_all_read(self, user: User) -> int:
        customer_id, types = self.scope_for(user)
        return self.repo.mark_all_read(customer_id, types)

    def stats(self, user: User) -> Dict[str, Any]:
        customer_id, types = self.scope_for(user)
        return self.repo.stats(customer_id, types)
