"""
Item Service

Inventory rules on top of ItemRepository: item code generation, archiving,
stock adjustments with history and alerts, price changes with history and
product discounts.

Author: Ammex Dev Team
Date: 2025-03-04
"""
import logging
import re
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ammex.core.database import transaction
from ammex.core.exceptions import AmmexError, NotFoundError, ValidationFailed
from ammex.domain.catalog import Item
from ammex.repositories.catalog_repository import CategoryRepository
from ammex.repositories.item_repository import ItemRepository
from ammex.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

RUNNING_NUMBER = re.compile(r"^\d{3,}$")


def code_prefix(value: Optional[str]) -> str:
    return (value or "").strip()[:3].upper()


def build_item_code(vendor: str, category_name: str, running_number: int, model_no: Optional[str]) -> str:
    """VEN-CAT-###-MODEL"""
    return f"{code_prefix(vendor)}-{code_prefix(category_name)}-{running_number:03d}-{(model_no or '').strip()}"


def running_number_of(item_code: str) -> Optional[int]:
    parts = (item_code or "").split("-")
    if len(parts) > 2 and RUNNING_NUMBER.match(parts[2]):
        return int(parts[2])
    return None


def model_no_of(item_code: str) -> str:
    parts = (item_code or "").split("-", 3)
    return parts[3] if len(parts) > 3 else ""


class ItemService:

    def __init__(
        self,
        item_repo: ItemRepository = None,
        category_repo: CategoryRepository = None,
        notifications: NotificationService = None
    ):
        self.item_repo = item_repo or ItemRepository()
        self.category_repo = category_repo or CategoryRepository()
        self.notifications = notifications or NotificationService()

    def get(self, item_id: int) -> Item:
        item = self.item_repo.find_by_id(item_id)
        if not item:
            raise NotFoundError("Item not found")
        return item

    def _category_name(self, category_id: Optional[int]) -> str:
        category = self.category_repo.find_by_id(category_id) if category_id else None
        if not category:
            raise ValidationFailed("Invalid categoryId")
        return category.name

    def create(self, data: Dict[str, Any]) -> Item:
        vendor = (data.get("vendor") or "").strip()
        if not vendor:
            raise ValidationFailed("Vendor is required")

        category_name = self._category_name(data.get("category_id"))
        running_number = self.item_repo.max_running_number() + 1
        code = build_item_code(vendor, category_name, running_number, data.get("model_no"))
        if self.item_repo.code_exists(code):
            raise ValidationFailed("Item code already exists")

        item = self.item_repo.create({**data, "vendor": vendor, "item_code": code})
        logger.info(f"Item {item.id} created with code {code}")
        self.notifications.check_stock_levels(item)
        return item

    def update(self, item_id: int, data: Dict[str, Any]) -> Item:
        current = self.get(item_id)
        fields = dict(data)

        explicit_code = fields.get("item_code")
        if explicit_code and explicit_code != current.item_code:
            if self.item_repo.code_exists(explicit_code, exclude_id=item_id):
                raise ValidationFailed("Item code already exists")

        # Regenerate the code but keep the running number
        if any(fields.get(key) for key in ("vendor", "category_id", "model_no")):
            vendor = fields.get("vendor") or current.vendor
            category_name = self._category_name(fields.get("category_id") or current.category_id)
            running_number = running_number_of(current.item_code) or 1
            model_no = fields.get("model_no") or current.model_no or model_no_of(current.item_code)
            new_code = build_item_code(vendor, category_name, running_number, model_no)
            if new_code != current.item_code and self.item_repo.code_exists(new_code, exclude_id=item_id):
                raise ValidationFailed("Item code already exists")
            fields["item_code"] = new_code

        updated = self.item_repo.update(item_id, fields)
        if not updated:
            raise NotFoundError("Item not found")
        return updated

    def archive(self, item_id: int, user_id: Optional[int]) -> Item:
        item = self.get(item_id)
        if not item.is_active:
            raise ValidationFailed("Item is already archived")
        self.item_repo.archive(item_id, user_id)
        logger.info(f"Item {item_id} archived by user {user_id}")
        return self.get(item_id)

    def restore(self, item_id: int) -> Item:
        item = self.get(item_id)
        if item.is_active:
            raise ValidationFailed("Item is already active")
        self.item_repo.restore(item_id)
        return self.get(item_id)

    def adjust_stock(
        self,
        item_id: int,
        user_id: Optional[int],
        quantity: Optional[int] = None,
        adjustment: Optional[int] = None,
        reason: Optional[str] = None
    ) -> Item:
        """
        Set (quantity) or shift (adjustment) the stock of an item

        The resulting quantity may not be negative. The movement is recorded
        in stock history and stock alerts are evaluated.
        """
        if quantity is None and adjustment is None:
            raise ValidationFailed("Either quantity or adjustment is required")

        with transaction() as conn:
            item = self.item_repo.find_by_id(item_id, conn=conn, for_update=True)
            if not item:
                raise NotFoundError("Item not found")
            previous = item.quantity
            new_quantity = quantity if quantity is not None else previous + adjustment
            if new_quantity < 0:
                raise ValidationFailed(f"Stock cannot be negative. Current stock: {previous}")

            self.item_repo.update_quantity(item_id, new_quantity, conn=conn)
            self.item_repo.add_stock_history(
                item_id, previous, new_quantity, reason or "Manual adjustment", user_id, conn=conn
            )

        item.quantity = new_quantity
        self.notifications.check_stock_levels(item, previous)
        return item

    def change_price(self, item_id: int, price: Decimal, user_id: Optional[int], reason: Optional[str] = None) -> Item:
        if price is None or Decimal(str(price)) < 0:
            raise ValidationFailed("Price must be zero or greater")

        item = self.get(item_id)
        new_price = Decimal(str(price))
        if new_price == item.price:
            return item

        self.item_repo.update_price(item_id, new_price)
        self.item_repo.add_price_history(item_id, item.price, new_price, reason or "Price update", user_id)
        logger.info(f"Item {item_id} price changed {item.price} -> {new_price}")
        item.price = new_price
        return item

    # ------------------------------------------------------------------
    # Product discounts
    # ------------------------------------------------------------------

    def apply_discount(
        self,
        item_ids: List[int],
        percentage: Decimal,
        user_id: Optional[int],
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[Item]:
        pct = Decimal(str(percentage))
        if pct <= 0 or pct > 100:
            raise ValidationFailed("Discount percentage must be between 0 and 100")
        if start_date and end_date and end_date < start_date:
            raise ValidationFailed("End date cannot be before start date")
        if not item_ids:
            raise ValidationFailed("At least one item is required")

        items = self.item_repo.find_by_ids(item_ids)
        missing = [i for i in item_ids if i not in items]
        if missing:
            raise NotFoundError(f"Items not found: {', '.join(str(i) for i in missing)}")

        for item_id in item_ids:
            self.item_repo.upsert_discount(item_id, pct, start_date, end_date, user_id)

        return list(self.item_repo.find_by_ids(item_ids).values())

    def remove_discount(self, item_id: int) -> None:
        if not self.item_repo.remove_discount(item_id):
            raise NotFoundError("No discount found for this item")

    def decrement_for_order(self, lines, user_id: Optional[int], order_number: str, conn) -> List[tuple]:
        """
        Take ordered quantities out of stock inside the approval transaction

        Returns:
            List of (item, previous quantity) for post-commit stock alerts
        """
        changed = []
        for line in lines:
            item = self.item_repo.find_by_id(line.item_id, conn=conn, for_update=True)
            if not item:
                raise NotFoundError(f"Item {line.item_id} no longer exists")
            if item.quantity < line.quantity:
                raise AmmexError(
                    f"Insufficient stock for {item.item_name}. Available: {item.quantity}"
                )
            previous = item.quantity
            item.quantity = previous - line.quantity
            self.item_repo.update_quantity(item.id, item.quantity, conn=conn)
            self.item_repo.add_stock_history(
                item.id, previous, item.quantity, f"Order {order_number} approved", user_id, conn=conn
            )
            changed.append((item, previous))
        return changed
