"""
Cart Service

Server-side cart rules: one active cart per customer, stock-checked
quantities, price snapshots and the bulk sync used by client-side caches.

Author: Ammex Dev Team
Date: 2025-03-06
"""
import logging
from typing import Any, Dict, List

from ammex.core.exceptions import AmmexError, NotFoundError, ProfileIncomplete, ValidationFailed
from ammex.domain.cart import Cart, CartItem
from ammex.repositories.cart_repository import CartRepository
from ammex.repositories.customer_repository import CustomerRepository
from ammex.repositories.item_repository import ItemRepository

logger = logging.getLogger(__name__)


class CartService:

    def __init__(
        self,
        cart_repo: CartRepository = None,
        item_repo: ItemRepository = None,
        customer_repo: CustomerRepository = None
    ):
        self.cart_repo = cart_repo or CartRepository()
        self.item_repo = item_repo or ItemRepository()
        self.customer_repo = customer_repo or CustomerRepository()

    def get_or_create(self, customer_id: int) -> Cart:
        cart = self.cart_repo.find_active(customer_id)
        if cart:
            return cart

        if not self.customer_repo.find_by_id(customer_id):
            raise NotFoundError("Customer not found")

        logger.info(f"Creating cart for customer {customer_id}")
        return self.cart_repo.create(customer_id)

    def _require_active(self, customer_id: int) -> Cart:
        cart = self.cart_repo.find_active(customer_id)
        if not cart:
            raise NotFoundError("No active cart found")
        return cart

    @staticmethod
    def _validate_quantity(quantity) -> int:
        if quantity is None or int(quantity) < 1:
            raise ValidationFailed("Quantity must be at least 1")
        return int(quantity)

    def add_item(self, customer_id: int, item_id: int, quantity: int = 1) -> Cart:
        if not item_id:
            raise ValidationFailed("Item ID is required")
        quantity = self._validate_quantity(quantity)

        item = self.item_repo.find_by_id(item_id)
        if not item or not item.is_active:
            raise NotFoundError("Item not found")

        cart = self.get_or_create(customer_id)
        existing = cart.find_line(item_id)

        if existing:
            total = existing.quantity + quantity
            if total > item.quantity:
                raise AmmexError(
                    f"Cannot add {quantity} more. Total would exceed available stock: {item.quantity}"
                )
            self.cart_repo.update_item(existing.id, total, unit_price=item.price)
        else:
            if quantity > item.quantity:
                raise AmmexError(f"Insufficient stock. Available: {item.quantity}")
            self.cart_repo.add_item(cart.id, item_id, quantity, item.price)

        self.cart_repo.touch(cart.id)
        return self.cart_repo.find_active(customer_id)

    def get_line(self, cart_item_id: int) -> CartItem:
        line = self.cart_repo.find_item(cart_item_id)
        if not line:
            raise NotFoundError("Cart item not found")
        return line

    def update_item(self, line: CartItem, quantity: int) -> Cart:
        quantity = self._validate_quantity(quantity)

        item = self.item_repo.find_by_id(line.item_id)
        if not item or not item.is_active:
            raise NotFoundError("Item not found")
        if quantity > item.quantity:
            raise AmmexError(f"Insufficient stock. Available: {item.quantity}")

        self.cart_repo.update_item(line.id, quantity, unit_price=item.price)
        self.cart_repo.touch(line.cart_id)
        return self.cart_repo.find_active(line.customer_id)

    def remove_item(self, line: CartItem) -> Cart:
        self.cart_repo.remove_item(line.id)
        self.cart_repo.touch(line.cart_id)
        return self.cart_repo.find_active(line.customer_id)

    def clear(self, customer_id: int) -> Cart:
        cart = self._require_active(customer_id)
        self.cart_repo.clear(cart.id)
        self.cart_repo.touch(cart.id)
        cart.items = []
        return cart

    def convert(self, customer_id: int) -> Cart:
        """Mark the active cart as converted once the profile is complete"""
        customer = self.customer_repo.find_by_id(customer_id)
        if not customer:
            raise NotFoundError("Customer not found")
        missing = customer.missing_profile_fields()
        if missing:
            raise ProfileIncomplete(missing)

        cart = self._require_active(customer_id)
        self.cart_repo.set_status(cart.id, "converted")
        cart.status = "converted"
        return cart

    def sync(self, customer_id: int, lines: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Replace the cart contents with a client snapshot

        Unknown or archived items are dropped, quantities above stock are
        clamped. Returns the cart plus the list of adjustments made.
        """
        cart = self.get_or_create(customer_id)

        wanted: Dict[int, int] = {}
        for line in lines:
            item_id = int(line["item_id"])
            quantity = int(line.get("quantity") or 0)
            if quantity >= 1:
                wanted[item_id] = wanted.get(item_id, 0) + quantity

        items = self.item_repo.find_by_ids(wanted.keys())
        adjustments = []
        current = {line.item_id: line for line in cart.items}

        for item_id, quantity in wanted.items():
            item = items.get(item_id)
            if not item or not item.is_active or item.quantity <= 0:
                adjustments.append({"itemId": item_id, "action": "removed", "reason": "unavailable"})
                continue
            if quantity > item.quantity:
                adjustments.append({
                    "itemId": item_id, "action": "clamped",
                    "requested": quantity, "quantity": item.quantity,
                })
                quantity = item.quantity

            existing = current.pop(item_id, None)
            if existing:
                if existing.quantity != quantity or existing.unit_price != item.price:
                    self.cart_repo.update_item(existing.id, quantity, unit_price=item.price)
            else:
                self.cart_repo.add_item(cart.id, item_id, quantity, item.price)

        for stale in current.values():
            self.cart_repo.remove_item(stale.id)

        self.cart_repo.touch(cart.id)
        if adjustments:
            logger.info(f"Cart sync for customer {customer_id} adjusted {len(adjustments)} line(s)")

        return {"cart": self.cart_repo.find_active(customer_id), "adjustments": adjustments}
