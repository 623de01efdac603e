"""
Checkout Service

Two-phase checkout over the active cart. preview() prices the selected lines
without side effects; confirm() re-validates and re-prices them inside one
transaction, creates the order and removes only the ordered lines from the
cart.

Author: Ammex Dev Team
Date: 2025-03-08
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ammex.core.config import settings
from ammex.core.database import transaction
from ammex.core.exceptions import AmmexError, NotFoundError, ProfileIncomplete, ValidationFailed
from ammex.domain.cart import Cart, CartItem
from ammex.domain.customer import Customer
from ammex.domain.order import Order, OrderItem
from ammex.domain.pricing import DiscountBreakdown, PricedLine
from ammex.repositories.cart_repository import CartRepository
from ammex.repositories.customer_repository import CustomerRepository
from ammex.repositories.item_repository import ItemRepository
from ammex.repositories.order_repository import OrderRepository
from ammex.services.notification_service import NotificationService
from ammex.services.numbering import document_number, generate_unique_number
from ammex.services.pricing_service import PricingService, money

logger = logging.getLogger(__name__)


def select_lines(
    cart: Cart,
    cart_item_ids: Optional[Sequence[int]] = None,
    item_ids: Optional[Sequence[int]] = None
) -> List[CartItem]:
    """Cart lines chosen by cart item id, or by item id when none are given"""
    if cart_item_ids:
        wanted = {int(v) for v in cart_item_ids}
        return [line for line in cart.items if line.id in wanted]
    if item_ids:
        wanted = {int(v) for v in item_ids}
        return [line for line in cart.items if line.item_id in wanted]
    return []


def order_lines(lines: List[PricedLine], breakdown: DiscountBreakdown) -> List[OrderItem]:
    """
    Order items for the chosen discount path

    Product path keeps the discounted unit prices; tier and none use base
    prices and the tier reduction lives on the order as discount_amount.
    """
    use_discounted = breakdown.applied == "product"
    result = []
    for line in lines:
        unit_price = line.unit_price if use_discounted else line.base_price
        result.append(OrderItem(
            item_id=line.item_id,
            item_name=line.name,
            quantity=line.quantity,
            unit_price=unit_price,
            total_price=money(unit_price * line.quantity),
        ))
    return result


class CheckoutService:

    def __init__(
        self,
        cart_repo: CartRepository = None,
        customer_repo: CustomerRepository = None,
        item_repo: ItemRepository = None,
        order_repo: OrderRepository = None,
        pricing: PricingService = None,
        notifications: NotificationService = None
    ):
        self.cart_repo = cart_repo or CartRepository()
        self.customer_repo = customer_repo or CustomerRepository()
        self.item_repo = item_repo or ItemRepository()
        self.order_repo = order_repo or OrderRepository()
        self.pricing = pricing or PricingService()
        self.notifications = notifications or NotificationService()

    def _load(self, customer_id: int, cart_item_ids, item_ids, conn=None) -> Tuple[Customer, Cart, List[CartItem]]:
        customer = self.customer_repo.find_by_id(customer_id, conn=conn)
        if not customer:
            raise NotFoundError("Customer not found")

        cart = self.cart_repo.find_active(customer_id, conn=conn)
        if not cart:
            raise NotFoundError("No active cart found for customer")

        selected = select_lines(cart, cart_item_ids, item_ids)
        if not selected:
            raise ValidationFailed("No selected items found in cart")

        return customer, cart, selected

    def _price(self, customer_id: int, selected: List[CartItem], conn=None,
               lock: bool = False) -> Tuple[List[PricedLine], DiscountBreakdown]:
        lines = []
        for cart_line in selected:
            item = self.item_repo.find_by_id(cart_line.item_id, conn=conn, for_update=lock)
            if not item or not item.is_active:
                raise NotFoundError(f"Item {cart_line.item_name or cart_line.item_id} is no longer available")
            if lock and cart_line.quantity > item.quantity:
                raise AmmexError(f"Insufficient stock for {item.item_name}. Available: {item.quantity}")
            lines.append(self.pricing.price_line(item, cart_line.quantity, cart_item_id=cart_line.id))

        return lines, self.pricing.breakdown_for_customer(customer_id, lines, conn=conn)

    @staticmethod
    def _line_dicts(lines: List[PricedLine]) -> List[Dict[str, Any]]:
        return [
            {
                "itemId": line.item_id,
                "cartItemId": line.cart_item_id,
                "name": line.name,
                "basePrice": float(line.base_price),
                "price": float(line.unit_price),
                "discountPercentage": float(line.product_discount_percent),
                "quantity": line.quantity,
                "total": float(line.line_total),
            }
            for line in lines
        ]

    def preview(
        self,
        customer_id: int,
        cart_item_ids: Optional[Sequence[int]] = None,
        item_ids: Optional[Sequence[int]] = None
    ) -> Dict[str, Any]:
        """
        Price the selection without writing anything

        An incomplete profile is reported as a warning here and enforced by
        confirm().
        """
        customer, _, selected = self._load(customer_id, cart_item_ids, item_ids)
        lines, breakdown = self._price(customer_id, selected)
        missing = customer.missing_profile_fields()

        return {
            "orderNumber": document_number("ORD"),
            "status": "pending",
            "orderDate": datetime.now(timezone.utc).isoformat(),
            "items": self._line_dicts(lines),
            "subtotal": float(breakdown.base_subtotal),
            "totalAmount": float(breakdown.chosen_total),
            "discount": breakdown.to_dict(),
            "paymentTerms": settings.default_payment_terms,
            "warnings": {
                "profileIncomplete": bool(missing),
                "missingFields": missing,
            },
        }

    def confirm(
        self,
        customer_id: int,
        user_id: Optional[int],
        cart_item_ids: Optional[Sequence[int]] = None,
        item_ids: Optional[Sequence[int]] = None,
        notes: Optional[str] = None,
        payment_terms: Optional[str] = None
    ) -> Order:
        """
        Create the order from the selected cart lines in one transaction

        Raises:
            ProfileIncomplete: Required customer fields are blank
            AmmexError: A line exceeds the stock available right now
        """
        with transaction() as conn:
            customer, cart, selected = self._load(customer_id, cart_item_ids, item_ids, conn=conn)

            missing = customer.missing_profile_fields()
            if missing:
                raise ProfileIncomplete(missing)

            lines, breakdown = self._price(customer_id, selected, conn=conn, lock=True)
            items = order_lines(lines, breakdown)

            order_number = generate_unique_number(
                "ORD", lambda number: self.order_repo.number_exists(number, conn=conn)
            )
            address = customer.address_json()
            order = self.order_repo.create({
                "order_number": order_number,
                "customer_id": customer_id,
                "user_id": user_id,
                "total_amount": breakdown.base_subtotal,
                "discount_amount": breakdown.discount_amount,
                "final_amount": breakdown.chosen_total,
                "applied_discount": breakdown.applied,
                "shipping_address": address,
                "billing_address": address,
                "notes": notes,
                "payment_terms": payment_terms or settings.default_payment_terms,
            }, items, conn=conn)

            self.cart_repo.remove_items(cart.id, [line.id for line in selected], conn=conn)
            self.cart_repo.touch(cart.id, conn=conn)

        logger.info(
            f"Order {order.order_number} placed by customer {customer_id}: "
            f"{len(items)} line(s), {order.final_amount} ({breakdown.applied} discount)"
        )

        try:
            self.notifications.notify_staff(
                type="general",
                title="New order",
                message=f"{customer.customer_name} placed order {order.order_number}",
                data={"orderId": order.id, "orderNumber": order.order_number},
            )
        except Exception as e:
            logger.error(f"Could not notify staff about order {order.order_number}: {e}")

        return order
