"""
Cart Repository - Data Access Layer for carts and cart items

Author: Ammex Dev Team
Date: 2025-03-06
"""
from decimal import Decimal
from typing import List, Optional, Sequence

from ammex.domain.cart import Cart, CartItem
from ammex.repositories.base import BaseRepository

CART_ITEM_SELECT = """
    SELECT
        ci.id, ci.cart_id, ci.item_id, ci.quantity, ci.unit_price, ci.added_at,
        c.customer_id,
        i.item_name, i.item_code, i.vendor, i.price,
        i.quantity AS available_quantity,
        i.is_active AS item_active
    FROM cart_items ci
    JOIN carts c ON c.id = ci.cart_id
    JOIN items i ON i.id = ci.item_id
"""


class CartRepository(BaseRepository):
    """
    Repository for carts

    A customer has at most one cart with status 'active'.
    """

    def find_active(self, customer_id: int, conn=None) -> Optional[Cart]:
        with self.cursor(conn) as cursor:
            cursor.execute("""
                SELECT id, customer_id, status, last_updated, created_at
                FROM carts
                WHERE customer_id = %s AND status = 'active'
                ORDER BY id DESC
                LIMIT 1
            """, (customer_id,))
            row = cursor.fetchone()
            if not row:
                return None

            cursor.execute(
                CART_ITEM_SELECT + " WHERE ci.cart_id = %s ORDER BY ci.added_at DESC, ci.id DESC",
                (row["id"],),
            )
            cart = dict(row)
            cart["items"] = [CartItem(**item) for item in cursor.fetchall()]
            return Cart(**cart)

    def create(self, customer_id: int, conn=None) -> Cart:
        with self.cursor(conn) as cursor:
            cursor.execute("""
                INSERT INTO carts (customer_id, status, last_updated)
                VALUES (%s, 'active', NOW())
                RETURNING id, customer_id, status, last_updated, created_at
            """, (customer_id,))
            return Cart(**cursor.fetchone())

    def find_item(self, cart_item_id: int) -> Optional[CartItem]:
        with self.cursor() as cursor:
            cursor.execute(CART_ITEM_SELECT + " WHERE ci.id = %s", (cart_item_id,))
            row = cursor.fetchone()
            return CartItem(**row) if row else None

    def add_item(self, cart_id: int, item_id: int, quantity: int, unit_price: Decimal, conn=None) -> None:
        with self.cursor(conn) as cursor:
            cursor.execute("""
                INSERT INTO cart_items (cart_id, item_id, quantity, unit_price, added_at)
                VALUES (%s, %s, %s, %s, NOW())
            """, (cart_id, item_id, quantity, unit_price))

    def update_item(self, cart_item_id: int, quantity: int, unit_price: Optional[Decimal] = None, conn=None) -> None:
        with self.cursor(conn) as cursor:
            if unit_price is None:
                cursor.execute(
                    "UPDATE cart_items SET quantity = %s WHERE id = %s",
                    (quantity, cart_item_id),
                )
            else:
                cursor.execute(
                    "UPDATE cart_items SET quantity = %s, unit_price = %s WHERE id = %s",
                    (quantity, unit_price, cart_item_id),
                )

    def remove_item(self, cart_item_id: int, conn=None) -> None:
        with self.cursor(conn) as cursor:
            cursor.execute("DELETE FROM cart_items WHERE id = %s", (cart_item_id,))

    def remove_items(self, cart_id: int, cart_item_ids: Sequence[int], conn=None) -> int:
        """Delete the given lines of one cart, returns how many were removed"""
        if not cart_item_ids:
            return 0
        with self.cursor(conn) as cursor:
            cursor.execute(
                "DELETE FROM cart_items WHERE cart_id = %s AND id = ANY(%s)",
                (cart_id, list(cart_item_ids)),
            )
            return cursor.rowcount

    def clear(self, cart_id: int, conn=None) -> None:
        with self.cursor(conn) as cursor:
            cursor.execute("DELETE FROM cart_items WHERE cart_id = %s", (cart_id,))

    def touch(self, cart_id: int, conn=None) -> None:
        with self.cursor(conn) as cursor:
            cursor.execute("UPDATE carts SET last_updated = NOW() WHERE id = %s", (cart_id,))

    def set_status(self, cart_id: int, status: str, conn=None) -> None:
        with self.cursor(conn) as cursor:
            cursor.execute(
                "UPDATE carts SET status = %s, last_updated = NOW() WHERE id = %s",
                (status, cart_id),
            )

