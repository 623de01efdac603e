"""
Order Repository - Data Access Layer for Orders

Handles all database queries for orders and returns Order domain models.

Author: Ammex Dev Team
Date: 2025-03-06
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ammex.domain.order import Order, OrderItem
from ammex.repositories.base import BaseRepository

ORDER_SELECT = """
    SELECT
        o.id, o.order_number, o.customer_id, o.user_id, o.status,
        o.total_amount, o.discount_amount, o.final_amount, o.applied_discount,
        o.shipping_address, o.billing_address, o.notes, o.payment_terms, o.rejection_reason,
        o.order_date, o.created_at, o.updated_at,
        c.customer_name, c.customer_code,
        EXISTS (SELECT 1 FROM invoices inv WHERE inv.order_id = o.id) AS has_invoice
    FROM orders o
    LEFT JOIN customers c ON c.id = o.customer_id
"""

ORDER_ITEM_SELECT = """
    SELECT
        oi.id, oi.order_id, oi.item_id, oi.item_name, i.item_code,
        oi.quantity, oi.unit_price, oi.total_price
    FROM order_items oi
    LEFT JOIN items i ON i.id = oi.item_id
"""


class OrderRepository(BaseRepository):
    """
    Repository for Order data access

    All SQL queries for orders are centralized here.
    """

    def _attach_items(self, cursor, rows) -> List[Order]:
        if not rows:
            return []
        order_ids = [row["id"] for row in rows]
        cursor.execute(ORDER_ITEM_SELECT + " WHERE oi.order_id = ANY(%s) ORDER BY oi.id", (order_ids,))
        items_by_order: Dict[int, List[OrderItem]] = {}
        for item in cursor.fetchall():
            items_by_order.setdefault(item["order_id"], []).append(OrderItem(**item))

        orders = []
        for row in rows:
            data = dict(row)
            data["items"] = items_by_order.get(row["id"], [])
            orders.append(Order(**data))
        return orders

    def find_by_id(self, order_id: int, conn=None) -> Optional[Order]:
        with self.cursor(conn) as cursor:
            cursor.execute(ORDER_SELECT + " WHERE o.id = %s", (order_id,))
            row = cursor.fetchone()
            if not row:
                return None

            cursor.execute(ORDER_ITEM_SELECT + " WHERE oi.order_id = %s ORDER BY oi.id", (order_id,))
            data = dict(row)
            data["items"] = [OrderItem(**item) for item in cursor.fetchall()]
            return Order(**data)

    def find_by_number(self, order_number: str) -> Optional[Order]:
        with self.cursor() as cursor:
            cursor.execute("SELECT id FROM orders WHERE order_number = %s", (order_number,))
            row = cursor.fetchone()
        return self.find_by_id(row["id"]) if row else None

    def find_all(
        self,
        status: Optional[str] = None,
        customer_id: Optional[int] = None,
        from_date: Optional[str] = None,
        to_date: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 10,
        offset: int = 0
    ) -> Tuple[List[Order], int]:
        """
        Find orders with filters

        Args:
            status: Filter by order status
            customer_id: Restrict to one customer
            from_date: Orders placed on or after this date (YYYY-MM-DD)
            to_date: Orders placed on or before this date (YYYY-MM-DD)
            search: Order number or customer name

        Returns:
            Tuple of (list of orders, total count)
        """
        conditions = []
        params: List[Any] = []

        if status:
            conditions.append("o.status = %s")
            params.append(status)

        if customer_id:
            conditions.append("o.customer_id = %s")
            params.append(customer_id)

        if from_date:
            conditions.append("o.order_date::date >= %s")
            params.append(from_date)

        if to_date:
            conditions.append("o.order_date::date <= %s")
            params.append(to_date)

        if search:
            conditions.append("(o.order_number ILIKE %s OR c.customer_name ILIKE %s)")
            params.extend([f"%{search}%", f"%{search}%"])

        where = self.where_clause(conditions)

        with self.cursor() as cursor:
            cursor.execute(f"""
                SELECT COUNT(*) AS total
                FROM orders o
                LEFT JOIN customers c ON c.id = o.customer_id
                WHERE {where}
            """, params)
            total = self.count_from(cursor.fetchone())

            cursor.execute(
                ORDER_SELECT + f" WHERE {where} ORDER BY o.order_date DESC, o.id DESC LIMIT %s OFFSET %s",
                params + [limit, offset],
            )
            return self._attach_items(cursor, cursor.fetchall()), total

    def number_exists(self, order_number: str, conn=None) -> bool:
        with self.cursor(conn) as cursor:
            cursor.execute("SELECT 1 FROM orders WHERE order_number = %s", (order_number,))
            return cursor.fetchone() is not None

    def create(self, data: Dict[str, Any], items: Sequence[OrderItem], conn=None) -> Order:
        """Insert an order and its lines; must run inside the checkout transaction"""
        with self.cursor(conn) as cursor:
            cursor.execute("""
                INSERT INTO orders (
                    order_number, customer_id, user_id, status,
                    total_amount, discount_amount, final_amount, applied_discount,
                    shipping_address, billing_address, notes, payment_terms, order_date
                ) VALUES (
                    %s, %s, %s, 'pending', %s, %s, %s, %s, %s, %s, %s, %s, NOW()
                )
                RETURNING id
            """, (
                data["order_number"],
                data["customer_id"],
                data.get("user_id"),
                data["total_amount"],
                data.get("discount_amount", 0),
                data["final_amount"],
                data.get("applied_discount", "none"),
                data.get("shipping_address"),
                data.get("billing_address"),
                data.get("notes"),
                data.get("payment_terms"),
            ))
            order_id = cursor.fetchone()["id"]

            for item in items:
                cursor.execute("""
                    INSERT INTO order_items (order_id, item_id, item_name, quantity, unit_price, total_price)
                    VALUES (%s, %s, %s, %s, %s, %s)
                """, (order_id, item.item_id, item.item_name, item.quantity, item.unit_price, item.total_price))

        return self.find_by_id(order_id, conn=conn)

    def update_status(
        self,
        order_id: int,
        status: str,
        rejection_reason: Optional[str] = None,
        conn=None
    ) -> None:
        with self.cursor(conn) as cursor:
            cursor.execute("""
                UPDATE orders
                SET status = %s, rejection_reason = %s, updated_at = NOW()
                WHERE id = %s
            """, (status, rejection_reason, order_id))

    def delete(self, order_id: int) -> bool:
        with self.cursor() as cursor:
            cursor.execute("DELETE FROM order_items WHERE order_id = %s", (order_id,))
            cursor.execute("DELETE FROM orders WHERE id = %s RETURNING id", (order_id,))
            return cursor.fetchone() is not None
