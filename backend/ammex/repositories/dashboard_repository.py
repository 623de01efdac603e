"""
Dashboard Repository - aggregate queries for dashboards and analytics

Author: Ammex Dev Team
Date: 2025-03-18
"""
from datetime import date
from typing import Any, Dict, List, Optional

from ammex.repositories.base import BaseRepository


class DashboardRepository(BaseRepository):

    def sales_for_day(self, day: date) -> Dict[str, Any]:
        """Invoice-based sales for one calendar day, rejected invoices excluded"""
        with self.cursor() as cursor:
            cursor.execute("""
                SELECT
                    COALESCE(SUM(total_amount), 0) AS total_sales,
                    COUNT(*) AS total_orders,
                    COALESCE(AVG(total_amount), 0) AS avg_order_value,
                    COUNT(DISTINCT customer_id) AS unique_customers
                FROM invoices
                WHERE invoice_date = %s AND status <> 'rejected'
            """, (day,))
            return dict(cursor.fetchone())

    def pending_orders(self) -> int:
        with self.cursor() as cursor:
            cursor.execute("SELECT COUNT(*) AS total FROM orders WHERE status = 'pending'")
            return self.count_from(cursor.fetchone())

    def inventory_metrics(self) -> Dict[str, Any]:
        with self.cursor() as cursor:
            cursor.execute("""
                SELECT
                    COUNT(*) AS total_items,
                    COUNT(*) FILTER (WHERE quantity > 0 AND quantity < min_level) AS low_stock,
                    COUNT(*) FILTER (WHERE quantity = 0) AS out_of_stock,
                    COUNT(*) FILTER (WHERE quantity <= min_level * 0.5) AS reorder_pending,
                    COALESCE(SUM(quantity * price), 0) AS total_stock_value
                FROM items
                WHERE is_active = TRUE
            """)
            return dict(cursor.fetchone())

    def customer_metrics(self, day: date) -> Dict[str, Any]:
        with self.cursor() as cursor:
            cursor.execute("""
                SELECT
                    COUNT(*) FILTER (WHERE is_active) AS active_customers,
                    COUNT(*) FILTER (WHERE created_at::date = %s) AS new_customers_today
                FROM customers
            """, (day,))
            return dict(cursor.fetchone())

    def inventory_alert_rows(self) -> List[Dict[str, Any]]:
        """Active items at or under their minimum level"""
        with self.cursor() as cursor:
            cursor.execute("""
                SELECT i.id, i.item_code, i.item_name, i.vendor, i.quantity, i.min_level, i.max_level,
                       cat.name AS category_name
                FROM items i
                LEFT JOIN categories cat ON cat.id = i.category_id
                WHERE i.is_active = TRUE AND i.quantity <= i.min_level
                ORDER BY i.quantity ASC, i.item_name
            """)
            return [dict(row) for row in cursor.fetchall()]

    def sales_trend(self, start_date: date, end_date: date, group_by: str = "month") -> List[Dict[str, Any]]:
        """Invoice totals bucketed by day, week or month"""
        if group_by not in ("day", "week", "month"):
            raise ValueError("group_by must be 'day', 'week', or 'month'")

        with self.cursor() as cursor:
            cursor.execute(f"""
                SELECT
                    DATE_TRUNC('{group_by}', invoice_date)::date AS period,
                    COALESCE(SUM(total_amount), 0) AS total_sales,
                    COUNT(*) AS total_orders,
                    COALESCE(SUM(paid_amount), 0) AS collected
                FROM invoices
                WHERE invoice_date BETWEEN %s AND %s AND status <> 'rejected'
                GROUP BY 1
                ORDER BY 1
            """, (start_date, end_date))
            return [dict(row) for row in cursor.fetchall()]

    def top_products(self, start_date: date, end_date: date, limit: int = 10) -> List[Dict[str, Any]]:
        with self.cursor() as cursor:
            cursor.execute("""
                SELECT
                    ii.item_id, MAX(ii.item_name) AS item_name,
                    SUM(ii.quantity) AS quantity_sold,
                    SUM(ii.total_price) AS revenue
                FROM invoice_items ii
                JOIN invoices inv ON inv.id = ii.invoice_id
                WHERE inv.invoice_date BETWEEN %s AND %s AND inv.status <> 'rejected'
                GROUP BY ii.item_id
                ORDER BY revenue DESC
                LIMIT %s
            """, (start_date, end_date, limit))
            return [dict(row) for row in cursor.fetchall()]

    def top_customers(self, start_date: date, end_date: date, limit: int = 10) -> List[Dict[str, Any]]:
        with self.cursor() as cursor:
            cursor.execute("""
                SELECT
                    c.id AS customer_id, c.customer_name, c.customer_code, t.name AS tier_name,
                    COUNT(inv.id) AS invoices,
                    COALESCE(SUM(inv.total_amount), 0) AS total_spent,
                    COALESCE(SUM(inv.remaining_balance), 0) AS outstanding
                FROM invoices inv
                JOIN customers c ON c.id = inv.customer_id
                LEFT JOIN tiers t ON t.id = c.tier_id
                WHERE inv.invoice_date BETWEEN %s AND %s AND inv.status <> 'rejected'
                GROUP BY c.id, t.name
                ORDER BY total_spent DESC
                LIMIT %s
            """, (start_date, end_date, limit))
            return [dict(row) for row in cursor.fetchall()]

    def cart_insights(self, abandoned_days: int) -> Dict[str, Any]:
        with self.cursor() as cursor:
            cursor.execute("""
                SELECT
                    COUNT(DISTINCT c.id) AS active_carts,
                    COALESCE(SUM(ci.quantity), 0) AS items_in_carts,
                    COALESCE(SUM(ci.quantity * ci.unit_price), 0) AS cart_value,
                    COUNT(DISTINCT c.id) FILTER (
                        WHERE c.last_updated < NOW() - (%s || ' days')::interval
                    ) AS abandoned_carts
                FROM carts c
                JOIN cart_items ci ON ci.cart_id = c.id
                WHERE c.status = 'active'
            """, (str(abandoned_days),))
            return dict(cursor.fetchone())

    def invoice_status_counts(self, customer_id: Optional[int] = None) -> Dict[str, int]:
        params: List[Any] = []
        where = ""
        if customer_id:
            where = "WHERE customer_id = %s"
            params.append(customer_id)
        with self.cursor() as cursor:
            cursor.execute(f"SELECT status, COUNT(*) AS total FROM invoices {where} GROUP BY status", params)
            return {row["status"]: int(row["total"]) for row in cursor.fetchall()}

    def outstanding_balance(self) -> Dict[str, Any]:
        with self.cursor() as cursor:
            cursor.execute("""
                SELECT
                    COALESCE(SUM(remaining_balance), 0) AS outstanding,
                    COALESCE(SUM(remaining_balance) FILTER (WHERE status = 'overdue'), 0) AS overdue
                FROM invoices
                WHERE status NOT IN ('completed', 'rejected')
            """)
            return dict(cursor.fetchone())

    def pending_payments(self) -> int:
        with self.cursor() as cursor:
            cursor.execute("SELECT COUNT(*) AS total FROM payments WHERE status = 'pending_approval'")
            return self.count_from(cursor.fetchone())
