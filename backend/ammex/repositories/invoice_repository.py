"""
Invoice Repository - Data Access Layer for invoices

Author: Ammex Dev Team
Date: 2025-03-10
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ammex.domain.invoice import Invoice, InvoiceItem, STATUS_COMPLETED, STATUS_REJECTED
from ammex.repositories.base import BaseRepository

INVOICE_SELECT = """
    SELECT
        inv.id, inv.invoice_number, inv.order_id, inv.customer_id,
        inv.invoice_date, inv.due_date,
        inv.total_amount, inv.paid_amount, inv.remaining_balance,
        inv.status, inv.payment_terms, inv.notes, inv.created_by,
        inv.created_at, inv.updated_at,
        o.order_number,
        c.customer_name, c.customer_code
    FROM invoices inv
    LEFT JOIN orders o ON o.id = inv.order_id
    LEFT JOIN customers c ON c.id = inv.customer_id
"""

INVOICE_ITEM_SELECT = """
    SELECT id, invoice_id, item_id, item_name, quantity, unit_price, total_price
    FROM invoice_items
"""


class InvoiceRepository(BaseRepository):

    def _attach_items(self, cursor, rows) -> List[Invoice]:
        if not rows:
            return []
        cursor.execute(
            INVOICE_ITEM_SELECT + " WHERE invoice_id = ANY(%s) ORDER BY id",
            ([row["id"] for row in rows],),
        )
        items: Dict[int, List[InvoiceItem]] = {}
        for item in cursor.fetchall():
            items.setdefault(item["invoice_id"], []).append(InvoiceItem(**item))

        invoices = []
        for row in rows:
            data = dict(row)
            data["items"] = items.get(row["id"], [])
            invoices.append(Invoice(**data))
        return invoices

    def find_by_id(self, invoice_id: int, conn=None, for_update: bool = False) -> Optional[Invoice]:
        with self.cursor(conn) as cursor:
            if for_update:
                cursor.execute("SELECT id FROM invoices WHERE id = %s FOR UPDATE", (invoice_id,))
            cursor.execute(INVOICE_SELECT + " WHERE inv.id = %s", (invoice_id,))
            row = cursor.fetchone()
            if not row:
                return None
            return self._attach_items(cursor, [row])[0]

    def find_by_order_id(self, order_id: int, conn=None) -> Optional[Invoice]:
        with self.cursor(conn) as cursor:
            cursor.execute(INVOICE_SELECT + " WHERE inv.order_id = %s", (order_id,))
            row = cursor.fetchone()
            if not row:
                return None
            return self._attach_items(cursor, [row])[0]

    def find_all(
        self,
        status: Optional[str] = None,
        customer_id: Optional[int] = None,
        from_date: Optional[str] = None,
        to_date: Optional[str] = None,
        limit: int = 10,
        offset: int = 0
    ) -> Tuple[List[Invoice], int]:
        conditions = []
        params: List[Any] = []

        if status:
            conditions.append("inv.status = %s")
            params.append(status)

        if customer_id:
            conditions.append("inv.customer_id = %s")
            params.append(customer_id)

        if from_date:
            conditions.append("inv.invoice_date >= %s")
            params.append(from_date)

        if to_date:
            conditions.append("inv.invoice_date <= %s")
            params.append(to_date)

        where = self.where_clause(conditions)

        with self.cursor() as cursor:
            cursor.execute(f"SELECT COUNT(*) AS total FROM invoices inv WHERE {where}", params)
            total = self.count_from(cursor.fetchone())

            cursor.execute(
                INVOICE_SELECT + f" WHERE {where} ORDER BY inv.invoice_date DESC, inv.id DESC LIMIT %s OFFSET %s",
                params + [limit, offset],
            )
            return self._attach_items(cursor, cursor.fetchall()), total

    def find_open(self) -> List[Invoice]:
        """Invoices that still carry a balance"""
        with self.cursor() as cursor:
            cursor.execute(
                INVOICE_SELECT + " WHERE inv.status NOT IN (%s, %s) AND inv.remaining_balance > 0",
                (STATUS_COMPLETED, STATUS_REJECTED),
            )
            return [Invoice(**row) for row in cursor.fetchall()]

    def number_exists(self, invoice_number: str, conn=None) -> bool:
        with self.cursor(conn) as cursor:
            cursor.execute("SELECT 1 FROM invoices WHERE invoice_number = %s", (invoice_number,))
            return cursor.fetchone() is not None

    def create(self, data: Dict[str, Any], items: Sequence[InvoiceItem], conn=None) -> Invoice:
        with self.cursor(conn) as cursor:
            cursor.execute("""
                INSERT INTO invoices (
                    invoice_number, order_id, customer_id, invoice_date, due_date,
                    total_amount, paid_amount, remaining_balance, status,
                    payment_terms, notes, created_by
                ) VALUES (
                    %s, %s, %s, %s, %s, %s, 0, %s, %s, %s, %s, %s
                )
                RETURNING id
            """, (
                data["invoice_number"],
                data["order_id"],
                data["customer_id"],
                data["invoice_date"],
                data["due_date"],
                data["total_amount"],
                data["total_amount"],
                data["status"],
                data.get("payment_terms"),
                data.get("notes"),
                data.get("created_by"),
            ))
            invoice_id = cursor.fetchone()["id"]

            for item in items:
                cursor.execute("""
                    INSERT INTO invoice_items (invoice_id, item_id, item_name, quantity, unit_price, total_price)
                    VALUES (%s, %s, %s, %s, %s, %s)
                """, (invoice_id, item.item_id, item.item_name, item.quantity, item.unit_price, item.total_price))

        return self.find_by_id(invoice_id, conn=conn)

    def update_balance(
        self,
        invoice_id: int,
        paid_amount: Decimal,
        remaining_balance: Decimal,
        status: str,
        conn=None
    ) -> None:
        with self.cursor(conn) as cursor:
            cursor.execute("""
                UPDATE invoices
                SET paid_amount = %s, remaining_balance = %s, status = %s, updated_at = NOW()
                WHERE id = %s
            """, (paid_amount, remaining_balance, status, invoice_id))

    def update_status(self, invoice_id: int, status: str, conn=None) -> None:
        with self.cursor(conn) as cursor:
            cursor.execute(
                "UPDATE invoices SET status = %s, updated_at = NOW() WHERE id = %s",
                (status, invoice_id),
            )
