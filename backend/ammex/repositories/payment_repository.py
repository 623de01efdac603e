"""
Payment Repository - Data Access Layer for payments and payment history

Author: Ammex Dev Team
Date: 2025-03-12
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from ammex.domain.payment import Payment, PaymentHistoryEntry, PAYMENT_APPROVED
from ammex.repositories.base import BaseRepository

PAYMENT_SELECT = """
    SELECT
        p.id, p.payment_number, p.invoice_id, p.customer_id,
        p.amount, p.payment_method, p.reference, p.notes,
        p.status, p.rejection_reason, p.submitted_at, p.reviewed_at, p.reviewed_by,
        inv.invoice_number,
        inv.total_amount AS invoice_total,
        inv.remaining_balance AS invoice_remaining,
        c.customer_name,
        u.name AS reviewer_name
    FROM payments p
    JOIN invoices inv ON inv.id = p.invoice_id
    LEFT JOIN customers c ON c.id = p.customer_id
    LEFT JOIN users u ON u.id = p.reviewed_by
"""

HISTORY_SELECT = """
    SELECT
        h.id, h.payment_id, h.invoice_id, h.customer_id, h.action, h.amount,
        h.payment_method, h.reference, h.notes, h.performed_by, h.created_at,
        u.name AS performed_by_name,
        inv.invoice_number,
        p.payment_number,
        c.customer_name
    FROM payment_history h
    LEFT JOIN users u ON u.id = h.performed_by
    LEFT JOIN invoices inv ON inv.id = h.invoice_id
    LEFT JOIN payments p ON p.id = h.payment_id
    LEFT JOIN customers c ON c.id = h.customer_id
"""


class PaymentRepository(BaseRepository):

    def find_by_id(self, payment_id: int, conn=None, for_update: bool = False) -> Optional[Payment]:
        with self.cursor(conn) as cursor:
            if for_update:
                cursor.execute("SELECT id FROM payments WHERE id = %s FOR UPDATE", (payment_id,))
            cursor.execute(PAYMENT_SELECT + " WHERE p.id = %s", (payment_id,))
            row = cursor.fetchone()
            return Payment(**row) if row else None

    def find_all(
        self,
        status: Optional[str] = None,
        customer_id: Optional[int] = None,
        invoice_id: Optional[int] = None,
        oldest_first: bool = False,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[Payment], int]:
        conditions = []
        params: List[Any] = []

        if status:
            conditions.append("p.status = %s")
            params.append(status)
        if customer_id:
            conditions.append("p.customer_id = %s")
            params.append(customer_id)
        if invoice_id:
            conditions.append("p.invoice_id = %s")
            params.append(invoice_id)

        where = self.where_clause(conditions)
        order = "ASC" if oldest_first else "DESC"

        with self.cursor() as cursor:
            cursor.execute(f"SELECT COUNT(*) AS total FROM payments p WHERE {where}", params)
            total = self.count_from(cursor.fetchone())

            cursor.execute(
                PAYMENT_SELECT + f" WHERE {where} ORDER BY p.submitted_at {order}, p.id {order} LIMIT %s OFFSET %s",
                params + [limit, offset],
            )
            return [Payment(**row) for row in cursor.fetchall()], total

    def number_exists(self, payment_number: str, conn=None) -> bool:
        with self.cursor(conn) as cursor:
            cursor.execute("SELECT 1 FROM payments WHERE payment_number = %s", (payment_number,))
            return cursor.fetchone() is not None

    def create(self, data: Dict[str, Any], conn=None) -> Payment:
        with self.cursor(conn) as cursor:
            cursor.execute("""
                INSERT INTO payments (
                    payment_number, invoice_id, customer_id, amount, payment_method,
                    reference, notes, status, submitted_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, 'pending_approval', NOW())
                RETURNING id
            """, (
                data["payment_number"],
                data["invoice_id"],
                data["customer_id"],
                data["amount"],
                data["payment_method"],
                data.get("reference"),
                data.get("notes"),
            ))
            payment_id = cursor.fetchone()["id"]
        return self.find_by_id(payment_id, conn=conn)

    def mark_approved(self, payment_id: int, amount: Decimal, reviewer_id: int, conn=None) -> None:
        with self.cursor(conn) as cursor:
            cursor.execute("""
                UPDATE payments
                SET status = 'approved', amount = %s, reviewed_at = NOW(), reviewed_by = %s,
                    rejection_reason = NULL
                WHERE id = %s
            """, (amount, reviewer_id, payment_id))

    def mark_rejected(self, payment_id: int, reason: str, reviewer_id: int, conn=None) -> None:
        with self.cursor(conn) as cursor:
            cursor.execute("""
                UPDATE payments
                SET status = 'rejected', rejection_reason = %s, reviewed_at = NOW(), reviewed_by = %s
                WHERE id = %s
            """, (reason, reviewer_id, payment_id))

    def reopen(self, payment_id: int, conn=None) -> None:
        """Move a rejected payment back to the approval queue"""
        with self.cursor(conn) as cursor:
            cursor.execute("""
                UPDATE payments
                SET status = 'pending_approval', rejection_reason = NULL,
                    reviewed_at = NULL, reviewed_by = NULL
                WHERE id = %s
            """, (payment_id,))

    def delete(self, payment_id: int) -> bool:
        with self.cursor() as cursor:
            cursor.execute("UPDATE payment_history SET payment_id = NULL WHERE payment_id = %s", (payment_id,))
            cursor.execute("DELETE FROM payments WHERE id = %s RETURNING id", (payment_id,))
            return cursor.fetchone() is not None

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def add_history(
        self,
        payment: Payment,
        action: str,
        performed_by: Optional[int],
        notes: Optional[str] = None,
        amount: Optional[Decimal] = None,
        conn=None
    ) -> None:
        with self.cursor(conn) as cursor:
            cursor.execute("""
                INSERT INTO payment_history (
                    payment_id, invoice_id, customer_id, action, amount,
                    payment_method, reference, notes, performed_by
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            """, (
                payment.id,
                payment.invoice_id,
                payment.customer_id,
                action,
                amount if amount is not None else payment.amount,
                payment.payment_method,
                payment.reference,
                notes,
                performed_by,
            ))

    def history(
        self,
        invoice_id: Optional[int] = None,
        customer_id: Optional[int] = None,
        limit: int = 100,
        offset: int = 0
    ) -> Tuple[List[PaymentHistoryEntry], int]:
        conditions = []
        params: List[Any] = []

        if invoice_id:
            conditions.append("h.invoice_id = %s")
            params.append(invoice_id)
        if customer_id:
            conditions.append("h.customer_id = %s")
            params.append(customer_id)

        where = self.where_clause(conditions)

        with self.cursor() as cursor:
            cursor.execute(f"SELECT COUNT(*) AS total FROM payment_history h WHERE {where}", params)
            total = self.count_from(cursor.fetchone())

            cursor.execute(
                HISTORY_SELECT + f" WHERE {where} ORDER BY h.created_at DESC, h.id DESC LIMIT %s OFFSET %s",
                params + [limit, offset],
            )
            return [PaymentHistoryEntry(**row) for row in cursor.fetchall()], total

    def approved_for_customer(self, customer_id: int, payment_id: Optional[int] = None) -> List[Payment]:
        """Approved payments used to build receipts"""
        params: List[Any] = [PAYMENT_APPROVED, customer_id]
        extra = ""
        if payment_id:
            extra = " AND p.id = %s"
            params.append(payment_id)

        with self.cursor() as cursor:
            cursor.execute(
                PAYMENT_SELECT + f" WHERE p.status = %s AND p.customer_id = %s{extra} ORDER BY p.reviewed_at DESC",
                params,
            )
            return [Payment(**row) for row in cursor.fetchall()]

    def balance_history(self, customer_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """Per-invoice paid/remaining summary with approved payment counts"""
        params: List[Any] = []
        where = ""
        if customer_id:
            where = "WHERE inv.customer_id = %s"
            params.append(customer_id)

        with self.cursor() as cursor:
            cursor.execute(f"""
                SELECT
                    inv.id AS invoice_id, inv.invoice_number, inv.customer_id, c.customer_name,
                    inv.total_amount, inv.paid_amount, inv.remaining_balance, inv.status, inv.due_date,
                    COUNT(p.id) FILTER (WHERE p.status = 'approved') AS approved_payments,
                    MAX(p.reviewed_at) FILTER (WHERE p.status = 'approved') AS last_payment_at
                FROM invoices inv
                LEFT JOIN customers c ON c.id = inv.customer_id
                LEFT JOIN payments p ON p.invoice_id = inv.id
                {where}
                GROUP BY inv.id, c.customer_name
                ORDER BY inv.invoice_date DESC
            """, params)
            return [dict(row) for row in cursor.fetchall()]
