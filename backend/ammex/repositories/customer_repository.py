"""
Customer Repository - Data Access Layer for customers

Author: Ammex Dev Team
Date: 2025-03-02
"""
from typing import Any, Dict, List, Optional, Tuple

from ammex.domain.customer import Customer
from ammex.repositories.base import BaseRepository

CUSTOMER_SELECT = """
    SELECT
        c.id, c.customer_code, c.user_id, c.tier_id, t.name AS tier_name,
        c.customer_name, c.contact_name, c.street, c.city, c.postal_code, c.country,
        c.telephone1, c.telephone2, c.email1, c.email2, c.notes, c.is_active,
        c.created_at, c.updated_at
    FROM customers c
    LEFT JOIN tiers t ON t.id = c.tier_id
"""

UPDATABLE_COLUMNS = (
    "customer_code", "customer_name", "contact_name", "street", "city", "postal_code",
    "country", "telephone1", "telephone2", "email1", "email2", "notes", "is_active",
)

# Fields a client may change on their own profile
PROFILE_COLUMNS = (
    "customer_name", "contact_name", "street", "city", "postal_code", "country",
    "telephone1", "telephone2", "email1", "email2",
)


class CustomerRepository(BaseRepository):

    def find_by_id(self, customer_id: int, conn=None) -> Optional[Customer]:
        with self.cursor(conn) as cursor:
            cursor.execute(CUSTOMER_SELECT + " WHERE c.id = %s", (customer_id,))
            row = cursor.fetchone()
            return Customer(**row) if row else None

    def find_by_user_id(self, user_id: int) -> Optional[Customer]:
        with self.cursor() as cursor:
            cursor.execute(CUSTOMER_SELECT + " WHERE c.user_id = %s", (user_id,))
            row = cursor.fetchone()
            return Customer(**row) if row else None

    def find_all(
        self,
        search: Optional[str] = None,
        is_active: Optional[bool] = True,
        limit: int = 10,
        offset: int = 0
    ) -> Tuple[List[Customer], int]:
        """
        Find customers

        Args:
            search: Matches customer name, code or primary email (ILIKE)
            is_active: Filter by active flag, None returns both
        """
        conditions = []
        params: List[Any] = []

        if is_active is not None:
            conditions.append("c.is_active = %s")
            params.append(is_active)

        if search:
            conditions.append("(c.customer_name ILIKE %s OR c.customer_code ILIKE %s OR c.email1 ILIKE %s)")
            pattern = f"%{search}%"
            params.extend([pattern, pattern, pattern])

        where = self.where_clause(conditions)

        with self.cursor() as cursor:
            cursor.execute(f"SELECT COUNT(*) AS total FROM customers c WHERE {where}", params)
            total = self.count_from(cursor.fetchone())

            cursor.execute(
                CUSTOMER_SELECT + f" WHERE {where} ORDER BY c.customer_name LIMIT %s OFFSET %s",
                params + [limit, offset],
            )
            return [Customer(**row) for row in cursor.fetchall()], total

    def next_sequence(self, conn=None) -> int:
        with self.cursor(conn) as cursor:
            cursor.execute("SELECT COALESCE(MAX(id), 0) + 1 AS next_id FROM customers")
            return int(cursor.fetchone()["next_id"])

    def code_exists(self, code: str, exclude_id: Optional[int] = None) -> bool:
        with self.cursor() as cursor:
            cursor.execute(
                "SELECT id FROM customers WHERE customer_code = %s AND id <> %s",
                (code, exclude_id or 0),
            )
            return cursor.fetchone() is not None

    def create(self, data: Dict[str, Any], conn=None) -> Customer:
        with self.cursor(conn) as cursor:
            cursor.execute("""
                INSERT INTO customers (
                    customer_code, user_id, customer_name, contact_name, street, city,
                    postal_code, country, telephone1, telephone2, email1, email2, notes, is_active
                ) VALUES (
                    %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s
                )
                RETURNING id
            """, (
                data["customer_code"],
                data.get("user_id"),
                data["customer_name"],
                data.get("contact_name"),
                data.get("street"),
                data.get("city"),
                data.get("postal_code"),
                data.get("country"),
                data.get("telephone1"),
                data.get("telephone2"),
                data.get("email1"),
                data.get("email2"),
                data.get("notes"),
                data.get("is_active", True),
            ))
            customer_id = cursor.fetchone()["id"]
            cursor.execute(CUSTOMER_SELECT + " WHERE c.id = %s", (customer_id,))
            return Customer(**cursor.fetchone())

    def update(self, customer_id: int, fields: Dict[str, Any], columns=UPDATABLE_COLUMNS) -> Optional[Customer]:
        updates, params = self.build_set_clause(fields, columns)
        if not updates:
            return self.find_by_id(customer_id)

        updates.append("updated_at = NOW()")
        with self.cursor() as cursor:
            cursor.execute(
                f"UPDATE customers SET {', '.join(updates)} WHERE id = %s RETURNING id",
                params + [customer_id],
            )
            if not cursor.fetchone():
                return None
            cursor.execute(CUSTOMER_SELECT + " WHERE c.id = %s", (customer_id,))
            return Customer(**cursor.fetchone())

    def update_profile(self, customer_id: int, fields: Dict[str, Any]) -> Optional[Customer]:
        return self.update(customer_id, fields, columns=PROFILE_COLUMNS)

    def set_active(self, customer_id: int, is_active: bool) -> Optional[Customer]:
        return self.update(customer_id, {"is_active": is_active})

    def set_tier(self, customer_id: int, tier_id: int, conn=None) -> None:
        with self.cursor(conn) as cursor:
            cursor.execute(
                "UPDATE customers SET tier_id = %s, updated_at = NOW() WHERE id = %s",
                (tier_id, customer_id),
            )

    def get_stats(self) -> Dict[str, int]:
        with self.cursor() as cursor:
            cursor.execute("""
                SELECT
                    COUNT(*) AS total,
                    COUNT(*) FILTER (WHERE is_active) AS active,
                    COUNT(*) FILTER (WHERE NOT is_active) AS inactive
                FROM customers
            """)
            row = cursor.fetchone()
            return {key: int(row[key] or 0) for key in ("total", "active", "inactive")}
