"""
Supplier Repository - Data Access Layer for suppliers
"""
from typing import Any, Dict, List, Optional, Tuple

from ammex.domain.customer import Supplier
from ammex.repositories.base import BaseRepository

SUPPLIER_COLUMNS = """
    id, supplier_code, company_name, contact_name, street, city, postal_code, country,
    telephone1, email1, notes, is_active, archived_at, created_at, updated_at
"""

UPDATABLE_COLUMNS = (
    "supplier_code", "company_name", "contact_name", "street", "city", "postal_code",
    "country", "telephone1", "email1", "notes",
)


class SupplierRepository(BaseRepository):

    def find_by_id(self, supplier_id: int) -> Optional[Supplier]:
        with self.cursor() as cursor:
            cursor.execute(f"SELECT {SUPPLIER_COLUMNS} FROM suppliers WHERE id = %s", (supplier_id,))
            row = cursor.fetchone()
            return Supplier(**row) if row else None

    def find_all(
        self,
        search: Optional[str] = None,
        is_active: Optional[bool] = True,
        limit: int = 10,
        offset: int = 0
    ) -> Tuple[List[Supplier], int]:
        conditions = []
        params: List[Any] = []

        if is_active is not None:
            conditions.append("is_active = %s")
            params.append(is_active)

        if search:
            conditions.append("(company_name ILIKE %s OR supplier_code ILIKE %s OR email1 ILIKE %s)")
            pattern = f"%{search}%"
            params.extend([pattern, pattern, pattern])

        where = self.where_clause(conditions)

        with self.cursor() as cursor:
            cursor.execute(f"SELECT COUNT(*) AS total FROM suppliers WHERE {where}", params)
            total = self.count_from(cursor.fetchone())

            cursor.execute(
                f"SELECT {SUPPLIER_COLUMNS} FROM suppliers WHERE {where} "
                f"ORDER BY company_name LIMIT %s OFFSET %s",
                params + [limit, offset],
            )
            return [Supplier(**row) for row in cursor.fetchall()], total

    def next_sequence(self) -> int:
        with self.cursor() as cursor:
            cursor.execute("SELECT COALESCE(MAX(id), 0) + 1 AS next_id FROM suppliers")
            return int(cursor.fetchone()["next_id"])

    def code_exists(self, code: str, exclude_id: Optional[int] = None) -> bool:
        with self.cursor() as cursor:
            cursor.execute(
                "SELECT id FROM suppliers WHERE supplier_code = %s AND id <> %s",
                (code, exclude_id or 0),
            )
            return cursor.fetchone() is not None

    def create(self, data: Dict[str, Any]) -> Supplier:
        with self.cursor() as cursor:
            cursor.execute(f"""
                INSERT INTO suppliers (
                    supplier_code, company_name, contact_name, street, city, postal_code,
                    country, telephone1, email1, notes, is_active
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, TRUE)
                RETURNING {SUPPLIER_COLUMNS}
            """, (
                data["supplier_code"],
                data["company_name"],
                data.get("contact_name"),
                data.get("street"),
                data.get("city"),
                data.get("postal_code"),
                data.get("country"),
                data.get("telephone1"),
                data.get("email1"),
                data.get("notes"),
            ))
            return Supplier(**cursor.fetchone())

    def update(self, supplier_id: int, fields: Dict[str, Any]) -> Optional[Supplier]:
        updates, params = self.build_set_clause(fields, UPDATABLE_COLUMNS)
        if not updates:
            return self.find_by_id(supplier_id)

        updates.append("updated_at = NOW()")
        with self.cursor() as cursor:
            cursor.execute(
                f"UPDATE suppliers SET {', '.join(updates)} WHERE id = %s RETURNING {SUPPLIER_COLUMNS}",
                params + [supplier_id],
            )
            row = cursor.fetchone()
            return Supplier(**row) if row else None

    def archive(self, supplier_id: int) -> Optional[Supplier]:
        with self.cursor() as cursor:
            cursor.execute(f"""
                UPDATE suppliers
                SET is_active = FALSE, archived_at = NOW(), updated_at = NOW()
                WHERE id = %s
                RETURNING {SUPPLIER_COLUMNS}
            """, (supplier_id,))
            row = cursor.fetchone()
            return Supplier(**row) if row else None

    def restore(self, supplier_id: int) -> Optional[Supplier]:
        with self.cursor() as cursor:
            cursor.execute(f"""
                UPDATE suppliers
                SET is_active = TRUE, archived_at = NULL, updated_at = NOW()
                WHERE id = %s
                RETURNING {SUPPLIER_COLUMNS}
            """, (supplier_id,))
            row = cursor.fetchone()
            return Supplier(**row) if row else None

    def get_stats(self) -> Dict[str, int]:
        with self.cursor() as cursor:
            cursor.execute("""
                SELECT
                    COUNT(*) AS total,
                    COUNT(*) FILTER (WHERE is_active) AS active,
                    COUNT(*) FILTER (WHERE NOT is_active) AS inactive
                FROM suppliers
            """)
            row = cursor.fetchone()
            return {key: int(row[key] or 0) for key in ("total", "active", "inactive")}
