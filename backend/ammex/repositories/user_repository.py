"""
User Repository - Data Access Layer for user accounts

Author: Ammex Dev Team
Date: 2025-03-02
"""
from typing import Any, Dict, List, Optional, Tuple

from ammex.domain.user import User
from ammex.repositories.base import BaseRepository

USER_SELECT = """
    SELECT
        u.id, u.name, u.email, u.password_hash, u.role, u.department,
        u.is_active, u.last_login, u.created_at, u.updated_at,
        c.id AS customer_id, c.customer_code
    FROM users u
    LEFT JOIN customers c ON c.user_id = u.id
"""

UPDATABLE_COLUMNS = ("name", "email", "role", "department", "is_active")


class UserRepository(BaseRepository):

    def find_by_id(self, user_id: int, conn=None) -> Optional[User]:
        with self.cursor(conn) as cursor:
            cursor.execute(USER_SELECT + " WHERE u.id = %s", (user_id,))
            row = cursor.fetchone()
            return User(**row) if row else None

    def find_by_email(self, email: str) -> Optional[User]:
        """Case-insensitive lookup used by login"""
        with self.cursor() as cursor:
            cursor.execute(USER_SELECT + " WHERE LOWER(u.email) = LOWER(%s)", (email.strip(),))
            row = cursor.fetchone()
            return User(**row) if row else None

    def email_exists(self, email: str, exclude_id: Optional[int] = None) -> bool:
        with self.cursor() as cursor:
            if exclude_id is not None:
                cursor.execute(
                    "SELECT id FROM users WHERE LOWER(email) = LOWER(%s) AND id <> %s",
                    (email.strip(), exclude_id),
                )
            else:
                cursor.execute("SELECT id FROM users WHERE LOWER(email) = LOWER(%s)", (email.strip(),))
            return cursor.fetchone() is not None

    def find_all(
        self,
        include_inactive: bool = False,
        role: Optional[str] = None,
        limit: int = 10,
        offset: int = 0
    ) -> Tuple[List[User], int]:
        conditions = []
        params: List[Any] = []

        if not include_inactive:
            conditions.append("u.is_active = TRUE")
        if role:
            conditions.append("u.role = %s")
            params.append(role)

        where = self.where_clause(conditions)

        with self.cursor() as cursor:
            cursor.execute(f"SELECT COUNT(*) AS total FROM users u WHERE {where}", params)
            total = self.count_from(cursor.fetchone())

            cursor.execute(
                USER_SELECT + f" WHERE {where} ORDER BY u.created_at DESC LIMIT %s OFFSET %s",
                params + [limit, offset],
            )
            return [User(**row) for row in cursor.fetchall()], total

    def create(self, data: Dict[str, Any], conn=None) -> User:
        with self.cursor(conn) as cursor:
            cursor.execute("""
                INSERT INTO users (name, email, password_hash, role, department, is_active)
                VALUES (%s, %s, %s, %s, %s, %s)
                RETURNING id
            """, (
                data["name"],
                data["email"].strip().lower(),
                data["password_hash"],
                data["role"],
                data.get("department"),
                data.get("is_active", True),
            ))
            user_id = cursor.fetchone()["id"]
            cursor.execute(USER_SELECT + " WHERE u.id = %s", (user_id,))
            return User(**cursor.fetchone())

    def update(self, user_id: int, fields: Dict[str, Any]) -> Optional[User]:
        updates, params = self.build_set_clause(fields, UPDATABLE_COLUMNS)
        if not updates:
            return self.find_by_id(user_id)

        updates.append("updated_at = NOW()")
        with self.cursor() as cursor:
            cursor.execute(
                f"UPDATE users SET {', '.join(updates)} WHERE id = %s RETURNING id",
                params + [user_id],
            )
            if not cursor.fetchone():
                return None
            cursor.execute(USER_SELECT + " WHERE u.id = %s", (user_id,))
            return User(**cursor.fetchone())

    def update_password(self, user_id: int, password_hash: str) -> None:
        with self.cursor() as cursor:
            cursor.execute(
                "UPDATE users SET password_hash = %s, updated_at = NOW() WHERE id = %s",
                (password_hash, user_id),
            )

    def touch_last_login(self, user_id: int) -> None:
        with self.cursor() as cursor:
            cursor.execute("UPDATE users SET last_login = NOW() WHERE id = %s", (user_id,))

    def set_active(self, user_id: int, is_active: bool) -> Optional[User]:
        return self.update(user_id, {"is_active": is_active})
