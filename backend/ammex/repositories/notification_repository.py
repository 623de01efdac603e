"""
Notification Repository
"""
import json
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ammex.domain.notification import Notification, AUDIENCE_STAFF
from ammex.repositories.base import BaseRepository

NOTIFICATION_COLUMNS = "id, customer_id, audience, type, title, message, data, is_read, created_at"


class NotificationRepository(BaseRepository):

    def create(
        self,
        type: str,
        title: str,
        message: str,
        customer_id: Optional[int] = None,
        audience: str = "customer",
        data: Optional[Dict[str, Any]] = None,
        conn=None
    ) -> Notification:
        with self.cursor(conn) as cursor:
            cursor.execute(f"""
                INSERT INTO notifications (customer_id, audience, type, title, message, data, is_read)
                VALUES (%s, %s, %s, %s, %s, %s, FALSE)
                RETURNING {NOTIFICATION_COLUMNS}
            """, (customer_id, audience, type, title, message, json.dumps(data or {}, default=str)))
            return Notification(**cursor.fetchone())

    @staticmethod
    def _scope(customer_id: Optional[int], types: Optional[Sequence[str]]) -> Tuple[List[str], List[Any]]:
        """customer_id None means the staff audience"""
        conditions = []
        params: List[Any] = []
        if customer_id is None:
            conditions.append("audience = %s")
            params.append(AUDIENCE_STAFF)
        else:
            conditions.append("customer_id = %s")
            params.append(customer_id)
        if types:
            conditions.append("type = ANY(%s)")
            params.append(list(types))
        return conditions, params

    def find_for(
        self,
        customer_id: Optional[int] = None,
        types: Optional[Sequence[str]] = None,
        unread_only: bool = False,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[Notification], int]:
        """
        Notifications for one customer, or for staff when customer_id is None

        Returns:
            Tuple of (notifications newest first, unread count)
        """
        conditions, params = self._scope(customer_id, types)
        where = self.where_clause(conditions)
        list_where = where + (" AND is_read = FALSE" if unread_only else "")

        with self.cursor() as cursor:
            cursor.execute(
                f"SELECT COUNT(*) AS total FROM notifications WHERE {where} AND is_read = FALSE",
                params,
            )
            unread = self.count_from(cursor.fetchone())

            cursor.execute(
                f"SELECT {NOTIFICATION_COLUMNS} FROM notifications WHERE {list_where} "
                f"ORDER BY created_at DESC, id DESC LIMIT %s OFFSET %s",
                params + [limit, offset],
            )
            return [Notification(**row) for row in cursor.fetchall()], unread

    def find_by_id(self, notification_id: int) -> Optional[Notification]:
        with self.cursor() as cursor:
            cursor.execute(
                f"SELECT {NOTIFICATION_COLUMNS} FROM notifications WHERE id = %s",
                (notification_id,),
            )
            row = cursor.fetchone()
            return Notification(**row) if row else None

    def mark_read(self, notification_id: int) -> None:
        with self.cursor() as cursor:
            cursor.execute("UPDATE notifications SET is_read = TRUE WHERE id = %s", (notification_id,))

    def mark_all_read(self, customer_id: Optional[int] = None, types: Optional[Sequence[str]] = None) -> int:
        conditions, params = self._scope(customer_id, types)
        with self.cursor() as cursor:
            cursor.execute(
                f"UPDATE notifications SET is_read = TRUE WHERE {self.where_clause(conditions)} AND is_read = FALSE",
                params,
            )
            return cursor.rowcount

    def stats(self, customer_id: Optional[int] = None, types: Optional[Sequence[str]] = None) -> Dict[str, Any]:
        conditions, params = self._scope(customer_id, types)
        with self.cursor() as cursor:
            cursor.execute(f"""
                SELECT type, COUNT(*) AS total, COUNT(*) FILTER (WHERE NOT is_read) AS unread
                FROM notifications
                WHERE {self.where_clause(conditions)}
                GROUP BY type
            """, params)
            rows = cursor.fetchall()

        by_type = {row["type"]: int(row["total"]) for row in rows}
        return {
            "total": sum(by_type.values()),
            "unread": sum(int(row["unread"]) for row in rows),
            "byType": by_type,
        }
