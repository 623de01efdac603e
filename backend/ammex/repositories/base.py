"""
Repository base - connection handling shared by all repositories

Every repository method accepts an optional ``conn``. Without it the method
opens its own connection, commits and closes it. With it the method joins
the caller's transaction (see ammex.core.database.transaction) and leaves
commit/rollback to the caller.
"""
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ammex.core.database import get_db_connection_dict


class BaseRepository:

    @contextmanager
    def cursor(self, conn=None):
        should_close = conn is None
        if conn is None:
            conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            yield cursor
            if should_close:
                conn.commit()
        except Exception:
            if should_close:
                conn.rollback()
            raise
        finally:
            cursor.close()
            if should_close:
                conn.close()

    @staticmethod
    def build_set_clause(fields: Dict[str, Any], allowed: Iterable[str]) -> Tuple[List[str], List[Any]]:
        """
        Build "col = %s" fragments for an UPDATE from the allowed keys present in fields

        Returns:
            Tuple of (set fragments, params)
        """
        updates = []
        params = []
        for column in allowed:
            if column in fields:
                updates.append(f"{column} = %s")
                params.append(fields[column])
        return updates, params

    @staticmethod
    def where_clause(conditions: List[str]) -> str:
        return " AND ".join(conditions) if conditions else "1=1"

    @staticmethod
    def count_from(row: Optional[Dict[str, Any]]) -> int:
        return int(row["total"]) if row and row.get("total") is not None else 0
