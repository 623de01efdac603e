"""
Item Repository - Data Access Layer for inventory items

Handles items, their stock/price history and product discounts.
Returns Item domain models with category, unit, supplier and discount
information joined in.

Author: Ammex Dev Team
Date: 2025-03-04
"""
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ammex.domain.catalog import Item, StockHistory, PriceHistory
from ammex.repositories.base import BaseRepository

ITEM_SELECT = """
    SELECT
        i.id, i.item_code, i.item_name, i.vendor, i.model_no, i.description,
        i.category_id, i.unit_id, i.supplier_id,
        i.price, i.cost_price, i.quantity, i.min_level, i.max_level,
        i.is_active, i.archived_at, i.archived_by, i.created_at, i.updated_at,
        cat.name AS category_name,
        u.name AS unit_name,
        s.company_name AS supplier_name,
        d.discount_percentage,
        d.start_date AS discount_start_date,
        d.end_date AS discount_end_date,
        d.is_active AS discount_active
    FROM items i
    LEFT JOIN categories cat ON cat.id = i.category_id
    LEFT JOIN units u ON u.id = i.unit_id
    LEFT JOIN suppliers s ON s.id = i.supplier_id
    LEFT JOIN product_discounts d ON d.item_id = i.id
"""

UPDATABLE_COLUMNS = (
    "item_code", "item_name", "vendor", "model_no", "description", "category_id",
    "unit_id", "supplier_id", "cost_price", "min_level", "max_level",
)


class ItemRepository(BaseRepository):
    """
    Repository for inventory items

    Stock changes go through update_quantity() + add_stock_history() so
    every movement is recorded.
    """

    def find_by_id(self, item_id: int, conn=None, for_update: bool = False) -> Optional[Item]:
        """
        Find an item by ID

        Args:
            item_id: Item ID
            conn: Join an existing transaction
            for_update: Lock the item row until the transaction ends
        """
        with self.cursor(conn) as cursor:
            if for_update:
                cursor.execute("SELECT id FROM items WHERE id = %s FOR UPDATE", (item_id,))
            cursor.execute(ITEM_SELECT + " WHERE i.id = %s", (item_id,))
            row = cursor.fetchone()
            return Item(**row) if row else None

    def find_by_ids(self, item_ids: Iterable[int], conn=None) -> Dict[int, Item]:
        ids = list(item_ids)
        if not ids:
            return {}
        with self.cursor(conn) as cursor:
            cursor.execute(ITEM_SELECT + " WHERE i.id = ANY(%s)", (ids,))
            return {row["id"]: Item(**row) for row in cursor.fetchall()}

    def find_all(
        self,
        search: Optional[str] = None,
        category_id: Optional[int] = None,
        is_active: Optional[bool] = True,
        limit: int = 10,
        offset: int = 0
    ) -> Tuple[List[Item], int]:
        """
        Find items with filters

        Args:
            search: Matches item name, code, vendor or model number
            category_id: Filter by category (includes direct subcategories)
            is_active: True for the live catalog, False for archived items
        """
        conditions = []
        params: List[Any] = []

        if is_active is not None:
            conditions.append("i.is_active = %s")
            params.append(is_active)

        if category_id:
            conditions.append("(i.category_id = %s OR cat.parent_id = %s)")
            params.extend([category_id, category_id])

        if search:
            conditions.append(
                "(i.item_name ILIKE %s OR i.item_code ILIKE %s OR i.vendor ILIKE %s OR i.model_no ILIKE %s)"
            )
            pattern = f"%{search}%"
            params.extend([pattern, pattern, pattern, pattern])

        where = self.where_clause(conditions)

        with self.cursor() as cursor:
            cursor.execute(f"""
                SELECT COUNT(*) AS total
                FROM items i
                LEFT JOIN categories cat ON cat.id = i.category_id
                WHERE {where}
            """, params)
            total = self.count_from(cursor.fetchone())

            cursor.execute(
                ITEM_SELECT + f" WHERE {where} ORDER BY i.item_name LIMIT %s OFFSET %s",
                params + [limit, offset],
            )
            return [Item(**row) for row in cursor.fetchall()], total

    def find_low_stock(self) -> List[Item]:
        with self.cursor() as cursor:
            cursor.execute(
                ITEM_SELECT + " WHERE i.is_active = TRUE AND i.quantity <= i.min_level ORDER BY i.quantity ASC"
            )
            return [Item(**row) for row in cursor.fetchall()]

    def max_running_number(self) -> int:
        """Highest ### segment among existing VEN-CAT-###-MODEL codes"""
        with self.cursor() as cursor:
            cursor.execute("""
                SELECT COALESCE(MAX(CAST(split_part(item_code, '-', 3) AS INTEGER)), 0) AS max_number
                FROM items
                WHERE split_part(item_code, '-', 3) ~ '^[0-9]+$'
            """)
            return int(cursor.fetchone()["max_number"])

    def code_exists(self, code: str, exclude_id: Optional[int] = None) -> bool:
        with self.cursor() as cursor:
            cursor.execute(
                "SELECT id FROM items WHERE item_code = %s AND id <> %s",
                (code, exclude_id or 0),
            )
            return cursor.fetchone() is not None

    def create(self, data: Dict[str, Any]) -> Item:
        with self.cursor() as cursor:
            cursor.execute("""
                INSERT INTO items (
                    item_code, item_name, vendor, model_no, description,
                    category_id, unit_id, supplier_id,
                    price, cost_price, quantity, min_level, max_level, is_active
                ) VALUES (
                    %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, TRUE
                )
                RETURNING id
            """, (
                data["item_code"],
                data["item_name"],
                data["vendor"],
                data.get("model_no"),
                data.get("description"),
                data.get("category_id"),
                data.get("unit_id"),
                data.get("supplier_id"),
                data.get("price", Decimal("0")),
                data.get("cost_price"),
                data.get("quantity", 0),
                data.get("min_level", 0),
                data.get("max_level"),
            ))
            item_id = cursor.fetchone()["id"]
            cursor.execute(ITEM_SELECT + " WHERE i.id = %s", (item_id,))
            return Item(**cursor.fetchone())

    def update(self, item_id: int, fields: Dict[str, Any]) -> Optional[Item]:
        updates, params = self.build_set_clause(fields, UPDATABLE_COLUMNS)
        if not updates:
            return self.find_by_id(item_id)

        updates.append("updated_at = NOW()")
        with self.cursor() as cursor:
            cursor.execute(
                f"UPDATE items SET {', '.join(updates)} WHERE id = %s RETURNING id",
                params + [item_id],
            )
            if not cursor.fetchone():
                return None
            cursor.execute(ITEM_SELECT + " WHERE i.id = %s", (item_id,))
            return Item(**cursor.fetchone())

    def archive(self, item_id: int, user_id: Optional[int]) -> None:
        with self.cursor() as cursor:
            cursor.execute("""
                UPDATE items
                SET is_active = FALSE, archived_at = NOW(), archived_by = %s, updated_at = NOW()
                WHERE id = %s
            """, (user_id, item_id))

    def restore(self, item_id: int) -> None:
        with self.cursor() as cursor:
            cursor.execute("""
                UPDATE items
                SET is_active = TRUE, archived_at = NULL, archived_by = NULL, updated_at = NOW()
                WHERE id = %s
            """, (item_id,))

    # ------------------------------------------------------------------
    # Stock and price
    # ------------------------------------------------------------------

    def update_quantity(self, item_id: int, quantity: int, conn=None) -> None:
        with self.cursor(conn) as cursor:
            cursor.execute(
                "UPDATE items SET quantity = %s, updated_at = NOW() WHERE id = %s",
                (quantity, item_id),
            )

    def add_stock_history(
        self,
        item_id: int,
        previous_quantity: int,
        new_quantity: int,
        reason: Optional[str],
        user_id: Optional[int],
        conn=None
    ) -> None:
        with self.cursor(conn) as cursor:
            cursor.execute("""
                INSERT INTO item_stock_history (
                    item_id, previous_quantity, new_quantity, change, reason, adjusted_by
                ) VALUES (%s, %s, %s, %s, %s, %s)
            """, (item_id, previous_quantity, new_quantity, new_quantity - previous_quantity, reason, user_id))

    def update_price(self, item_id: int, price: Decimal, conn=None) -> None:
        with self.cursor(conn) as cursor:
            cursor.execute(
                "UPDATE items SET price = %s, updated_at = NOW() WHERE id = %s",
                (price, item_id),
            )

    def add_price_history(
        self,
        item_id: int,
        previous_price: Decimal,
        new_price: Decimal,
        reason: Optional[str],
        user_id: Optional[int],
        conn=None
    ) -> None:
        with self.cursor(conn) as cursor:
            cursor.execute("""
                INSERT INTO item_price_history (item_id, previous_price, new_price, reason, changed_by)
                VALUES (%s, %s, %s, %s, %s)
            """, (item_id, previous_price, new_price, reason, user_id))

    def stock_history(self, item_id: int, limit: int = 50) -> List[StockHistory]:
        with self.cursor() as cursor:
            cursor.execute("""
                SELECT h.id, h.item_id, h.previous_quantity, h.new_quantity, h.change, h.reason,
                       h.adjusted_by, u.name AS adjusted_by_name, h.created_at
                FROM item_stock_history h
                LEFT JOIN users u ON u.id = h.adjusted_by
                WHERE h.item_id = %s
                ORDER BY h.created_at DESC
                LIMIT %s
            """, (item_id, limit))
            return [StockHistory(**row) for row in cursor.fetchall()]

    def price_history(self, item_id: int, limit: int = 50) -> List[PriceHistory]:
        with self.cursor() as cursor:
            cursor.execute("""
                SELECT h.id, h.item_id, h.previous_price, h.new_price, h.reason,
                       h.changed_by, u.name AS changed_by_name, h.created_at
                FROM item_price_history h
                LEFT JOIN users u ON u.id = h.changed_by
                WHERE h.item_id = %s
                ORDER BY h.created_at DESC
                LIMIT %s
            """, (item_id, limit))
            return [PriceHistory(**row) for row in cursor.fetchall()]

    # ------------------------------------------------------------------
    # Product discounts
    # ------------------------------------------------------------------

    def find_discounted(self) -> List[Item]:
        with self.cursor() as cursor:
            cursor.execute(
                ITEM_SELECT + " WHERE i.is_active = TRUE AND d.id IS NOT NULL ORDER BY i.item_name"
            )
            return [Item(**row) for row in cursor.fetchall()]

    def upsert_discount(
        self,
        item_id: int,
        percentage: Decimal,
        start_date: Optional[date],
        end_date: Optional[date],
        user_id: Optional[int],
        is_active: bool = True,
        conn=None
    ) -> None:
        with self.cursor(conn) as cursor:
            cursor.execute("""
                INSERT INTO product_discounts (
                    item_id, discount_percentage, start_date, end_date, is_active, created_by
                ) VALUES (%s, %s, %s, %s, %s, %s)
                ON CONFLICT (item_id) DO UPDATE SET
                    discount_percentage = EXCLUDED.discount_percentage,
                    start_date = EXCLUDED.start_date,
                    end_date = EXCLUDED.end_date,
                    is_active = EXCLUDED.is_active,
                    updated_at = NOW()
            """, (item_id, percentage, start_date, end_date, is_active, user_id))

    def remove_discount(self, item_id: int) -> bool:
        with self.cursor() as cursor:
            cursor.execute("DELETE FROM product_discounts WHERE item_id = %s RETURNING id", (item_id,))
            return cursor.fetchone() is not None
