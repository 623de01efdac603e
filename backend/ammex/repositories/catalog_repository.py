"""
Catalog Repository - categories and units

Author: Ammex Dev Team
Date: 2025-03-04
"""
from typing import List, Optional

from ammex.domain.catalog import Category, Unit
from ammex.repositories.base import BaseRepository


class CategoryRepository(BaseRepository):

    def find_all(self) -> List[Category]:
        """Top-level categories with their subcategories nested"""
        with self.cursor() as cursor:
            cursor.execute("SELECT id, name, parent_id, created_at FROM categories ORDER BY name")
            rows = cursor.fetchall()

        categories = {row["id"]: Category(**row) for row in rows}
        roots = []
        for category in categories.values():
            parent = categories.get(category.parent_id) if category.parent_id else None
            if parent:
                parent.subcategories.append(category)
            else:
                roots.append(category)
        return roots

    def find_by_id(self, category_id: int) -> Optional[Category]:
        with self.cursor() as cursor:
            cursor.execute(
                "SELECT id, name, parent_id, created_at FROM categories WHERE id = %s",
                (category_id,),
            )
            row = cursor.fetchone()
            return Category(**row) if row else None

    def name_exists(self, name: str, exclude_id: Optional[int] = None) -> bool:
        with self.cursor() as cursor:
            cursor.execute(
                "SELECT id FROM categories WHERE LOWER(name) = LOWER(%s) AND id <> %s",
                (name.strip(), exclude_id or 0),
            )
            return cursor.fetchone() is not None

    def create(self, name: str, parent_id: Optional[int] = None) -> Category:
        with self.cursor() as cursor:
            cursor.execute("""
                INSERT INTO categories (name, parent_id) VALUES (%s, %s)
                RETURNING id, name, parent_id, created_at
            """, (name.strip(), parent_id))
            return Category(**cursor.fetchone())

    def update(self, category_id: int, name: str, parent_id: Optional[int] = None) -> Optional[Category]:
        with self.cursor() as cursor:
            cursor.execute("""
                UPDATE categories SET name = %s, parent_id = %s WHERE id = %s
                RETURNING id, name, parent_id, created_at
            """, (name.strip(), parent_id, category_id))
            row = cursor.fetchone()
            return Category(**row) if row else None

    def count_active_items(self, category_id: int) -> int:
        with self.cursor() as cursor:
            cursor.execute(
                "SELECT COUNT(*) AS total FROM items WHERE category_id = %s AND is_active = TRUE",
                (category_id,),
            )
            return self.count_from(cursor.fetchone())

    def delete(self, category_id: int) -> bool:
        with self.cursor() as cursor:
            cursor.execute("UPDATE categories SET parent_id = NULL WHERE parent_id = %s", (category_id,))
            cursor.execute("DELETE FROM categories WHERE id = %s RETURNING id", (category_id,))
            return cursor.fetchone() is not None


class UnitRepository(BaseRepository):

    def find_all(self) -> List[Unit]:
        with self.cursor() as cursor:
            cursor.execute("SELECT id, name, created_at FROM units ORDER BY name")
            return [Unit(**row) for row in cursor.fetchall()]

    def find_by_id(self, unit_id: int) -> Optional[Unit]:
        with self.cursor() as cursor:
            cursor.execute("SELECT id, name, created_at FROM units WHERE id = %s", (unit_id,))
            row = cursor.fetchone()
            return Unit(**row) if row else None

    def name_exists(self, name: str, exclude_id: Optional[int] = None) -> bool:
        with self.cursor() as cursor:
            cursor.execute(
                "SELECT id FROM units WHERE LOWER(name) = LOWER(%s) AND id <> %s",
                (name.strip(), exclude_id or 0),
            )
            return cursor.fetchone() is not None

    def create(self, name: str) -> Unit:
        with self.cursor() as cursor:
            cursor.execute(
                "INSERT INTO units (name) VALUES (%s) RETURNING id, name, created_at",
                (name.strip(),),
            )
            return Unit(**cursor.fetchone())

    def update(self, unit_id: int, name: str) -> Optional[Unit]:
        with self.cursor() as cursor:
            cursor.execute(
                "UPDATE units SET name = %s WHERE id = %s RETURNING id, name, created_at",
                (name.strip(), unit_id),
            )
            row = cursor.fetchone()
            return Unit(**row) if row else None

    def count_active_items(self, unit_id: int) -> int:
        with self.cursor() as cursor:
            cursor.execute(
                "SELECT COUNT(*) AS total FROM items WHERE unit_id = %s AND is_active = TRUE",
                (unit_id,),
            )
            return self.count_from(cursor.fetchone())

    def delete(self, unit_id: int) -> bool:
        with self.cursor() as cursor:
            cursor.execute("DELETE FROM units WHERE id = %s RETURNING id", (unit_id,))
            return cursor.fetchone() is not None
