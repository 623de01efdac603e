"""
Tier Repository - customer loyalty tiers and lifetime spend
"""
from decimal import Decimal
from typing import List, Optional

from ammex.domain.catalog import Tier
from ammex.domain.invoice import SPEND_STATUSES
from ammex.repositories.base import BaseRepository

TIER_COLUMNS = "id, name, discount_percent, min_spend, priority, is_active"


class TierRepository(BaseRepository):

    def find_all(self, active_only: bool = False) -> List[Tier]:
        where = "WHERE is_active = TRUE" if active_only else ""
        with self.cursor() as cursor:
            cursor.execute(f"SELECT {TIER_COLUMNS} FROM tiers {where} ORDER BY priority ASC, min_spend ASC")
            return [Tier(**row) for row in cursor.fetchall()]

    def find_by_id(self, tier_id: int) -> Optional[Tier]:
        with self.cursor() as cursor:
            cursor.execute(f"SELECT {TIER_COLUMNS} FROM tiers WHERE id = %s", (tier_id,))
            row = cursor.fetchone()
            return Tier(**row) if row else None

    def find_for_customer(self, customer_id: int, conn=None) -> Optional[Tier]:
        with self.cursor(conn) as cursor:
            cursor.execute(f"""
                SELECT t.id, t.name, t.discount_percent, t.min_spend, t.priority, t.is_active
                FROM customers c
                JOIN tiers t ON t.id = c.tier_id
                WHERE c.id = %s
            """, (customer_id,))
            row = cursor.fetchone()
            return Tier(**row) if row else None

    def count(self) -> int:
        with self.cursor() as cursor:
            cursor.execute("SELECT COUNT(*) AS total FROM tiers")
            return self.count_from(cursor.fetchone())

    def replace_all(self, tiers: List[Tier]) -> List[Tier]:
        """Replace the tier table contents, keeping ids of tiers matched by name"""
        with self.cursor() as cursor:
            names = [tier.name for tier in tiers]
            cursor.execute("UPDATE customers SET tier_id = NULL WHERE tier_id IN "
                           "(SELECT id FROM tiers WHERE NOT (name = ANY(%s)))", (names,))
            cursor.execute("DELETE FROM tiers WHERE NOT (name = ANY(%s))", (names,))
            saved = []
            for tier in tiers:
                cursor.execute(f"""
                    INSERT INTO tiers (name, discount_percent, min_spend, priority, is_active)
                    VALUES (%s, %s, %s, %s, %s)
                    ON CONFLICT (name) DO UPDATE SET
                        discount_percent = EXCLUDED.discount_percent,
                        min_spend = EXCLUDED.min_spend,
                        priority = EXCLUDED.priority,
                        is_active = EXCLUDED.is_active
                    RETURNING {TIER_COLUMNS}
                """, (tier.name, tier.discount_percent, tier.min_spend, tier.priority, tier.is_active))
                saved.append(Tier(**cursor.fetchone()))
            return saved

    def lifetime_spend(self, customer_id: int, conn=None) -> Decimal:
        """Sum of invoice totals counted as spend (completed or partially paid)"""
        with self.cursor(conn) as cursor:
            cursor.execute("""
                SELECT COALESCE(SUM(total_amount), 0) AS spend
                FROM invoices
                WHERE customer_id = %s AND status = ANY(%s)
            """, (customer_id, list(SPEND_STATUSES)))
            return Decimal(str(cursor.fetchone()["spend"]))
