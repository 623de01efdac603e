"""
Tier Service

Customer loyalty tiers: default seeding, lifetime spend and automatic
upgrades after payments are approved.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ammex.core.exceptions import NotFoundError, ValidationFailed
from ammex.domain.catalog import Tier
from ammex.repositories.customer_repository import CustomerRepository
from ammex.repositories.tier_repository import TierRepository

logger = logging.getLogger(__name__)

DEFAULT_TIERS = [
    Tier(name="Bronze", discount_percent=Decimal("0"), min_spend=Decimal("0"), priority=1),
    Tier(name="Silver", discount_percent=Decimal("10"), min_spend=Decimal("10000"), priority=2),
    Tier(name="Gold", discount_percent=Decimal("20"), min_spend=Decimal("50000"), priority=3),
    Tier(name="Platinum", discount_percent=Decimal("30"), min_spend=Decimal("100000"), priority=4),
]


def select_tier(tiers: List[Tier], spend: Decimal) -> Optional[Tier]:
    """Highest-priority active tier whose minimum spend is reached"""
    eligible = [t for t in tiers if t.is_active and Decimal(str(t.min_spend)) <= spend]
    if not eligible:
        return None
    return max(eligible, key=lambda t: (t.priority, t.min_spend))


class TierService:

    def __init__(self, tier_repo: TierRepository = None, customer_repo: CustomerRepository = None):
        self.tier_repo = tier_repo or TierRepository()
        self.customer_repo = customer_repo or CustomerRepository()

    def ensure_defaults(self) -> List[Tier]:
        if self.tier_repo.count() == 0:
            logger.info("Seeding default customer tiers")
            return self.tier_repo.replace_all(DEFAULT_TIERS)
        return self.tier_repo.find_all()

    def list_tiers(self) -> List[Tier]:
        return self.ensure_defaults()

    def replace_tiers(self, tiers: List[Tier]) -> List[Tier]:
        names = [t.name.strip().lower() for t in tiers]
        if not tiers:
            raise ValidationFailed("At least one tier is required")
        if len(set(names)) != len(names):
            raise ValidationFailed("Tier names must be unique")
        return self.tier_repo.replace_all(tiers)

    def customer_summary(self, customer_id: int) -> Dict[str, Any]:
        customer = self.customer_repo.find_by_id(customer_id)
        if not customer:
            raise NotFoundError("Customer not found")

        spend = self.tier_repo.lifetime_spend(customer_id)
        tiers = self.ensure_defaults()
        current = self.tier_repo.find_for_customer(customer_id)
        upcoming = sorted(
            (t for t in tiers if t.is_active and Decimal(str(t.min_spend)) > spend),
            key=lambda t: t.min_spend,
        )
        next_tier = upcoming[0] if upcoming else None

        return {
            "customerId": customer_id,
            "lifetimeSpend": float(spend),
            "tier": current.to_dict() if current else None,
            "nextTier": next_tier.to_dict() if next_tier else None,
            "amountToNextTier": float(Decimal(str(next_tier.min_spend)) - spend) if next_tier else 0.0,
        }

    def check_and_upgrade_tier(self, customer_id: int) -> Optional[Tier]:
        """
        Assign the tier matching the customer's lifetime spend

        Runs after the approving transaction has committed; errors are logged
        and never propagate.
        """
        try:
            spend = self.tier_repo.lifetime_spend(customer_id)
            target = select_tier(self.tier_repo.find_all(active_only=True), spend)
            if not target:
                return None

            current = self.tier_repo.find_for_customer(customer_id)
            if current is None or current.id != target.id:
                self.customer_repo.set_tier(customer_id, target.id)
                logger.info(f"Customer {customer_id} moved to tier {target.name} (spend {spend})")
            return target

        except Exception as e:
            logger.error(f"Tier check failed for customer {customer_id}: {e}")
            return None
