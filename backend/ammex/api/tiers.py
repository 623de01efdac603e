"""
Customer Tiers API Endpoints (/api/settings/tiers)
"""
from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends
from pydantic import Field

from ammex.api.responses import success
from ammex.core.auth import require_admin, require_client, require_customer_id, require_staff
from ammex.domain.base import RequestModel
from ammex.domain.catalog import Tier
from ammex.domain.user import User
from ammex.services.tier_service import TierService

router = APIRouter()


class TierBody(RequestModel):
    name: str = Field(..., min_length=1, max_length=50)
    discount_percent: Decimal = Field(..., ge=0, le=100)
    min_spend: Decimal = Field(..., ge=0)
    priority: int = 0
    is_active: bool = True


class TiersReplace(RequestModel):
    tiers: List[TierBody]


def get_tier_service() -> TierService:
    return TierService()


@router.get("/")
def list_tiers(
    user: User = Depends(require_staff),
    tiers: TierService = Depends(get_tier_service)
):
    return success([t.to_dict() for t in tiers.list_tiers()])


@router.put("/")
def replace_tiers(
    body: TiersReplace,
    user: User = Depends(require_admin),
    tiers: TierService = Depends(get_tier_service)
):
    saved = tiers.replace_tiers([Tier(**t.model_dump()) for t in body.tiers])
    return success([t.to_dict() for t in saved], message="Tiers updated")


@router.get("/my")
def my_tier(
    user: User = Depends(require_client),
    tiers: TierService = Depends(get_tier_service)
):
    return success(tiers.customer_summary(require_customer_id(user)))


@router.get("/customer/{customer_id}")
def customer_tier(
    customer_id: int,
    user: User = Depends(require_staff),
    tiers: TierService = Depends(get_tier_service)
):
    return success(tiers.customer_summary(customer_id))
