"""
Customer and Supplier Domain Models

Author: Ammex Dev Team
Date: 2025-03-02
"""
import json
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field

from ammex.domain.base import DomainModel

# Fields a customer must fill in before any checkout
REQUIRED_PROFILE_FIELDS = {
    "customer_name": "customerName",
    "street": "street",
    "city": "city",
    "postal_code": "postalCode",
    "country": "country",
    "telephone1": "telephone1",
    "email1": "email1",
}


class Customer(DomainModel):
    id: int = Field(..., description="Customer ID")
    customer_code: str = Field(..., description="Customer code (CUST-0001)")
    user_id: Optional[int] = None
    tier_id: Optional[int] = None
    tier_name: Optional[str] = None

    customer_name: str
    contact_name: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    telephone1: Optional[str] = None
    telephone2: Optional[str] = None
    email1: Optional[str] = None
    email2: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool = True

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def missing_profile_fields(self) -> List[str]:
        """Return the camelCase names of required profile fields that are blank"""
        missing = []
        for attr, label in REQUIRED_PROFILE_FIELDS.items():
            value = getattr(self, attr)
            if value is None or not str(value).strip():
                missing.append(label)
        return missing

    @property
    def is_profile_complete(self) -> bool:
        return not self.missing_profile_fields()

    def address_dict(self) -> Dict[str, Optional[str]]:
        return {
            "street": self.street,
            "city": self.city,
            "postalCode": self.postal_code,
            "country": self.country,
        }

    def address_json(self) -> str:
        """Snapshot stored on orders as shipping and billing address"""
        return json.dumps(self.address_dict())


class Supplier(DomainModel):
    id: int = Field(..., description="Supplier ID")
    supplier_code: str = Field(..., description="Supplier code (SUPP-0001)")
    company_name: str
    contact_name: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    telephone1: Optional[str] = None
    email1: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool = True
    archived_at: Optional[datetime] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
