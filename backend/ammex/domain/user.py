"""
User Domain Model

Author: Ammex Dev Team
Date: 2025-03-02
"""
from datetime import datetime
from typing import Optional

from pydantic import Field

from ammex.domain.base import DomainModel


class User(DomainModel):
    """
    Staff or client account

    customer_id / customer_code are filled for Client users linked to a
    customer record (LEFT JOIN on customers.user_id).
    """

    id: int = Field(..., description="User ID")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Login email")
    role: str = Field(..., description="Admin, Sales Marketing, Warehouse Supervisor or Client")
    department: Optional[str] = None
    is_active: bool = True
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    password_hash: Optional[str] = Field(None, exclude=True)

    customer_id: Optional[int] = Field(None, description="Linked customer primary key")
    customer_code: Optional[str] = Field(None, description="Linked customer code")

    def to_dict(self) -> dict:
        data = super().to_dict()
        # Login payload keeps both names of the linked customer
        data["customerPk"] = self.customer_id
        return data
