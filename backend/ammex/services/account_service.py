"""
Account Service

Login, registration and user administration. Registering a Client creates
the linked customer record in the same transaction.

Author: Ammex Dev Team
Date: 2025-03-02
"""
import logging
from typing import Any, Dict, Optional, Tuple

from ammex.core.auth import (
    ROLE_ADMIN, ROLE_CLIENT, canonical_role, create_access_token, hash_password, verify_password,
)
from ammex.core.database import transaction
from ammex.core.exceptions import AmmexError, NotFoundError, ValidationFailed
from ammex.domain.user import User
from ammex.repositories.customer_repository import CustomerRepository
from ammex.repositories.user_repository import UserRepository
from ammex.services.numbering import sequence_code

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class AccountService:

    def __init__(self, user_repo: UserRepository = None, customer_repo: CustomerRepository = None):
        self.user_repo = user_repo or UserRepository()
        self.customer_repo = customer_repo or CustomerRepository()

    def login(self, email: str, password: str) -> Tuple[str, User]:
        """
        Authenticate by email (trimmed, case-insensitive) and password

        Returns:
            Tuple of (JWT, user)
        """
        email = (email or "").strip()
        if not email or not password:
            raise ValidationFailed("Please provide an email and password")

        user = self.user_repo.find_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            logger.info(f"Failed login for {email}")
            raise AmmexError("Invalid credentials")
        if not user.is_active:
            raise AmmexError("Account is inactive")

        self.user_repo.touch_last_login(user.id)
        return create_access_token(user), user

    def register(self, data: Dict[str, Any]) -> User:
        role = canonical_role(data.get("role") or ROLE_CLIENT)
        if not role:
            raise ValidationFailed(f"Invalid role: {data.get('role')}")
        if len(data.get("password") or "") < MIN_PASSWORD_LENGTH:
            raise ValidationFailed(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        if self.user_repo.email_exists(data["email"]):
            raise ValidationFailed("User already exists")

        with transaction() as conn:
            user = self.user_repo.create({
                "name": data["name"],
                "email": data["email"],
                "password_hash": hash_password(data["password"]),
                "role": role,
                "department": data.get("department"),
            }, conn=conn)

            if role == ROLE_CLIENT:
                sequence = self.customer_repo.next_sequence(conn=conn)
                self.customer_repo.create({
                    "customer_code": sequence_code("CUST", sequence),
                    "user_id": user.id,
                    "customer_name": data["name"],
                    "email1": data["email"].strip().lower(),
                }, conn=conn)
                user = self.user_repo.find_by_id(user.id, conn=conn)

        logger.info(f"User {user.id} registered with role {role}")
        return user

    def update_user(self, user_id: int, fields: Dict[str, Any], acting_user: Optional[User] = None) -> User:
        if "role" in fields and fields["role"] is not None:
            role = canonical_role(fields["role"])
            if not role:
                raise ValidationFailed(f"Invalid role: {fields['role']}")
            fields["role"] = role
        if fields.get("email") and self.user_repo.email_exists(fields["email"], exclude_id=user_id):
            raise ValidationFailed("Email is already in use")
        if acting_user and acting_user.id == user_id and fields.get("is_active") is False:
            raise ValidationFailed("You cannot archive your own account")

        user = self.user_repo.update(user_id, {k: v for k, v in fields.items() if v is not None})
        if not user:
            raise NotFoundError("User not found")
        return user

    def update_profile(self, user: User, name: Optional[str], email: Optional[str]) -> User:
        """Self-service update, limited to name and email"""
        return self.update_user(user.id, {"name": name, "email": email})

    def change_password(self, user: User, current_password: str, new_password: str) -> None:
        stored = self.user_repo.find_by_email(user.email)
        if not stored or not verify_password(current_password, stored.password_hash):
            raise AmmexError("Current password is incorrect")
        if len(new_password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationFailed(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        self.user_repo.update_password(user.id, hash_password(new_password))

    def set_active(self, user_id: int, is_active: bool, acting_user: User) -> User:
        if not is_active and acting_user.id == user_id:
            raise ValidationFailed("You cannot archive your own account")
        user = self.user_repo.set_active(user_id, is_active)
        if not user:
            raise NotFoundError("User not found")
        logger.info(f"User {user_id} {'restored' if is_active else 'archived'} by {acting_user.id}")
        return user

    def ensure_admin(self, name: str, email: str, password: str) -> User:
        """Create the first administrator when it does not exist yet"""
        existing = self.user_repo.find_by_email(email)
        if existing:
            return existing
        return self.register({"name": name, "email": email, "password": password, "role": ROLE_ADMIN})
