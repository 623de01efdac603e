"""
Authentication and authorization for the Ammex API

Issues and validates HS256 JWTs, hashes passwords with bcrypt and provides
FastAPI dependencies for the current user and role checks.
"""
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError, ExpiredSignatureError
from passlib.context import CryptContext

from ammex.core.config import settings
from ammex.domain.user import User
from ammex.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

# Security scheme for bearer tokens
security = HTTPBearer(auto_error=False)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ROLE_ADMIN = "Admin"
ROLE_SALES = "Sales Marketing"
ROLE_WAREHOUSE = "Warehouse Supervisor"
ROLE_CLIENT = "Client"

ROLES = (ROLE_ADMIN, ROLE_SALES, ROLE_WAREHOUSE, ROLE_CLIENT)
STAFF_ROLES = (ROLE_ADMIN, ROLE_SALES, ROLE_WAREHOUSE)

# Legacy and shorthand role names seen in stored accounts
ROLE_ALIASES = {
    "sales": "sales marketing",
    "warehouse": "warehouse supervisor",
    "warehouse admin": "warehouse supervisor",
}


def normalize_role(role: Optional[str]) -> str:
    """Lowercase, underscores as spaces, whitespace collapsed, aliases resolved"""
    value = re.sub(r"\s+", " ", str(role or "").replace("_", " ").strip().lower())
    return ROLE_ALIASES.get(value, value)


def canonical_role(role: Optional[str]) -> Optional[str]:
    """Map any accepted spelling to one of ROLES, or None when unknown"""
    normalized = normalize_role(role)
    for known in ROLES:
        if known.lower() == normalized:
            return known
    return None


def is_staff(user: User) -> bool:
    return canonical_role(user.role) in STAFF_ROLES


def is_client(user: User) -> bool:
    return canonical_role(user.role) == ROLE_CLIENT


# =============================================================================
# Passwords and tokens
# =============================================================================

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        # Malformed stored hash
        logger.warning("Stored password hash could not be parsed")
        return False


def _get_secret() -> str:
    if not settings.JWT_SECRET:
        raise RuntimeError("JWT_SECRET environment variable is not set")
    return settings.JWT_SECRET


def create_access_token(user: User, expires_days: Optional[int] = None) -> str:
    """Sign a token carrying the user id, role and linked customer"""
    expire = datetime.now(timezone.utc) + timedelta(days=expires_days or settings.JWT_EXPIRE_DAYS)
    payload: Dict[str, Any] = {
        "id": user.id,
        "role": canonical_role(user.role) or user.role,
        "exp": expire,
    }
    if user.customer_id:
        payload["customerId"] = user.customer_id
    return jwt.encode(payload, _get_secret(), algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, _get_secret(), algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized to access this route",
            headers={"WWW-Authenticate": "Bearer"},
        )


# =============================================================================
# Dependencies
# =============================================================================

def get_user_repository() -> UserRepository:
    return UserRepository()


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    users: UserRepository = Depends(get_user_repository),
) -> User:
    """
    Dependency that resolves the bearer token into an active User.

    Usage:
        @router.get("/protected")
        def protected_route(user: User = Depends(get_current_user)):
            return {"message": f"Hello {user.email}"}
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized to access this route",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_access_token(credentials.credentials)
    user_id = payload.get("id")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized to access this route",
        )

    user = users.find_by_id(int(user_id))
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User account is inactive")

    return user


def require_roles(*roles: str):
    """
    Dependency factory for role-based access control.

    Roles are compared after normalization, so "warehouse_admin" passes a
    "Warehouse Supervisor" check.

    Usage:
        @router.delete("/users/{user_id}")
        def delete_user(user_id: int, user: User = Depends(require_roles(ROLE_ADMIN))):
            ...
    """
    allowed = {normalize_role(role) for role in roles}

    def role_checker(user: User = Depends(get_current_user)) -> User:
        if normalize_role(user.role) not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"User role {user.role} is not authorized to access this route",
            )
        return user

    return role_checker


def assert_customer_access(user: User, customer_id: int) -> None:
    """Clients may only act on their own customer record; staff on any"""
    if is_client(user) and user.customer_id != customer_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to access this customer's data",
        )


def require_customer_id(user: User) -> int:
    """Customer id linked to a Client account"""
    if not user.customer_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No customer record linked to this account",
        )
    return user.customer_id


# Convenience dependencies for common role requirements
require_admin = require_roles(ROLE_ADMIN)
require_staff = require_roles(*STAFF_ROLES)
require_sales = require_roles(ROLE_ADMIN, ROLE_SALES)
require_warehouse = require_roles(ROLE_ADMIN, ROLE_WAREHOUSE)
require_client = require_roles(ROLE_CLIENT)
