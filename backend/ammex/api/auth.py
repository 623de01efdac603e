"""
Authentication API endpoints
- Login / current user
- User management (admin only)
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import EmailStr, Field

from ammex.api.responses import paginated, success
from ammex.core.auth import get_current_user, require_admin
from ammex.core.pagination import paginate
from ammex.core.rate_limit import login_rate_limit
from ammex.domain.base import RequestModel
from ammex.domain.user import User
from ammex.services.account_service import AccountService

router = APIRouter()


# =============================================================================
# Request Models
# =============================================================================

class LoginRequest(RequestModel):
    email: str
    password: str


class RegisterRequest(RequestModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Optional[str] = "Client"
    department: Optional[str] = None


class UserUpdate(RequestModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    role: Optional[str] = None
    department: Optional[str] = None
    is_active: Optional[bool] = None


class ProfileUpdate(RequestModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None


class PasswordChange(RequestModel):
    current_password: str
    new_password: str = Field(..., min_length=6)


def get_account_service() -> AccountService:
    return AccountService()


# =============================================================================
# Session
# =============================================================================

@router.post("/login", dependencies=[Depends(login_rate_limit)])
def login(body: LoginRequest, accounts: AccountService = Depends(get_account_service)):
    """Exchange email and password for a bearer token"""
    token, user = accounts.login(body.email, body.password)
    return {"success": True, "token": token, "user": user.to_dict()}


@router.get("/me")
def get_me(user: User = Depends(get_current_user)):
    return success(user.to_dict())


@router.put("/me")
def update_me(
    body: ProfileUpdate,
    user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service)
):
    updated = accounts.update_profile(user, body.name, body.email)
    return success(updated.to_dict(), message="Profile updated")


@router.put("/me/password")
def change_password(
    body: PasswordChange,
    user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service)
):
    accounts.change_password(user, body.current_password, body.new_password)
    return success(message="Password updated successfully")


# =============================================================================
# User Management Endpoints (Admin Only)
# =============================================================================

@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    admin: User = Depends(require_admin),
    accounts: AccountService = Depends(get_account_service)
):
    user = accounts.register(body.model_dump())
    return success(user.to_dict(), message="User registered successfully")


@router.get("/users")
def list_users(
    include_inactive: bool = Query(False, alias="includeInactive"),
    role: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=200),
    admin: User = Depends(require_admin),
    accounts: AccountService = Depends(get_account_service)
):
    size, offset = paginate(page, limit)
    users, total = accounts.user_repo.find_all(include_inactive, role, size, offset)
    return paginated([u.to_dict() for u in users], page, size, total)


@router.put("/users/{user_id}")
def update_user(
    user_id: int,
    body: UserUpdate,
    admin: User = Depends(require_admin),
    accounts: AccountService = Depends(get_account_service)
):
    user = accounts.update_user(user_id, body.model_dump(exclude_unset=True), acting_user=admin)
    return success(user.to_dict(), message="User updated")


@router.delete("/users/{user_id}")
def archive_user(
    user_id: int,
    admin: User = Depends(require_admin),
    accounts: AccountService = Depends(get_account_service)
):
    user = accounts.set_active(user_id, False, admin)
    return success(user.to_dict(), message="User archived")


@router.patch("/users/{user_id}/restore")
def restore_user(
    user_id: int,
    admin: User = Depends(require_admin),
    accounts: AccountService = Depends(get_account_service)
):
    user = accounts.set_active(user_id, True, admin)
    return success(user.to_dict(), message="User restored")
