"""
Application exceptions

Services raise these; main.py translates them into the JSON error envelope
{ "success": false, "message": ... } exactly once at the HTTP edge.
"""
from typing import Any, Dict, List, Optional


class AmmexError(Exception):
    """Base class for expected business errors"""

    status_code = 400

    def __init__(self, message: str, status_code: Optional[int] = None, extra: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra or {}

    def to_dict(self) -> Dict[str, Any]:
        body = {"success": False, "message": self.message}
        body.update(self.extra)
        return body


class NotFoundError(AmmexError):
    status_code = 404


class ValidationFailed(AmmexError):
    status_code = 400

    def __init__(self, message: str = "Validation failed", errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, extra={"errors": errors} if errors else None)
        self.errors = errors or []


class ProfileIncomplete(AmmexError):
    """Raised when checkout is attempted with required customer fields missing"""

    status_code = 400

    def __init__(self, missing_fields: List[str]):
        super().__init__(
            "Please complete your profile before checkout.",
            extra={"missingFields": missing_fields},
        )
        self.missing_fields = missing_fields


class PermissionDenied(AmmexError):
    status_code = 403


class AuthenticationFailed(AmmexError):
    status_code = 401


class ConflictError(AmmexError):
    status_code = 400
