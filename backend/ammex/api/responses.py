"""
Response envelope helpers

Successful responses: { "success": true, "data": ..., "pagination"?: ... }
Errors are produced by the exception handlers in ammex.main.
"""
from typing import Any, Dict, Optional

from ammex.core.pagination import pagination_meta


def success(data: Any = None, message: Optional[str] = None, **extra) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return body


def paginated(data: Any, page: int, limit: int, total: int, **extra) -> Dict[str, Any]:
    return success(data, pagination=pagination_meta(page, limit, total), **extra)
