"""
Pagination helpers for list endpoints
"""
import math
from typing import Dict, Tuple

MAX_PAGE_SIZE = 200


def paginate(page: int = 1, limit: int = 10) -> Tuple[int, int]:
    """Clamp page/limit and return (limit, offset)"""
    page = max(1, int(page or 1))
    limit = min(MAX_PAGE_SIZE, max(1, int(limit or 10)))
    return limit, (page - 1) * limit


def pagination_meta(page: int, limit: int, total: int) -> Dict[str, int]:
    page = max(1, int(page or 1))
    limit = min(MAX_PAGE_SIZE, max(1, int(limit or 10)))
    return {
        "currentPage": page,
        "totalPages": math.ceil(total / limit) if total else 0,
        "totalItems": total,
        "itemsPerPage": limit,
    }
