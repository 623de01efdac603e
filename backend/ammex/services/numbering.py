"""
Document numbering

ORD-/INV-/PAY- numbers are date stamped with a random 4-digit suffix and
checked against the database before use. Customer and supplier codes are a
prefix plus a zero-padded sequence.
"""
import logging
import random
from datetime import date
from typing import Callable, Optional

from ammex.core.exceptions import AmmexError

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5


def document_number(prefix: str, on: Optional[date] = None, rng: random.Random = None) -> str:
    on = on or date.today()
    rng = rng or random
    return f"{prefix}-{on.strftime('%Y%m%d')}-{rng.randint(1000, 9999)}"


def generate_unique_number(prefix: str, exists: Callable[[str], bool], on: Optional[date] = None) -> str:
    """Draw numbers until `exists` reports a free one"""
    for attempt in range(1, MAX_ATTEMPTS + 1):
        candidate = document_number(prefix, on)
        if not exists(candidate):
            return candidate
        logger.warning(f"{prefix} number collision on {candidate} (attempt {attempt}/{MAX_ATTEMPTS})")

    raise AmmexError(f"Could not generate a unique {prefix} number", status_code=500)


def sequence_code(prefix: str, sequence: int, width: int = 4) -> str:
    return f"{prefix}-{sequence:0{width}d}"
