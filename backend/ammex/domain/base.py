"""
Shared base for domain models

API payloads use camelCase keys; Python code and SQL rows use snake_case.
Models accept either and serialize with the camelCase aliases.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def to_jsonable(value: Any) -> Any:
    """Convert Decimal to float and dates to ISO strings, recursively"""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


class DomainModel(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
        protected_namespaces=(),
    )

    def to_dict(self) -> dict:
        """Convert to an API dictionary (camelCase, floats, ISO dates)"""
        return to_jsonable(self.model_dump(by_alias=True))


class RequestModel(BaseModel):
    """Base for request bodies: camelCase on the wire, snake_case in code"""

    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
        str_strip_whitespace=True,
        protected_namespaces=(),
    )
