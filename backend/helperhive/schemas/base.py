# backend/helperhive/schemas/base.py
"""
Shared schema bases.

Amounts are Decimal everywhere inside the service; ``Money`` keeps that on
input and emits a JSON number on output so clients never parse strings.
"""

from decimal import Decimal, InvalidOperation
from typing import Annotated, Any, Generic, List, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, PlainSerializer

T = TypeVar("T")


def _as_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"Cannot convert {type(value).__name__} to a money amount")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Invalid money amount: {value!r}")


Money = Annotated[
    Decimal,
    BeforeValidator(_as_decimal),
    PlainSerializer(float, return_type=float),
]


class StandardizedModel(BaseModel):
    """Response base; reads ORM attributes directly."""

    model_config = ConfigDict(use_enum_values=True, populate_by_name=True, from_attributes=True)


class StrictRequestModel(BaseModel):
    """Request base; unknown fields are a 422."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True, use_enum_values=True)


class PaginatedResponse(StandardizedModel, Generic[T]):
    items: List[T]
    total: int
    page: int
    limit: int
    pages: int

    @classmethod
    def build(cls, items: List[Any], total: int, page: int, limit: int) -> "PaginatedResponse[T]":
        pages = -(-total // limit) if limit else 0
        return cls(items=items, total=total, page=page, limit=limit, pages=pages)


class MessageResponse(StandardizedModel):
    message: str
