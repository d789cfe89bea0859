# backend/helperhive/schemas/admin.py
"""Admin moderation schemas."""

from decimal import Decimal
from typing import Literal, Optional

from pydantic import Field

from .base import StandardizedModel, StrictRequestModel


class DisputeOpen(StrictRequestModel):
    note: Optional[str] = Field(None, max_length=500)


class DisputeResolve(StrictRequestModel):
    resolution: Literal["refund_customer", "favor_provider"]
    refund_amount: Optional[Decimal] = Field(None, ge=0)
    note: Optional[str] = Field(None, max_length=500)


class BackgroundCheckUpdate(StrictRequestModel):
    status: Literal["approved", "rejected", "pending", "not-required"]


class UserStatusUpdate(StrictRequestModel):
    is_active: bool


class UserStatusResponse(StandardizedModel):
    id: str
    email: str
    role: str
    is_active: bool
