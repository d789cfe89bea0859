# backend/helperhive/schemas/service.py
"""Service catalog schemas."""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator, model_validator

from ..core.constants import SA_PROVINCES
from ..core.enums import PricingType, ServiceCategory
from .base import Money, StandardizedModel, StrictRequestModel


class AddOnDefinition(StrictRequestModel):
    name: str = Field(..., min_length=1, max_length=100)
    price: Decimal = Field(..., ge=0)
    description: Optional[str] = Field(None, max_length=300)


def _check_provinces(values: Optional[List[str]]) -> Optional[List[str]]:
    if values is None:
        return values
    unknown = [p for p in values if p not in SA_PROVINCES]
    if unknown:
        raise ValueError(f"Unknown provinces: {', '.join(unknown)}")
    return values


class ServiceCreate(StrictRequestModel):
    name: str = Field(..., min_length=1, max_length=120)
    description: str = Field("", max_length=2000)
    category: ServiceCategory
    subcategory: Optional[str] = Field(None, max_length=60)
    base_price: Decimal = Field(..., ge=0)
    pricing_type: PricingType = PricingType.FIXED
    duration_min_minutes: int = Field(60, gt=0)
    duration_max_minutes: int = Field(120, gt=0)
    available_provinces: List[str] = Field(default_factory=list)
    minimum_advance_booking_hours: int = Field(2, ge=0)
    cancellation_policy: Optional[str] = None
    add_ons: List[AddOnDefinition] = Field(default_factory=list)

    @field_validator("available_provinces")
    @classmethod
    def validate_provinces(cls, v: List[str]) -> List[str]:
        return _check_provinces(v) or []

    @model_validator(mode="after")
    def check_duration(self) -> "ServiceCreate":
        if self.duration_max_minutes < self.duration_min_minutes:
            raise ValueError("duration_max_minutes must be >= duration_min_minutes")
        return self


class ServiceUpdate(StrictRequestModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = Field(None, max_length=2000)
    category: Optional[ServiceCategory] = None
    subcategory: Optional[str] = Field(None, max_length=60)
    base_price: Optional[Decimal] = Field(None, ge=0)
    pricing_type: Optional[PricingType] = None
    duration_min_minutes: Optional[int] = Field(None, gt=0)
    duration_max_minutes: Optional[int] = Field(None, gt=0)
    available_provinces: Optional[List[str]] = None
    minimum_advance_booking_hours: Optional[int] = Field(None, ge=0)
    cancellation_policy: Optional[str] = None
    add_ons: Optional[List[AddOnDefinition]] = None
    is_active: Optional[bool] = None

    @field_validator("available_provinces")
    @classmethod
    def validate_provinces(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _check_provinces(v)


class ServiceResponse(StandardizedModel):
    id: str
    name: str
    description: str
    category: str
    subcategory: Optional[str] = None
    base_price: Money
    pricing_type: str
    duration_min_minutes: int
    duration_max_minutes: int
    available_provinces: List[str]
    minimum_advance_booking_hours: int
    cancellation_policy: Optional[str] = None
    add_ons: List[Dict[str, Any]]
    is_active: bool


class ProviderSummary(StandardizedModel):
    id: str
    first_name: str
    last_name: str
    bio: Optional[str] = None
    hourly_rate: Optional[Money] = None
    years_experience: int = 0
    rating_average: float = 0.0
    rating_count: int = 0
    completed_jobs: int = 0
    distance_km: Optional[float] = None


class ServiceDetailResponse(ServiceResponse):
    providers: List[ProviderSummary] = Field(default_factory=list)


class CategorySummary(StandardizedModel):
    category: str
    service_count: int
