# backend/helperhive/schemas/user.py
"""Provider profile schemas."""

from decimal import Decimal
from typing import List, Optional

from pydantic import Field, model_validator

from .base import Money, StandardizedModel, StrictRequestModel


class ProviderProfileUpdate(StrictRequestModel):
    """Partial update; every field present is applied through its own setter."""

    bio: Optional[str] = None
    hourly_rate: Optional[Decimal] = None
    years_experience: Optional[int] = None
    serving_radius_km: Optional[int] = None
    is_available: Optional[bool] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    service_ids: Optional[List[str]] = None

    @model_validator(mode="after")
    def check_coordinates_pair(self) -> "ProviderProfileUpdate":
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be provided together")
        return self


class ProviderProfileResponse(StandardizedModel):
    id: str
    user_id: str
    bio: Optional[str] = None
    hourly_rate: Optional[Money] = None
    years_experience: int
    serving_radius_km: int
    background_check_status: str
    is_available: bool
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    rating_average: float
    rating_count: int
    total_earnings: Money
    completed_jobs: int
    service_ids: List[str] = Field(default_factory=list)

    @classmethod
    def from_profile(cls, profile) -> "ProviderProfileResponse":
        response = cls.model_validate(profile)
        response.service_ids = [service.id for service in profile.services]
        return response
