# backend/helperhive/services/user_service.py
"""Provider profile updates through the profile's typed setters."""

from typing import Optional

from sqlalchemy.orm import Session

from ..core.exceptions import ForbiddenException, NotFoundException, ValidationException
from ..models.profile import ProviderProfile
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from ..schemas.user import ProviderProfileUpdate
from .base import BaseService, Clock


class UserService(BaseService):
    def __init__(self, db: Session, clock: Optional[Clock] = None):
        super().__init__(db, clock)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.service_repository = RepositoryFactory.create_service_repository(db)

    @BaseService.measure_operation("update_provider_profile")
    def update_provider_profile(self, user: User, update: ProviderProfileUpdate) -> ProviderProfile:
        if not user.is_provider:
            raise ForbiddenException("Provider access required", code="PROVIDER_ONLY")
        profile = user.provider_profile
        if profile is None:
            raise NotFoundException("Provider profile not found", code="PROFILE_NOT_FOUND")

        fields = update.model_fields_set
        services = None
        if "service_ids" in fields and update.service_ids is not None:
            wanted = list(dict.fromkeys(update.service_ids))
            services = self.service_repository.get_many(wanted)
            missing = sorted(set(wanted) - {s.id for s in services})
            if missing:
                raise ValidationException(
                    "Unknown services", code="UNKNOWN_SERVICE", details={"service_ids": missing}
                )

        with self.transaction():
            try:
                if "bio" in fields:
                    profile.update_bio(update.bio)
                if update.hourly_rate is not None:
                    profile.set_hourly_rate(update.hourly_rate)
                if update.years_experience is not None:
                    profile.set_years_experience(update.years_experience)
                if update.serving_radius_km is not None:
                    profile.set_serving_radius(update.serving_radius_km)
                if update.is_available is not None:
                    profile.set_availability(update.is_available)
                if update.latitude is not None and update.longitude is not None:
                    profile.set_location(update.latitude, update.longitude)
                if services is not None:
                    profile.set_offered_services(services)
            except ValueError as e:
                raise ValidationException(str(e), code="INVALID_PROFILE_FIELD")
            self.user_repository.flush()
        return profile
