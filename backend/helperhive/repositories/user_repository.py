# backend/helperhive/repositories/user_repository.py
"""User and profile data access."""

from typing import List, Optional

from sqlalchemy.orm import Query, Session, joinedload

from ..core.enums import BackgroundCheckStatus, RoleName
from ..models.profile import ProviderProfile, provider_services
from ..models.user import User
from .base_repository import BaseRepository


class UserRepository(BaseRepository[User]):
    def __init__(self, db: Session):
        super().__init__(db, User)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(
            joinedload(User.provider_profile), joinedload(User.customer_profile)
        )

    def get_by_email(self, email: str) -> Optional[User]:
        return (
            self._apply_eager_loading(self.db.query(User))
            .filter(User.email == email.strip().lower())
            .first()
        )

    def get_by_email_token(self, token: str) -> Optional[User]:
        return self.find_one_by(email_verification_token=token)

    def email_taken(self, email: str) -> bool:
        return self.exists(email=email.strip().lower())

    def phone_taken(self, phone: str) -> bool:
        return self.exists(phone=phone)

    def get_provider(self, user_id: str) -> Optional[User]:
        return (
            self._apply_eager_loading(self.db.query(User))
            .filter(User.id == user_id, User.role == RoleName.PROVIDER.value)
            .first()
        )

    def bookable_providers_for_service(self, service_id: str) -> List[User]:
        """Active, approved, available providers offering the service, best rated first."""
        return (
            self.db.query(User)
            .join(ProviderProfile, ProviderProfile.user_id == User.id)
            .join(provider_services, provider_services.c.provider_profile_id == ProviderProfile.id)
            .filter(provider_services.c.service_id == service_id)
            .filter(User.is_active.is_(True))
            .filter(ProviderProfile.is_available.is_(True))
            .filter(
                ProviderProfile.background_check_status == BackgroundCheckStatus.APPROVED.value
            )
            .options(joinedload(User.provider_profile))
            .order_by(ProviderProfile.rating_average.desc(), ProviderProfile.rating_count.desc())
            .all()
        )
