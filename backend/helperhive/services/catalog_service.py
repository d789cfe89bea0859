# backend/helperhive/services/catalog_service.py
"""
Catalog Service for HelperHive

Browsing the service catalog, admin maintenance of services, and provider
discovery by distance.
"""

from enum import Enum
import math
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.constants import DEFAULT_SERVING_RADIUS_KM, EARTH_RADIUS_KM
from ..core.exceptions import ForbiddenException, NotFoundException, ValidationException
from ..models.service import Service
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from ..schemas.service import ServiceCreate, ServiceUpdate
from .base import BaseService, Clock


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def _add_on_payload(add_ons) -> List[Dict[str, Any]]:
    return [
        {"name": a.name, "price": str(a.price), "description": a.description} for a in add_ons
    ]


def _column_values(values: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v.value if isinstance(v, Enum) else v for k, v in values.items()}


class CatalogService(BaseService):
    def __init__(self, db: Session, clock: Optional[Clock] = None):
        super().__init__(db, clock)
        self.repository = RepositoryFactory.create_service_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)

    def list_services(
        self,
        *,
        category: Optional[str] = None,
        province: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Service], int]:
        return self.repository.search(
            category=category,
            province=province,
            search=search,
            skip=(page - 1) * limit,
            limit=limit,
        )

    def get_service(self, service_id: str) -> Tuple[Service, List[User]]:
        """Active service with its bookable providers, best rated first."""
        service = self.repository.get_active(service_id)
        if service is None:
            raise NotFoundException("Service not found", code="SERVICE_NOT_FOUND")
        return service, self.user_repository.bookable_providers_for_service(service.id)

    def list_categories(self) -> List[Dict[str, Any]]:
        counts = self.repository.count_active_by_category()
        return [
            {"category": category, "service_count": count}
            for category, count in sorted(counts.items())
        ]

    @BaseService.measure_operation("nearby_providers")
    def nearby_providers(
        self,
        service_id: str,
        latitude: float,
        longitude: float,
        radius_km: float = DEFAULT_SERVING_RADIUS_KM,
    ) -> List[Tuple[User, float]]:
        if radius_km <= 0:
            raise ValidationException("Radius must be positive", code="INVALID_RADIUS")
        service = self.repository.get_active(service_id)
        if service is None:
            raise NotFoundException("Service not found", code="SERVICE_NOT_FOUND")

        results: List[Tuple[User, float]] = []
        for provider in self.user_repository.bookable_providers_for_service(service.id):
            profile = provider.provider_profile
            if profile is None or not profile.has_location:
                continue
            distance = round(
                haversine_km(latitude, longitude, profile.latitude, profile.longitude), 1
            )
            if distance <= radius_km:
                results.append((provider, distance))
        results.sort(key=lambda item: item[1])
        return results

    # -------------------------------------------------------------------- admin

    @BaseService.measure_operation("create_service")
    def create_service(self, data: ServiceCreate, admin: User) -> Service:
        self._require_admin(admin)
        values = _column_values(data.model_dump(exclude={"add_ons"}))
        with self.transaction():
            service = self.repository.create(**values, add_ons=_add_on_payload(data.add_ons))
        self.logger.info("Service %s created by %s", service.id, admin.id)
        return service

    @BaseService.measure_operation("update_service")
    def update_service(self, service_id: str, data: ServiceUpdate, admin: User) -> Service:
        self._require_admin(admin)
        service = self.repository.get_by_id(service_id, load_relationships=False)
        if service is None:
            raise NotFoundException("Service not found", code="SERVICE_NOT_FOUND")
        changes = _column_values(data.model_dump(exclude_unset=True, exclude={"add_ons"}))
        if "add_ons" in data.model_fields_set and data.add_ons is not None:
            changes["add_ons"] = _add_on_payload(data.add_ons)
        low = changes.get("duration_min_minutes", service.duration_min_minutes)
        high = changes.get("duration_max_minutes", service.duration_max_minutes)
        if high < low:
            raise ValidationException(
                "duration_max_minutes must be >= duration_min_minutes", code="INVALID_DURATION"
            )
        with self.transaction():
            for key, value in changes.items():
                setattr(service, key, value)
            self.repository.flush()
        return service

    def deactivate_service(self, service_id: str, admin: User) -> Service:
        self._require_admin(admin)
        service = self.repository.get_by_id(service_id, load_relationships=False)
        if service is None:
            raise NotFoundException("Service not found", code="SERVICE_NOT_FOUND")
        with self.transaction():
            service.is_active = False
            self.repository.flush()
        return service

    @staticmethod
    def _require_admin(user: User) -> None:
        if not user.is_admin:
            raise ForbiddenException("Admin access required", code="ADMIN_ONLY")
