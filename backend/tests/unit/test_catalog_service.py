"""CatalogService: browsing, provider discovery and admin maintenance."""

from decimal import Decimal

import pytest

from helperhive.core.enums import BackgroundCheckStatus
from helperhive.core.exceptions import ForbiddenException, NotFoundException, ValidationException
from helperhive.schemas.service import ServiceCreate, ServiceUpdate
from helperhive.services.catalog_service import CatalogService, haversine_km

from ..factories import builders

JOHANNESBURG = (-26.2041, 28.0473)
SANDTON = (-26.1076, 28.0567)
PRETORIA = (-25.7479, 28.2293)


@pytest.fixture
def catalog_service(db, clock):
    return CatalogService(db, clock)


def test_haversine_known_distance():
    assert haversine_km(*JOHANNESBURG, *PRETORIA) == pytest.approx(54, abs=2)
    assert haversine_km(*JOHANNESBURG, *JOHANNESBURG) == 0


class TestBrowse:
    def test_filters(self, db, catalog_service, test_service):
        builders.create_service(db, name="Dog Walk", category="pet-care", provinces=["KwaZulu-Natal"])

        services, total = catalog_service.list_services(category="cleaning")
        assert total == 1 and services[0].id == test_service.id

        services, total = catalog_service.list_services(province="KwaZulu-Natal")
        assert [s.name for s in services] == ["Dog Walk"]

        services, total = catalog_service.list_services(search="CLEAN")
        assert total == 1

    def test_inactive_hidden(self, db, catalog_service, test_service, test_admin):
        catalog_service.deactivate_service(test_service.id, test_admin)
        assert catalog_service.list_services() == ([], 0)
        with pytest.raises(NotFoundException):
            catalog_service.get_service(test_service.id)

    def test_categories(self, db, catalog_service, test_service):
        builders.create_service(db, name="Dog Walk", category="pet-care")
        builders.create_service(db, name="Window Wash", category="cleaning")
        assert catalog_service.list_categories() == [
            {"category": "cleaning", "service_count": 2},
            {"category": "pet-care", "service_count": 1},
        ]

    def test_service_detail_lists_bookable_providers(self, db, catalog_service, test_service, test_provider):
        pending = builders.create_provider(
            db, email="pending@example.com", bgc=BackgroundCheckStatus.PENDING
        )
        builders.offer_service(db, pending, test_service)

        _, providers = catalog_service.get_service(test_service.id)
        assert [p.id for p in providers] == [test_provider.id]


class TestNearby:
    def test_sorted_by_distance_within_radius(self, db, catalog_service, test_service, test_provider):
        sandton = builders.create_provider(
            db, email="sandton@example.com", latitude=SANDTON[0], longitude=SANDTON[1]
        )
        pretoria = builders.create_provider(
            db, email="pta@example.com", latitude=PRETORIA[0], longitude=PRETORIA[1]
        )
        for provider in (sandton, pretoria):
            builders.offer_service(db, provider, test_service)

        matches = catalog_service.nearby_providers(test_service.id, *SANDTON, radius_km=25)

        assert [p.id for p, _ in matches] == [sandton.id, test_provider.id]
        assert matches[0][1] == 0.0

    def test_providers_without_location_skipped(self, db, catalog_service, test_service):
        nowhere = builders.create_provider(db, email="nowhere@example.com", latitude=None, longitude=None)
        builders.offer_service(db, nowhere, test_service)
        ids = [p.id for p, _ in catalog_service.nearby_providers(test_service.id, *JOHANNESBURG)]
        assert nowhere.id not in ids

    def test_invalid_radius(self, catalog_service, test_service):
        with pytest.raises(ValidationException) as exc_info:
            catalog_service.nearby_providers(test_service.id, *JOHANNESBURG, radius_km=0)
        assert exc_info.value.code == "INVALID_RADIUS"


class TestAdminMaintenance:
    def _payload(self, **overrides):
        data = dict(
            name="Lawn Mowing",
            category="gardening",
            base_price=Decimal("300"),
            duration_min_minutes=60,
            duration_max_minutes=90,
            available_provinces=["Gauteng"],
            add_ons=[{"name": "Edging", "price": Decimal("50")}],
        )
        data.update(overrides)
        return ServiceCreate(**data)

    def test_create(self, catalog_service, test_admin):
        service = catalog_service.create_service(self._payload(), test_admin)
        assert service.is_active is True
        assert service.add_ons == [{"name": "Edging", "price": "50", "description": None}]

    def test_create_requires_admin(self, catalog_service, test_provider):
        with pytest.raises(ForbiddenException):
            catalog_service.create_service(self._payload(), test_provider)

    def test_update_partial(self, catalog_service, test_service, test_admin):
        service = catalog_service.update_service(
            test_service.id, ServiceUpdate(base_price=Decimal("450.00")), test_admin
        )
        assert service.base_price == Decimal("450.00")
        assert service.name == "Deep Clean"

    def test_update_rejects_inverted_duration(self, catalog_service, test_service, test_admin):
        with pytest.raises(ValidationException) as exc_info:
            catalog_service.update_service(
                test_service.id, ServiceUpdate(duration_max_minutes=30), test_admin
            )
        assert exc_info.value.code == "INVALID_DURATION"

    def test_update_missing(self, catalog_service, test_admin):
        with pytest.raises(NotFoundException):
            catalog_service.update_service("01HZZZZZZZZZZZZZZZZZZZZZZZ", ServiceUpdate(name="X"), test_admin)
