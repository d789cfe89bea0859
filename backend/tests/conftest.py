# backend/tests/conftest.py
"""
Pytest configuration for the HelperHive backend.

The environment is forced to an in-memory SQLite database, the memory
broadcaster and eager Celery BEFORE any application import. Services get a
fixed clock so refund tiers and earnings windows are deterministic, and the
Stripe gateway runs in mock mode (no secret key).
"""

import os

# CRITICAL: Set testing mode BEFORE any app imports!
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BROADCAST_URL"] = "memory://"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["CI"] = "1"
for _key in ("STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET", "RESEND_API_KEY", "TWILIO_ACCOUNT_SID"):
    os.environ.pop(_key, None)

from datetime import datetime, timezone

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.orm import Session

from helperhive.api.dependencies.database import get_db
from helperhive.api.dependencies.services import get_clock, get_stripe_gateway
from helperhive.auth import create_access_token
from helperhive.database import Base, SessionLocal, engine
from helperhive.main import app
import helperhive.models  # noqa: F401
from helperhive.models.booking import Booking
from helperhive.models.service import Service
from helperhive.models.user import User
from helperhive.services.stripe_gateway import StripeGateway

from .factories import builders

# Monday 2 March 2026, 10:00 in Johannesburg
FIXED_NOW = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_NOW


@pytest.fixture
def clock():
    return fixed_clock


@pytest.fixture(scope="function")
def db() -> Session:
    """Fresh schema per test on the shared in-memory engine."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def gateway() -> StripeGateway:
    return StripeGateway()


@pytest.fixture
def client(db: Session, gateway: StripeGateway):
    """TestClient sharing the test session, clock and mock gateway."""

    def override_get_db():
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: fixed_clock
    app.dependency_overrides[get_stripe_gateway] = lambda: gateway

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def auth_headers_for(user: User) -> dict:
    token = create_access_token(user.id, user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def test_password() -> str:
    return builders.DEFAULT_PASSWORD


@pytest.fixture
def test_customer(db: Session) -> User:
    return builders.create_customer(db)


@pytest.fixture
def test_provider(db: Session) -> User:
    return builders.create_provider(db)


@pytest.fixture
def test_admin(db: Session) -> User:
    return builders.create_admin(db)


@pytest.fixture
def other_customer(db: Session) -> User:
    return builders.create_customer(db, email="other@example.com", phone="+27820000099")


@pytest.fixture
def test_service(db: Session, test_provider: User) -> Service:
    service = builders.create_service(db)
    builders.offer_service(db, test_provider, service)
    return service


@pytest.fixture
def test_booking(db: Session, test_customer: User, test_provider: User, test_service: Service) -> Booking:
    """Pending booking 48 hours out: base R400 plus one R100 add-on."""
    return builders.create_booking(
        db, test_customer, test_provider, test_service, clock=fixed_clock, hours_ahead=48
    )


@pytest.fixture
def auth_headers_customer(test_customer: User) -> dict:
    return auth_headers_for(test_customer)


@pytest.fixture
def auth_headers_provider(test_provider: User) -> dict:
    return auth_headers_for(test_provider)


@pytest.fixture
def auth_headers_admin(test_admin: User) -> dict:
    return auth_headers_for(test_admin)


@pytest.fixture
def auth_headers_other(other_customer: User) -> dict:
    return auth_headers_for(other_customer)
