# backend/helperhive/core/config.py
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import BRAND_NAME


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug("[CONFIG] Looking for .env at: %s", env_path)
    load_dotenv(env_path)


class Settings(BaseSettings):
    """Runtime configuration for the HelperHive API and workers."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = BRAND_NAME
    environment: str = Field(default="development", description="development | test | production")
    log_level: str = "INFO"

    # Database
    database_url: str = Field(
        default="sqlite:///./helperhive.db",
        description="SQLAlchemy database URL",
    )
    database_echo: bool = False

    # Redis / realtime / workers
    redis_url: Optional[str] = None
    broadcast_url: Optional[str] = Field(
        default=None,
        description="broadcaster backend URL; falls back to redis_url, then memory://",
    )
    celery_broker_url: Optional[str] = None
    celery_result_backend: Optional[str] = None
    celery_task_always_eager: bool = False
    sse_heartbeat_seconds: int = 15

    # Auth
    secret_key: SecretStr = SecretStr("change-me-in-production")
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7
    verification_code_ttl_minutes: int = 10

    # Pricing
    platform_fee_rate: float = Field(default=0.10, description="Commission charged on subtotal")
    currency: str = "ZAR"

    # Refund policy table. Both paths share the tier thresholds.
    refund_full_threshold_hours: float = 24.0
    refund_partial_threshold_hours: float = 2.0
    cancel_full_refund_percent: int = 100
    cancel_partial_refund_percent: int = 50
    request_full_refund_percent: int = 90
    request_partial_refund_percent: int = 50

    # Stripe
    stripe_secret_key: Optional[SecretStr] = None
    stripe_webhook_secret: Optional[SecretStr] = None
    stripe_currency: str = "zar"

    # Notifications
    resend_api_key: Optional[SecretStr] = None
    email_from_address: str = "HelperHive <noreply@helperhive.co.za>"
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[SecretStr] = None
    twilio_phone_number: Optional[str] = None
    frontend_url: str = "http://localhost:3000"

    # Service times are entered in local time
    timezone: str = "Africa/Johannesburg"

    @field_validator("platform_fee_rate")
    @classmethod
    def _validate_fee_rate(cls, value: float) -> float:
        if not 0 <= value < 1:
            raise ValueError("platform_fee_rate must be within [0, 1)")
        return value

    @field_validator(
        "cancel_full_refund_percent",
        "cancel_partial_refund_percent",
        "request_full_refund_percent",
        "request_partial_refund_percent",
    )
    @classmethod
    def _validate_percent(cls, value: int) -> int:
        if not 0 <= value <= 100:
            raise ValueError("refund percentages must be between 0 and 100")
        return value

    @model_validator(mode="after")
    def _validate_refund_thresholds(self) -> "Settings":
        if self.refund_partial_threshold_hours >= self.refund_full_threshold_hours:
            raise ValueError(
                "refund_partial_threshold_hours must be lower than refund_full_threshold_hours"
            )
        return self

    @property
    def is_testing(self) -> bool:
        return self.environment == "test" or is_running_tests()

    def get_database_url(self) -> str:
        return self.database_url

    def get_broadcast_url(self) -> str:
        return self.broadcast_url or self.redis_url or "memory://"

    def get_celery_broker_url(self) -> str:
        return self.celery_broker_url or self.redis_url or "memory://"


settings = Settings()
