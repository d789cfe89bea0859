# backend/helperhive/models/service.py
"""Service catalog model."""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.sql import func
import ulid

from ..core.enums import PricingType
from ..database import Base


class Service(Base):
    """
    A bookable service offered on the marketplace.

    Prices here are live catalogue values. Bookings snapshot them at
    creation, so edits never reach existing bookings.
    """

    __tablename__ = "services"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    name = Column(String(120), nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(String(40), nullable=False, index=True)
    subcategory = Column(String(60), nullable=True)

    base_price = Column(Numeric(10, 2), nullable=False)
    pricing_type = Column(String(20), nullable=False, default=PricingType.FIXED.value)
    duration_min_minutes = Column(Integer, nullable=False, default=60)
    duration_max_minutes = Column(Integer, nullable=False, default=120)

    available_provinces = Column(JSON, nullable=False, default=list)
    minimum_advance_booking_hours = Column(Integer, nullable=False, default=2)
    cancellation_policy = Column(Text, nullable=True)
    add_ons = Column(JSON, nullable=False, default=list)

    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("base_price >= 0", name="ck_services_base_price_non_negative"),
        CheckConstraint(
            "category IN ('cleaning', 'pet-care', 'beauty-personal-care', 'gardening', 'automotive')",
            name="ck_services_category",
        ),
        CheckConstraint(
            "pricing_type IN ('hourly', 'fixed', 'per-item')", name="ck_services_pricing_type"
        ),
        CheckConstraint(
            "duration_max_minutes >= duration_min_minutes", name="ck_services_duration_range"
        ),
    )

    def __repr__(self) -> str:
        return f"<Service {self.name} ({self.category}) R{self.base_price}>"

    def find_add_on(self, name: str) -> Optional[Dict[str, Any]]:
        for add_on in self.add_ons or []:
            if add_on.get("name") == name:
                return add_on
        return None

    def add_on_names(self) -> List[str]:
        return [a["name"] for a in self.add_ons or [] if "name" in a]

    def serves_province(self, province: str) -> bool:
        return not self.available_provinces or province in self.available_provinces

    @property
    def base_price_decimal(self) -> Decimal:
        return Decimal(str(self.base_price))
