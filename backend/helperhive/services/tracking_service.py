# backend/helperhive/services/tracking_service.py
"""
Provider location tracking.

Only the latest position and the arrival timestamps are kept on the
booking; each update overwrites the previous position.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..core.exceptions import ForbiddenException, NotFoundException, StateConflictException
from ..models.booking import Booking
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from .base import BaseService, Clock


def apply_location(
    booking: Booking,
    longitude: float,
    latitude: float,
    estimated_arrival: Optional[datetime],
    at: datetime,
) -> None:
    """Overwrite the current position. Rejected outside the tracking window."""
    if not booking.is_tracking_window:
        raise StateConflictException(
            "Location can only be updated while the booking is confirmed, en-route or in-progress",
            current_status=booking.status,
            code="TRACKING_NOT_ALLOWED",
        )
    booking.current_longitude = longitude
    booking.current_latitude = latitude
    booking.location_updated_at = at
    if estimated_arrival is not None:
        booking.estimated_arrival = estimated_arrival


class TrackingService(BaseService):
    def __init__(self, db: Session, clock: Optional[Clock] = None):
        super().__init__(db, clock)
        self.repository = RepositoryFactory.create_booking_repository(db)

    @BaseService.measure_operation("update_provider_location")
    def update_location(
        self,
        booking_id: str,
        provider: User,
        longitude: float,
        latitude: float,
        estimated_arrival: Optional[datetime] = None,
    ) -> Booking:
        booking = self.repository.get_by_id(booking_id)
        if not booking:
            raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")
        if booking.provider_id != provider.id:
            raise ForbiddenException(
                "Only the assigned provider can share location", code="NOT_BOOKING_PROVIDER"
            )
        with self.transaction():
            apply_location(booking, longitude, latitude, estimated_arrival, self.now())
            self.repository.flush()
        return booking
