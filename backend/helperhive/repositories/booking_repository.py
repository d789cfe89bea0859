# backend/helperhive/repositories/booking_repository.py
"""
Booking Repository for HelperHive

Data access for bookings and their satellite rows (status history,
payment, emergency alert).
"""

from datetime import datetime
import logging
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, joinedload

from ..core.enums import BookingStatus, PaymentStatus, PayoutStatus
from ..core.exceptions import RepositoryException
from ..models.booking import Booking, BookingStatusHistory
from ..models.booking_emergency import BookingEmergencyAlert
from ..models.booking_payment import BookingPayment
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    def __init__(self, db: Session):
        super().__init__(db, Booking)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(
            joinedload(Booking.payment),
            joinedload(Booking.emergency_alert),
            joinedload(Booking.service),
        )

    def number_exists(self, booking_number: str) -> bool:
        return self.exists(booking_number=booking_number)

    def get_by_payment_intent(self, payment_intent_id: str) -> Optional[Booking]:
        try:
            return (
                self._apply_eager_loading(self.db.query(Booking))
                .join(BookingPayment, BookingPayment.booking_id == Booking.id)
                .filter(BookingPayment.payment_intent_id == payment_intent_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading booking for intent {payment_intent_id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve booking: {str(e)}")

    def list_for_user(
        self,
        user_id: str,
        *,
        as_provider: bool,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Booking], int]:
        """Bookings where the user is the customer or the provider, newest first."""
        column = Booking.provider_id if as_provider else Booking.customer_id
        query = self.db.query(Booking).filter(column == user_id)
        if status:
            query = query.filter(Booking.status == status)
        total = query.count()
        items = (
            self._apply_eager_loading(query)
            .order_by(Booking.created_at.desc(), Booking.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return items, total

    def list_all(
        self, *, status: Optional[str] = None, skip: int = 0, limit: int = 20
    ) -> Tuple[List[Booking], int]:
        query = self.db.query(Booking)
        if status:
            query = query.filter(Booking.status == status)
        total = query.count()
        items = query.order_by(Booking.created_at.desc()).offset(skip).limit(limit).all()
        return items, total

    def append_status_history(
        self,
        booking: Booking,
        status: str,
        *,
        at: datetime,
        note: Optional[str] = None,
        updated_by_id: Optional[str] = None,
    ) -> BookingStatusHistory:
        entry = BookingStatusHistory(
            booking_id=booking.id,
            status=status,
            note=note,
            updated_by_id=updated_by_id,
            created_at=at,
        )
        booking.status_history.append(entry)
        self.flush()
        return entry

    def list_disputes(self) -> List[Booking]:
        """Disputed bookings plus any with an unresolved emergency alert."""
        return (
            self._apply_eager_loading(self.db.query(Booking))
            .outerjoin(BookingEmergencyAlert, BookingEmergencyAlert.booking_id == Booking.id)
            .filter(
                or_(
                    Booking.status == BookingStatus.DISPUTED.value,
                    BookingEmergencyAlert.is_active.is_(True),
                )
            )
            .order_by(Booking.updated_at.desc(), Booking.created_at.desc())
            .all()
        )

    def payment_history(self, user_id: str, *, skip: int, limit: int) -> Tuple[List[Booking], int]:
        query = (
            self.db.query(Booking)
            .join(BookingPayment, BookingPayment.booking_id == Booking.id)
            .filter(or_(Booking.customer_id == user_id, Booking.provider_id == user_id))
            .filter(BookingPayment.status != PaymentStatus.PENDING.value)
        )
        total = query.count()
        items = (
            self._apply_eager_loading(query)
            .order_by(Booking.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return items, total

    def completed_paid_for_provider(
        self, provider_id: str, since: Optional[datetime] = None
    ) -> List[Booking]:
        """Completed bookings with a captured payment, optionally paid after ``since``."""
        query = (
            self.db.query(Booking)
            .join(BookingPayment, BookingPayment.booking_id == Booking.id)
            .filter(Booking.provider_id == provider_id)
            .filter(Booking.status == BookingStatus.COMPLETED.value)
            .filter(BookingPayment.status == PaymentStatus.COMPLETED.value)
        )
        if since is not None:
            query = query.filter(BookingPayment.paid_at >= since)
        return query.all()

    def pending_payouts_for_provider(self, provider_id: str) -> List[Booking]:
        return (
            self.db.query(Booking)
            .join(BookingPayment, BookingPayment.booking_id == Booking.id)
            .filter(Booking.provider_id == provider_id)
            .filter(BookingPayment.status == PaymentStatus.COMPLETED.value)
            .filter(
                BookingPayment.payout_status.in_(
                    [PayoutStatus.PENDING.value, PayoutStatus.SCHEDULED.value]
                )
            )
            .all()
        )
