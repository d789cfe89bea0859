# backend/helperhive/core/exceptions.py
"""
Domain-specific exceptions for the HelperHive platform.

Services raise these; routes convert them with ``to_http_exception()`` and
the global handlers in ``helperhive.errors`` render them as problem+json.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Root of every error a HelperHive service raises on purpose."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_detail(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.to_detail())


class ValidationException(DomainException):
    """Breaks a domain rule after schema checks passed, such as an empty message."""

    status_code = status.HTTP_400_BAD_REQUEST


class StateConflictException(DomainException):
    """Raised when an action is not valid for the booking's current status."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        *,
        current_status: Optional[str] = None,
        code: str = "INVALID_STATE_TRANSITION",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        merged = dict(details or {})
        if current_status is not None:
            merged["current_status"] = current_status
        super().__init__(message=message, code=code, details=merged)


class BookingAlreadyCancelledException(StateConflictException):
    """Raised when a cancellation or refund is requested twice."""

    def __init__(self, booking_id: str):
        super().__init__(
            "Booking has already been cancelled",
            current_status="cancelled",
            code="BOOKING_ALREADY_CANCELLED",
            details={"booking_id": booking_id},
        )


class NotFoundException(DomainException):
    """The requested row does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Duplicate email or phone on registration."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Request is well formed but policy forbids it right now (notice period, refund timing)."""

    status_code = HTTP_422_UNPROCESSABLE


class InsufficientNoticeException(BusinessRuleException):
    def __init__(self, required_hours: int, provided_hours: float):
        super().__init__(
            message=f"Bookings must be made at least {required_hours} hours in advance",
            code="INSUFFICIENT_NOTICE",
            details={
                "required_hours": required_hours,
                "provided_hours": round(provided_hours, 2),
            },
        )


class UnauthorizedException(DomainException):
    """No usable bearer token on the request."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def to_http_exception(self) -> HTTPException:
        exc = super().to_http_exception()
        exc.headers = {"WWW-Authenticate": "Bearer"}
        return exc


class ForbiddenException(DomainException):
    """Authenticated, but not a party to the booking or not the required role."""

    status_code = status.HTTP_403_FORBIDDEN


class ServiceException(DomainException):
    """Persistence or collaborator failure; surfaces as a 500."""

    def to_detail(self) -> Dict[str, Any]:
        detail = super().to_detail()
        detail["message"] = self.message or "An error occurred processing your request"
        return detail


class PaymentGatewayException(ServiceException):
    """Raised when the payment gateway rejects or fails a call."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="PAYMENT_GATEWAY_ERROR", details=details)


class RepositoryException(Exception):
    """SQLAlchemy failure re-raised by a repository; services never see driver errors."""
