# backend/helperhive/core/enums.py
"""
Core enums for the HelperHive platform.

Values are stored verbatim in the database and sent over the wire, so
they keep the hyphenated spelling clients already use.
"""

from enum import Enum


class RoleName(str, Enum):
    """Account role, fixed when the account is created."""

    CUSTOMER = "customer"
    PROVIDER = "provider"
    ADMIN = "admin"


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    EN_ROUTE = "en-route"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"
    DISPUTED = "disputed"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    CARD = "card"
    BANK_TRANSFER = "bank-transfer"
    CASH = "cash"


class PayoutStatus(str, Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RefundStatus(str, Enum):
    NONE = "none"
    PARTIAL = "partial"
    FULL = "full"
    PROCESSING = "processing"
    COMPLETED = "completed"


class BackgroundCheckStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    NOT_REQUIRED = "not-required"


class ServiceCategory(str, Enum):
    CLEANING = "cleaning"
    PET_CARE = "pet-care"
    BEAUTY_PERSONAL_CARE = "beauty-personal-care"
    GARDENING = "gardening"
    AUTOMOTIVE = "automotive"


class PricingType(str, Enum):
    HOURLY = "hourly"
    FIXED = "fixed"
    PER_ITEM = "per-item"


class MessageType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    SYSTEM = "system"


class BookingSource(str, Enum):
    WEB = "web"
    MOBILE = "mobile"


class RefundPath(str, Enum):
    """Which refund column of the policy table applies."""

    CANCEL = "cancel"
    REFUND_REQUEST = "refund_request"


class DisputeResolution(str, Enum):
    REFUND_CUSTOMER = "refund_customer"
    FAVOR_PROVIDER = "favor_provider"
