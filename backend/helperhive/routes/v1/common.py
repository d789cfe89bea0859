# backend/helperhive/routes/v1/common.py
"""Helpers shared by the v1 routers."""

from typing import Annotated, NoReturn

from fastapi import HTTPException, Path, status

from ...core.exceptions import DomainException

ULID_PATH_PATTERN = r"^[0-9A-HJKMNP-TV-Z]{26}$"

BookingId = Annotated[str, Path(description="Booking ULID", pattern=ULID_PATH_PATTERN)]
UserId = Annotated[str, Path(description="User ULID", pattern=ULID_PATH_PATTERN)]
ServiceId = Annotated[str, Path(description="Service ULID", pattern=ULID_PATH_PATTERN)]


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
