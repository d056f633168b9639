"""
Booking error taxonomy and its mapping onto HTTP responses.

Store exceptions are classified once, here, so the retry loop only ever sees
TransientStoreFault and never retries a uniqueness violation.
"""
from __future__ import annotations

import datetime
from typing import Callable, Optional, Sequence

from fastapi import HTTPException, status
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError

# PostgreSQL "internal_error" class; seen on pooled connections that went bad.
PG_INTERNAL_ERROR = "XX000"

MSG_ALREADY_BOOKED = "Spot already booked"
MSG_STORE_UNAVAILABLE = "Booking store temporarily unavailable. Please try again."


class BookingError(Exception):
    """Base class for booking-domain errors."""


class BookingConflict(BookingError):
    """The requested (date, spot) is already reserved. Terminal, never retried."""

    def __init__(self, dates: Sequence[datetime.date], spot_number: int):
        self.dates = list(dates)
        self.spot_number = spot_number
        joined = ", ".join(d.isoformat() for d in self.dates)
        super().__init__(f"Spot {spot_number} already booked on {joined}")


class TransientStoreFault(BookingError):
    """Connectivity or infrastructure failure unrelated to data conflicts."""


class InvariantViolation(BookingError):
    """Malformed input reached the core. A programming error, not a user error."""


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def is_transient(exc: BaseException) -> bool:
    if isinstance(exc, IntegrityError):
        return False
    if isinstance(exc, (OperationalError, InterfaceError)):
        return True
    if isinstance(exc, DBAPIError):
        return exc.connection_invalidated or _sqlstate(exc) == PG_INTERNAL_ERROR
    return False


def classify_store_error(
    exc: BaseException, dates: Sequence[datetime.date], spot_number: int
) -> BaseException:
    """
    Translate a raw SQLAlchemy exception into the booking taxonomy.
    Unknown exceptions are returned unchanged so they bubble up as opaque failures.
    """
    if isinstance(exc, IntegrityError):
        return BookingConflict(dates, spot_number)
    if is_transient(exc):
        return TransientStoreFault(str(exc))
    return exc


def _conflict_to_http(exc: BookingConflict) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={
            "error": MSG_ALREADY_BOOKED,
            "spot_number": exc.spot_number,
            "dates": [d.isoformat() for d in exc.dates],
        },
    )


def _transient_to_http(exc: TransientStoreFault) -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=MSG_STORE_UNAVAILABLE)


# (exception type, builder). First match wins.
ERROR_RULES: list[tuple[type, Callable[..., HTTPException]]] = [
    (BookingConflict, _conflict_to_http),
    (TransientStoreFault, _transient_to_http),
]


def error_to_http(exc: Exception) -> HTTPException:
    """
    Map a booking error into an HTTPException.
    Anything without a rule becomes a 500 with a generic message.
    """
    for exc_type, build in ERROR_RULES:
        if isinstance(exc, exc_type):
            return build(exc)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")
