"""
Booking transaction engine.

A request covers one date or a three-day weekend for a single spot. Either every
date is booked or none is: conflicts found by the in-transaction check and
uniqueness violations raised by the database at flush/commit both end in a
BookingConflict with nothing written.
"""
from __future__ import annotations

import datetime
import logging
from dataclasses import asdict, dataclass
from typing import Awaitable, Callable, List, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from database import BookingStore
from errors import BookingConflict, InvariantViolation, classify_store_error
from models import ALL_SPOTS, Booking, spot_level
from notifications import BookingConfirmation

logger = logging.getLogger(__name__)

SINGLE_DAY = 1
WEEKEND_DAYS = 3

Notifier = Callable[[BookingConfirmation], Awaitable[None]]


@dataclass(frozen=True)
class BookingDetails:
    first_name: str
    last_name: str
    unit_number: str
    email: str
    guest_name: str
    vehicle_type: str
    license_plate: str


@dataclass(frozen=True)
class BookingRequest:
    dates: List[datetime.date]
    spot_number: int
    details: BookingDetails

    @property
    def is_weekend(self) -> bool:
        return len(self.dates) == WEEKEND_DAYS


@dataclass(frozen=True)
class BookingResult:
    ids: List[int]
    dates: List[datetime.date]
    spot_number: int


def _check_request(request: BookingRequest) -> None:
    if len(request.dates) not in (SINGLE_DAY, WEEKEND_DAYS):
        raise InvariantViolation(f"Expected 1 or 3 dates, got {len(request.dates)}")
    if len(set(request.dates)) != len(request.dates):
        raise InvariantViolation("Duplicate dates in booking request")
    if request.spot_number not in ALL_SPOTS:
        raise InvariantViolation(f"Spot number out of range: {request.spot_number}")


async def find_conflicts(
    session: AsyncSession, dates: Sequence[datetime.date], spot_number: int
) -> List[datetime.date]:
    """Requested dates that already have a booking for `spot_number`, in request order."""
    statement = select(Booking.date).where(
        Booking.spot_number == spot_number,
        Booking.date.in_(list(dates)),
    )
    result = await session.execute(statement)
    taken = set(result.scalars().all())
    return [d for d in dates if d in taken]


async def _book_in_transaction(session: AsyncSession, request: BookingRequest) -> BookingResult:
    spot_number = request.spot_number
    try:
        async with session.begin():
            conflicts = await find_conflicts(session, request.dates, spot_number)
            if conflicts:
                # Leaving the block via an exception rolls the transaction back.
                raise BookingConflict(conflicts, spot_number)

            rows = [
                Booking(date=day, spot_number=spot_number, **asdict(request.details))
                for day in request.dates
            ]
            session.add_all(rows)
            await session.flush()
            ids = [row.id for row in rows]
    except IntegrityError as exc:
        # A concurrent transaction committed the same (date, spot) after our check.
        raise classify_store_error(exc, request.dates, spot_number) from exc

    return BookingResult(ids=ids, dates=list(request.dates), spot_number=spot_number)


async def _notify(notifier: Notifier, request: BookingRequest) -> None:
    details = request.details
    confirmation = BookingConfirmation(
        recipient=details.email,
        first_name=details.first_name,
        dates=list(request.dates),
        spot_number=request.spot_number,
        level=spot_level(request.spot_number),
        guest_name=details.guest_name,
        vehicle_type=details.vehicle_type,
        license_plate=details.license_plate,
    )
    try:
        await notifier(confirmation)
    except Exception:
        # The booking is committed; a failed email must not change that.
        logger.exception("Failed to send booking confirmation to %s", details.email)


async def create_booking(
    store: BookingStore,
    request: BookingRequest,
    notifier: Optional[Notifier] = None,
) -> BookingResult:
    """
    Book every date in `request` for its spot, atomically.

    Raises BookingConflict if any date is taken (nothing is written),
    TransientStoreFault once retries are exhausted, InvariantViolation for a
    malformed request.
    """
    _check_request(request)

    try:
        result = await store.run(lambda session: _book_in_transaction(session, request))
    except BookingConflict as exc:
        logger.info("Booking conflict: spot %s on %s", exc.spot_number, [d.isoformat() for d in exc.dates])
        raise

    logger.info(
        "Booking committed: spot %s on %s (ids=%s)",
        result.spot_number,
        [d.isoformat() for d in result.dates],
        result.ids,
    )
    if notifier is not None:
        await _notify(notifier, request)
    return result
