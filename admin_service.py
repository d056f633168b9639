"""
Admin: list bookings, cancel them, and group rows back into weekends for display.
"""
import datetime
import enum
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from database import BookingStore
from errors import TransientStoreFault
from models import Booking, spot_level

logger = logging.getLogger(__name__)

FRIDAY = 4  # date.weekday()
WEEKEND_OFFSETS = {4: 0, 5: 1, 6: 2}  # Fri, Sat, Sun -> days since Friday


class DeleteOutcome(str, enum.Enum):
    DELETED = "deleted"
    NOT_FOUND = "not_found"
    FAILED = "failed"


async def list_bookings(store: BookingStore) -> List[Booking]:
    """All bookings, newest date first, then by spot."""

    async def _list(session: AsyncSession) -> List[Booking]:
        statement = select(Booking).order_by(
            Booking.date.desc(), Booking.spot_number.asc(), Booking.id.asc()
        )
        result = await session.execute(statement)
        return list(result.scalars().all())

    return await store.run(_list)


async def delete_booking(store: BookingStore, booking_id: int) -> DeleteOutcome:
    async def _delete(session: AsyncSession) -> DeleteOutcome:
        async with session.begin():
            result = await session.execute(delete(Booking).where(Booking.id == booking_id))
        if result.rowcount == 0:
            return DeleteOutcome.NOT_FOUND
        return DeleteOutcome.DELETED

    outcome = await store.run(_delete)
    if outcome is DeleteOutcome.NOT_FOUND:
        logger.info("Delete: booking %s not found", booking_id)
    else:
        logger.info("Deleted booking %s", booking_id)
    return outcome


async def delete_booking_group(store: BookingStore, booking_ids: Iterable[int]) -> Dict[int, DeleteOutcome]:
    """
    Delete each id on its own. Best-effort: a missing id, or one whose delete
    kept hitting transient store faults, is reported and the rest still go.
    """
    outcomes: Dict[int, DeleteOutcome] = {}
    for booking_id in booking_ids:
        try:
            outcomes[booking_id] = await delete_booking(store, booking_id)
        except TransientStoreFault as exc:
            logger.warning("Delete of booking %s failed: %s", booking_id, exc)
            outcomes[booking_id] = DeleteOutcome.FAILED
    return outcomes


def anchor_friday(day: datetime.date) -> datetime.date:
    """Friday of the weekend `day` falls in; weekdays anchor on themselves."""
    offset = WEEKEND_OFFSETS.get(day.weekday(), 0)
    return day - datetime.timedelta(days=offset)


GroupKey = Tuple[int, str, str, str, str, datetime.date]


@dataclass
class BookingGroup:
    anchor: datetime.date
    spot_number: int
    guest_name: str
    email: str
    first_name: str
    last_name: str
    bookings: List[Booking] = field(default_factory=list)

    @property
    def ids(self) -> List[int]:
        return [b.id for b in self.bookings]

    @property
    def dates(self) -> List[datetime.date]:
        return [b.date for b in self.bookings]

    @property
    def level(self) -> str:
        return spot_level(self.spot_number)

    @property
    def is_weekend(self) -> bool:
        if self.anchor.weekday() != FRIDAY:
            return False
        expected = [self.anchor + datetime.timedelta(days=i) for i in range(3)]
        return self.dates == expected


def _group_key(booking: Booking) -> GroupKey:
    return (
        booking.spot_number,
        booking.guest_name,
        booking.email,
        booking.first_name,
        booking.last_name,
        anchor_friday(booking.date),
    )


def group_bookings(bookings: Iterable[Booking]) -> List[BookingGroup]:
    """
    Fold day rows into display groups. Rows for the same spot and guest that
    share an anchor Friday form one group; a complete Fri-Sun group is a weekend.
    Groups come back newest anchor first, then by spot.
    """
    groups: Dict[GroupKey, BookingGroup] = {}
    for booking in bookings:
        key = _group_key(booking)
        group = groups.get(key)
        if group is None:
            group = BookingGroup(
                anchor=key[-1],
                spot_number=booking.spot_number,
                guest_name=booking.guest_name,
                email=booking.email,
                first_name=booking.first_name,
                last_name=booking.last_name,
            )
            groups[key] = group
        group.bookings.append(booking)

    for group in groups.values():
        group.bookings.sort(key=lambda b: b.date)
    return sorted(groups.values(), key=lambda g: (-g.anchor.toordinal(), g.spot_number, g.ids[0]))
