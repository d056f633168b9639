"""
Which spots are free on a day, or on every day of a set of days.
"""
import datetime
from typing import Dict, Iterable, Sequence, Set

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from models import ALL_SPOTS, Booking


async def booked_spots_by_date(
    session: AsyncSession, days: Sequence[datetime.date]
) -> Dict[datetime.date, Set[int]]:
    # Single query for all requested days
    statement = select(Booking.date, Booking.spot_number).where(Booking.date.in_(list(days)))
    result = await session.execute(statement)

    booked: Dict[datetime.date, Set[int]] = {day: set() for day in days}
    for day, spot_number in result.all():
        booked.setdefault(day, set()).add(spot_number)
    return booked


def intersect_availability(per_day: Iterable[Set[int]]) -> Set[int]:
    """Spots free on every day. No days means nothing constrains the result."""
    available = set(ALL_SPOTS)
    for spots in per_day:
        available &= spots
    return available


async def available_spots(session: AsyncSession, day: datetime.date) -> Set[int]:
    booked = await booked_spots_by_date(session, [day])
    return set(ALL_SPOTS) - booked[day]


async def available_spots_for_dates(session: AsyncSession, days: Sequence[datetime.date]) -> Set[int]:
    """
    Spots with no booking on any of `days`. A spot booked on only one day of a
    weekend is excluded from the whole range.
    """
    if not days:
        return set(ALL_SPOTS)
    booked = await booked_spots_by_date(session, days)
    return intersect_availability(set(ALL_SPOTS) - booked[day] for day in days)
