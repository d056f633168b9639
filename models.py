from typing import Optional
import datetime
from sqlmodel import SQLModel, Field
from sqlalchemy import UniqueConstraint

TOTAL_SPOTS = 7
ALL_SPOTS = frozenset(range(1, TOTAL_SPOTS + 1))

# Spots 1-4 are on P1, 5-7 on P2. Display only.
LEVEL_SPLIT = 4


def spot_level(spot_number: int) -> str:
    return "P1" if spot_number <= LEVEL_SPLIT else "P2"


class Booking(SQLModel, table=True):
    __tablename__ = "bookings"
    __table_args__ = (
        # Database-level protection against double booking
        UniqueConstraint("date", "spot_number", name="unique_booking_date_spot"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    date: datetime.date = Field(index=True)
    spot_number: int = Field(index=True)
    first_name: str
    last_name: str = ""
    unit_number: str
    email: str
    guest_name: str
    vehicle_type: str
    license_plate: str

    @property
    def level(self) -> str:
        return spot_level(self.spot_number)
