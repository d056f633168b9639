import calendar
import datetime
from typing import Annotated, List

from pydantic import BaseModel, EmailStr, Field, StringConstraints, field_validator

from booking_service import BookingDetails, BookingRequest, WEEKEND_DAYS
from models import TOTAL_SPOTS

MAX_MONTHS_AHEAD = 6

NAME_PATTERN = r"^[a-zA-Z\s\-']+$"

FirstName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50, pattern=NAME_PATTERN)]
LastName = Annotated[str, StringConstraints(strip_whitespace=True, max_length=50, pattern=r"^[a-zA-Z\s\-']*$")]
UnitNumber = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=10, pattern=r"^[a-zA-Z0-9\-]+$")]
GuestName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100, pattern=NAME_PATTERN)]
VehicleType = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50, pattern=NAME_PATTERN)]
LicensePlate = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=20, pattern=r"^[A-Z0-9\-\s]+$")]


def add_months(day: datetime.date, months: int) -> datetime.date:
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return day.replace(year=year, month=month, day=min(day.day, last_day))


def check_bookable_date(day: datetime.date, today: datetime.date | None = None) -> datetime.date:
    today = today or datetime.date.today()
    if day < today:
        raise ValueError("Cannot book dates in the past")
    if day > add_months(today, MAX_MONTHS_AHEAD):
        raise ValueError("Cannot book more than 6 months in advance")
    return day


class GuestDetails(BaseModel):
    spot_number: int = Field(..., ge=1, le=TOTAL_SPOTS)
    first_name: FirstName
    last_name: LastName = ""
    unit_number: UnitNumber
    email: EmailStr
    guest_name: GuestName
    vehicle_type: VehicleType
    license_plate: LicensePlate

    @field_validator("email", mode="after")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if len(v) > 254:
            raise ValueError("Email must be 254 characters or less")
        return v

    def to_details(self) -> BookingDetails:
        return BookingDetails(
            first_name=self.first_name,
            last_name=self.last_name,
            unit_number=self.unit_number,
            email=self.email,
            guest_name=self.guest_name,
            vehicle_type=self.vehicle_type,
            license_plate=self.license_plate,
        )


class SingleBookingCreate(GuestDetails):
    date: datetime.date

    @field_validator("date", mode="after")
    @classmethod
    def bookable(cls, v: datetime.date) -> datetime.date:
        return check_bookable_date(v)

    def to_request(self) -> BookingRequest:
        return BookingRequest(dates=[self.date], spot_number=self.spot_number, details=self.to_details())


class WeekendBookingCreate(GuestDetails):
    dates: List[datetime.date] = Field(..., min_length=WEEKEND_DAYS, max_length=WEEKEND_DAYS)

    @field_validator("dates", mode="after")
    @classmethod
    def friday_to_sunday(cls, v: List[datetime.date]) -> List[datetime.date]:
        for day in v:
            check_bookable_date(day)
        if v[0].weekday() != calendar.FRIDAY:
            raise ValueError("Weekend bookings must start on a Friday")
        for prev, nxt in zip(v, v[1:]):
            if (nxt - prev).days != 1:
                raise ValueError("Weekend dates must be consecutive")
        return v

    def to_request(self) -> BookingRequest:
        return BookingRequest(dates=list(self.dates), spot_number=self.spot_number, details=self.to_details())


class GroupDeleteRequest(BaseModel):
    ids: List[Annotated[int, Field(ge=1)]] = Field(..., min_length=1, max_length=TOTAL_SPOTS)


class BookingOut(BaseModel):
    id: int
    date: datetime.date
    spot_number: int
    level: str
    first_name: str
    last_name: str
    unit_number: str
    email: str
    guest_name: str
    vehicle_type: str
    license_plate: str

    model_config = {"from_attributes": True}


class BookingGroupOut(BaseModel):
    anchor: datetime.date
    spot_number: int
    level: str
    guest_name: str
    email: str
    first_name: str
    last_name: str
    is_weekend: bool
    ids: List[int]
    dates: List[datetime.date]

    model_config = {"from_attributes": True}
