import pytest
import pytest_asyncio

from booking_service import BookingDetails, BookingRequest
from database import BookingStore, create_store_engine


@pytest_asyncio.fixture
async def store(tmp_path):
    # File-backed so concurrent sessions get their own connections.
    engine = create_store_engine(f"sqlite+aiosqlite:///{tmp_path / 'bookings.db'}")
    booking_store = BookingStore(engine, retries=2, retry_delay=0.01)
    await booking_store.init_schema()
    yield booking_store
    await booking_store.dispose()


@pytest.fixture
def details():
    return BookingDetails(
        first_name="Jane",
        last_name="Smith",
        unit_number="202",
        email="jane@admiraltyplace.ca",
        guest_name="Bob Johnson",
        vehicle_type="SUV",
        license_plate="XYZ789",
    )


@pytest.fixture
def make_request(details):
    def _make(dates, spot_number=4, booking_details=None):
        return BookingRequest(dates=list(dates), spot_number=spot_number, details=booking_details or details)

    return _make
