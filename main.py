import datetime
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from admin_service import DeleteOutcome, delete_booking, delete_booking_group, group_bookings, list_bookings
from availability import available_spots_for_dates
from booking_service import Notifier, create_booking
from config import allowed_origins, get_settings, log_level
from database import BookingStore, get_store
from errors import BookingError, error_to_http
from notifications import EmailNotifier
from schemas import (
    BookingGroupOut,
    BookingOut,
    GroupDeleteRequest,
    SingleBookingCreate,
    WeekendBookingCreate,
)

logging.basicConfig(level=log_level(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bookings", tags=["bookings"])


# --- GET /api/bookings/availability ---
@router.get("/availability")
async def get_availability(
    days: List[datetime.date] = Query(..., alias="date"),
    store: BookingStore = Depends(get_store),
):
    # Several ?date= params: spots free on every one of them
    try:
        spots = await store.run(lambda session: available_spots_for_dates(session, days))
    except BookingError as exc:
        raise error_to_http(exc) from exc
    return {"availableSpots": sorted(spots)}


def get_notifier(request: Request) -> Optional[Notifier]:
    return getattr(request.app.state, "notifier", None)


async def _book(booking_request, message: str, store: BookingStore, notifier: Optional[Notifier]):
    try:
        result = await create_booking(store, booking_request, notifier=notifier)
    except BookingError as exc:
        raise error_to_http(exc) from exc
    return {"message": message, "ids": result.ids}


# --- POST /api/bookings ---
@router.post("", status_code=status.HTTP_201_CREATED)
async def book_single(
    booking_data: SingleBookingCreate,
    store: BookingStore = Depends(get_store),
    notifier: Optional[Notifier] = Depends(get_notifier),
):
    return await _book(booking_data.to_request(), "Booking confirmed", store, notifier)


# --- POST /api/bookings/batch ---
@router.post("/batch", status_code=status.HTTP_201_CREATED)
async def book_weekend(
    booking_data: WeekendBookingCreate,
    store: BookingStore = Depends(get_store),
    notifier: Optional[Notifier] = Depends(get_notifier),
):
    return await _book(booking_data.to_request(), "Full weekend booking confirmed!", store, notifier)


# --- GET /api/bookings (admin) ---
@router.get("")
async def get_bookings(store: BookingStore = Depends(get_store)):
    try:
        bookings = await list_bookings(store)
    except BookingError as exc:
        raise error_to_http(exc) from exc
    return {"bookings": [BookingOut.model_validate(b) for b in bookings]}


# --- GET /api/bookings/groups (admin) ---
@router.get("/groups")
async def get_booking_groups(store: BookingStore = Depends(get_store)):
    try:
        bookings = await list_bookings(store)
    except BookingError as exc:
        raise error_to_http(exc) from exc
    return {"groups": [BookingGroupOut.model_validate(g) for g in group_bookings(bookings)]}


# --- GET /api/bookings/ping ---
@router.get("/ping")
async def ping(store: BookingStore = Depends(get_store)):
    try:
        await store.ping()
    except Exception as exc:
        logger.error("DB ping failed: %s", exc)
        return JSONResponse(status_code=500, content={"error": "DB connection failed"})
    return {"message": "DB connection is healthy"}


# --- POST /api/bookings/delete-group (admin) ---
@router.post("/delete-group")
async def remove_booking_group(
    payload: GroupDeleteRequest,
    store: BookingStore = Depends(get_store),
):
    outcomes = await delete_booking_group(store, payload.ids)
    deleted = [i for i, outcome in outcomes.items() if outcome is DeleteOutcome.DELETED]
    return {
        "deleted": deleted,
        "results": {str(i): outcome.value for i, outcome in outcomes.items()},
    }


# --- DELETE /api/bookings/{booking_id} (admin) ---
@router.delete("/{booking_id}")
async def remove_booking(booking_id: int, store: BookingStore = Depends(get_store)):
    if booking_id < 1:
        raise HTTPException(status_code=400, detail="Booking ID must be a positive integer")
    try:
        outcome = await delete_booking(store, booking_id)
    except BookingError as exc:
        raise error_to_http(exc) from exc
    if outcome is DeleteOutcome.NOT_FOUND:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    return {"message": "Booking deleted successfully"}


def create_app(store: Optional[BookingStore] = None, notifier: Optional[Notifier] = None) -> FastAPI:
    """
    Build the app. With no `store`, one is created from the environment at
    startup (schema created, engine disposed on shutdown) along with an SMTP
    notifier. An injected store is used as-is and left open.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = None
        if store is None:
            settings = get_settings()
            owned = BookingStore.from_settings(settings)
            await owned.init_schema()
            app.state.store = owned
            app.state.notifier = notifier or EmailNotifier(settings)
            logger.info("Booking store ready")
        yield
        if owned is not None:
            await owned.dispose()

    app = FastAPI(title="Guest Parking Booking", lifespan=lifespan)
    if store is not None:
        app.state.store = store
        app.state.notifier = notifier

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins() or ["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.get("/healthcheck")
    async def healthcheck():
        return {"status": "ok"}

    app.include_router(router)
    return app


app = create_app()
