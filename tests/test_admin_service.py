import datetime
from dataclasses import asdict

from admin_service import (
    DeleteOutcome,
    anchor_friday,
    delete_booking,
    delete_booking_group,
    group_bookings,
    list_bookings,
)
from booking_service import BookingDetails, create_booking
from models import Booking

from .factories import CHRISTMAS, WEEKEND, count_rows


async def test_list_orders_by_date_desc_then_spot(store, make_request):
    await create_booking(store, make_request([CHRISTMAS], spot_number=5))
    await create_booking(store, make_request(WEEKEND, spot_number=2))
    await create_booking(store, make_request([CHRISTMAS], spot_number=1))
    await create_booking(store, make_request([WEEKEND[2]], spot_number=1))

    bookings = await list_bookings(store)

    assert [(b.date, b.spot_number) for b in bookings] == [
        (WEEKEND[2], 1),
        (WEEKEND[2], 2),
        (WEEKEND[1], 2),
        (WEEKEND[0], 2),
        (CHRISTMAS, 1),
        (CHRISTMAS, 5),
    ]


async def test_listing_is_repeatable(store, make_request):
    await create_booking(store, make_request(WEEKEND, spot_number=3))
    await create_booking(store, make_request([CHRISTMAS], spot_number=7))

    first = await list_bookings(store)
    second = await list_bookings(store)

    assert [b.id for b in first] == [b.id for b in second]


async def test_list_empty_store(store):
    assert await list_bookings(store) == []


async def test_delete_one(store, make_request):
    result = await create_booking(store, make_request([CHRISTMAS]))
    booking_id = result.ids[0]

    assert await delete_booking(store, booking_id) is DeleteOutcome.DELETED
    assert await count_rows(store) == 0
    assert await delete_booking(store, booking_id) is DeleteOutcome.NOT_FOUND


async def test_delete_leaves_other_rows(store, make_request):
    first = await create_booking(store, make_request([CHRISTMAS], spot_number=1))
    await create_booking(store, make_request([CHRISTMAS], spot_number=2))

    await delete_booking(store, first.ids[0])

    assert [b.spot_number for b in await list_bookings(store)] == [2]


async def test_group_delete_tolerates_missing_ids(store, make_request):
    result = await create_booking(store, make_request(WEEKEND, spot_number=4))
    already_gone = result.ids[1]
    await delete_booking(store, already_gone)

    outcomes = await delete_booking_group(store, result.ids)

    assert outcomes == {
        result.ids[0]: DeleteOutcome.DELETED,
        already_gone: DeleteOutcome.NOT_FOUND,
        result.ids[2]: DeleteOutcome.DELETED,
    }
    assert await count_rows(store) == 0


async def test_freed_spot_can_be_booked_again(store, make_request):
    result = await create_booking(store, make_request(WEEKEND, spot_number=4))
    await delete_booking_group(store, result.ids)

    again = await create_booking(store, make_request(WEEKEND, spot_number=4))

    assert len(again.ids) == 3


def test_anchor_friday():
    friday, saturday, sunday = WEEKEND
    assert anchor_friday(friday) == friday
    assert anchor_friday(saturday) == friday
    assert anchor_friday(sunday) == friday
    # Thursday anchors on itself
    assert anchor_friday(CHRISTMAS) == CHRISTMAS


async def test_group_bookings_rebuilds_weekends(store, make_request, details):
    other_guest = BookingDetails(
        first_name="Ann",
        last_name="Lee",
        unit_number="1204",
        email="ann@admiraltyplace.ca",
        guest_name="Sam Lee",
        vehicle_type="Sedan",
        license_plate="ABC123",
    )
    weekend = await create_booking(store, make_request(WEEKEND, spot_number=4))
    await create_booking(store, make_request([CHRISTMAS], spot_number=4))
    await create_booking(store, make_request(WEEKEND, spot_number=5, booking_details=other_guest))

    groups = group_bookings(await list_bookings(store))

    assert [(g.anchor, g.spot_number, g.is_weekend) for g in groups] == [
        (WEEKEND[0], 4, True),
        (WEEKEND[0], 5, True),
        (CHRISTMAS, 4, False),
    ]
    assert groups[0].ids == weekend.ids
    assert groups[0].dates == WEEKEND
    assert groups[1].guest_name == "Sam Lee"
    assert groups[1].level == "P2"


async def test_partial_weekend_is_not_a_weekend_group(store, make_request):
    result = await create_booking(store, make_request(WEEKEND, spot_number=2))
    await delete_booking(store, result.ids[2])

    groups = group_bookings(await list_bookings(store))

    assert len(groups) == 1
    assert groups[0].dates == WEEKEND[:2]
    assert not groups[0].is_weekend


def test_group_bookings_empty():
    assert group_bookings([]) == []


def test_next_weekend_is_a_separate_group(details):
    days = WEEKEND + [d + datetime.timedelta(days=7) for d in WEEKEND]
    rows = [
        Booking(id=i + 1, date=day, spot_number=1, **asdict(details))
        for i, day in enumerate(days)
    ]

    groups = group_bookings(rows)

    assert [g.anchor for g in groups] == [WEEKEND[0] + datetime.timedelta(days=7), WEEKEND[0]]
    assert all(g.is_weekend for g in groups)
