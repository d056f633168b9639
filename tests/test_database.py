import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from errors import BookingConflict, TransientStoreFault


def _operational_error():
    return OperationalError("SELECT 1", {}, Exception("server closed the connection unexpectedly"))


async def test_transient_errors_are_retried_until_success(store):
    calls = []

    async def flaky(session):
        calls.append(session)
        if len(calls) < 3:
            raise _operational_error()
        return "ok"

    assert await store.run(flaky) == "ok"
    assert len(calls) == 3
    # Each attempt gets its own session
    assert len(set(map(id, calls))) == 3


async def test_retries_are_bounded(store):
    calls = []

    async def always_down(session):
        calls.append(1)
        raise _operational_error()

    with pytest.raises(TransientStoreFault):
        await store.run(always_down)

    assert len(calls) == store.retries + 1


async def test_integrity_errors_are_never_retried(store):
    calls = []

    async def duplicate(session):
        calls.append(1)
        raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

    with pytest.raises(IntegrityError):
        await store.run(duplicate)

    assert len(calls) == 1


async def test_conflicts_are_never_retried(store):
    calls = []

    async def conflicting(session):
        calls.append(1)
        raise BookingConflict([], 1)

    with pytest.raises(BookingConflict):
        await store.run(conflicting)

    assert len(calls) == 1


async def test_other_errors_propagate_unchanged(store):
    async def broken(session):
        raise KeyError("boom")

    with pytest.raises(KeyError):
        await store.run(broken)


async def test_ping(store):
    assert await store.ping() is True
