"""
Tests for the seat pool counters, including concurrent reservations.
"""

import asyncio
from decimal import Decimal

import pytest

from flight_booking.core.exceptions import FareClassNotFound, InsufficientSeats
from flight_booking.services import seat_pool

from conftest import FARE_CLASS_ID, FLIGHT_ID


async def _reserve(sessionmaker, count, flight_id=FLIGHT_ID, fare_class_id=FARE_CLASS_ID):
    async with sessionmaker() as db:
        async with db.begin():
            await seat_pool.reserve(db, flight_id, fare_class_id, count)


async def _release(sessionmaker, count, flight_id=FLIGHT_ID, fare_class_id=FARE_CLASS_ID):
    async with sessionmaker() as db:
        async with db.begin():
            return await seat_pool.release(db, flight_id, fare_class_id, count)


@pytest.mark.asyncio
async def test_reserve_decrements_and_bumps_version(sessionmaker, test_flight, read_pool):
    await _reserve(sessionmaker, 3)

    pool = await read_pool()
    assert pool.remaining_seats == 47
    assert pool.total_seats == 50
    assert pool.version == 2


@pytest.mark.asyncio
async def test_reserve_more_than_remaining_is_rejected_without_write(sessionmaker, make_flight, read_pool):
    await make_flight(total_seats=10, remaining_seats=2)

    with pytest.raises(InsufficientSeats) as exc_info:
        await _reserve(sessionmaker, 3)

    assert exc_info.value.requested == 3
    assert exc_info.value.available == 2
    pool = await read_pool()
    assert pool.remaining_seats == 2
    assert pool.version == 1


@pytest.mark.asyncio
async def test_reserve_unknown_pool(sessionmaker, test_flight):
    with pytest.raises(FareClassNotFound):
        await _reserve(sessionmaker, 1, fare_class_id=99)


@pytest.mark.asyncio
async def test_reserve_requires_positive_count(sessionmaker, test_flight):
    with pytest.raises(ValueError):
        await _reserve(sessionmaker, 0)


@pytest.mark.asyncio
async def test_concurrent_reservations_never_oversell(sessionmaker, make_flight, read_pool):
    """20 callers race for 5 seats: exactly 5 win, the counter stops at 0."""
    await make_flight(total_seats=5)

    results = await asyncio.gather(
        *[_reserve(sessionmaker, 1) for _ in range(20)],
        return_exceptions=True,
    )

    won = [r for r in results if r is None]
    lost = [r for r in results if isinstance(r, InsufficientSeats)]
    assert len(won) == 5
    assert len(lost) == 15
    assert (await read_pool()).remaining_seats == 0


@pytest.mark.asyncio
async def test_concurrent_multi_seat_reservations_stay_within_total(sessionmaker, make_flight, read_pool):
    await make_flight(total_seats=7)

    results = await asyncio.gather(
        *[_reserve(sessionmaker, 2) for _ in range(6)],
        return_exceptions=True,
    )

    won = sum(1 for r in results if r is None)
    assert won == 3
    assert (await read_pool()).remaining_seats == 1


@pytest.mark.asyncio
async def test_release_restores_seats(sessionmaker, test_flight, read_pool):
    await _reserve(sessionmaker, 4)

    restored = await _release(sessionmaker, 4)

    assert restored == 4
    assert (await read_pool()).remaining_seats == 50


@pytest.mark.asyncio
async def test_release_beyond_total_is_clamped(sessionmaker, test_flight, read_pool):
    await _reserve(sessionmaker, 1)

    restored = await _release(sessionmaker, 3)

    assert restored == 1
    pool = await read_pool()
    assert pool.remaining_seats == pool.total_seats == 50


@pytest.mark.asyncio
async def test_peek_fare(sessionmaker, test_flight):
    async with sessionmaker() as db:
        fare = await seat_pool.peek_fare(db, FLIGHT_ID, FARE_CLASS_ID)
    assert fare == Decimal("150.00")


@pytest.mark.asyncio
async def test_retired_pool_stops_selling_but_takes_seats_back(sessionmaker, test_flight, read_pool):
    await _reserve(sessionmaker, 2)
    async with sessionmaker() as db:
        async with db.begin():
            await seat_pool.retire_pool(db, FLIGHT_ID, FARE_CLASS_ID)

    with pytest.raises(FareClassNotFound):
        await _reserve(sessionmaker, 1)

    assert await _release(sessionmaker, 2) == 2
    assert (await read_pool()).remaining_seats == 50


@pytest.mark.asyncio
async def test_list_pools_skips_retired(sessionmaker, make_flight):
    await make_flight()
    await make_flight(flight_id=11, fare_class_id=3, fare_class_name="Business")
    async with sessionmaker() as db:
        async with db.begin():
            await seat_pool.publish_pool(db, FLIGHT_ID, 3, 8, Decimal("900.00"))
            await seat_pool.retire_pool(db, FLIGHT_ID, FARE_CLASS_ID)

    async with sessionmaker() as db:
        pools = await seat_pool.list_pools(db, FLIGHT_ID)

    assert [(p.fare_class_id, p.remaining_seats) for p in pools] == [(3, 8)]
