"""
Seat pool counters per (flight, fare class).

CONCURRENCY STRATEGY: Conditional Update at the Storage Boundary
=================================================================

Problem:
  Two bookings race for the last seat. Both read remaining_seats=1, both
  decrement in memory, both save. Result: oversell.

Solution:
  The check and the decrement are one statement:

    UPDATE seat_pools
       SET remaining_seats = remaining_seats - :n, version = version + 1
     WHERE flight_id = :f AND fare_class_id = :c
       AND deleted_at IS NULL AND remaining_seats >= :n

  rows_affected == 1 means the seats are ours; 0 means there were not enough
  (or the pool does not exist). The database row lock taken by the UPDATE
  serializes concurrent callers for the same key, each seeing the previous
  caller's post-decrement value. The CHECK constraint remaining_seats >= 0
  is the final safety net.

  No retry loop is needed: unlike a version-matched optimistic update, a
  failed conditional decrement is a real "sold out", not a lost race.

Release is the mirror image, guarded by remaining + n <= total. Exceeding
total means some path released twice; we clamp to total and log loudly
instead of letting the counter overflow.

These functions do not commit. Callers own transaction boundaries, and
should invalidate the availability cache after their commit.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from flight_booking.models.seat_pool import SeatPool
from flight_booking.db.base import utcnow
from flight_booking.core.exceptions import FareClassNotFound, InsufficientSeats
from flight_booking.core.metrics import record_seat_pool_operation
from flight_booking.core.logging import get_logger

logger = get_logger(__name__)


def _active_pool(flight_id: int, fare_class_id: int):
    return (
        SeatPool.flight_id == flight_id,
        SeatPool.fare_class_id == fare_class_id,
        SeatPool.deleted_at.is_(None),
    )


async def get_pool(db: AsyncSession, flight_id: int, fare_class_id: int) -> Optional[SeatPool]:
    result = await db.execute(
        select(SeatPool)
        .where(*_active_pool(flight_id, fare_class_id))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_pools(db: AsyncSession, flight_id: int) -> list[SeatPool]:
    result = await db.execute(
        select(SeatPool)
        .where(SeatPool.flight_id == flight_id, SeatPool.deleted_at.is_(None))
        .order_by(SeatPool.fare_class_id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def reserve(db: AsyncSession, flight_id: int, fare_class_id: int, count: int) -> None:
    """
    Atomically take `count` seats from the pool.
    Raises InsufficientSeats (no write happened) or FareClassNotFound.
    """
    if count <= 0:
        raise ValueError("reserve count must be positive")

    result = await db.execute(
        update(SeatPool)
        .where(*_active_pool(flight_id, fare_class_id), SeatPool.remaining_seats >= count)
        .values(
            remaining_seats=SeatPool.remaining_seats - count,
            version=SeatPool.version + 1,
        )
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 1:
        record_seat_pool_operation("reserve", "ok")
        logger.info(
            "seat_pool_reserved",
            flight_id=flight_id,
            fare_class_id=fare_class_id,
            count=count,
        )
        return

    pool = await get_pool(db, flight_id, fare_class_id)
    if pool is None:
        raise FareClassNotFound(flight_id, fare_class_id)

    record_seat_pool_operation("reserve", "rejected")
    logger.warning(
        "seat_pool_reserve_rejected",
        flight_id=flight_id,
        fare_class_id=fare_class_id,
        requested=count,
        available=pool.remaining_seats,
    )
    raise InsufficientSeats(requested=count, available=pool.remaining_seats)


async def release(db: AsyncSession, flight_id: int, fare_class_id: int, count: int) -> int:
    """
    Atomically hand `count` seats back to the pool, capped at total_seats.
    Returns the number of seats actually restored.
    """
    if count <= 0:
        raise ValueError("release count must be positive")

    # Retired pools still take their seats back; tickets outlive retirement.
    key = (SeatPool.flight_id == flight_id, SeatPool.fare_class_id == fare_class_id)

    result = await db.execute(
        update(SeatPool)
        .where(*key, SeatPool.remaining_seats + count <= SeatPool.total_seats)
        .values(
            remaining_seats=SeatPool.remaining_seats + count,
            version=SeatPool.version + 1,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        record_seat_pool_operation("release", "ok")
        logger.info(
            "seat_pool_released",
            flight_id=flight_id,
            fare_class_id=fare_class_id,
            count=count,
        )
        return count

    row = (
        await db.execute(
            select(SeatPool.remaining_seats, SeatPool.total_seats).where(*key).with_for_update()
        )
    ).one_or_none()
    if row is None:
        raise FareClassNotFound(flight_id, fare_class_id)

    remaining, total = row
    restored = total - remaining
    await db.execute(
        update(SeatPool)
        .where(*key)
        .values(remaining_seats=SeatPool.total_seats, version=SeatPool.version + 1)
        .execution_options(synchronize_session=False)
    )
    record_seat_pool_operation("release", "clamped")
    logger.error(
        "seat_pool_release_overflow",
        flight_id=flight_id,
        fare_class_id=fare_class_id,
        requested=count,
        restored=restored,
        total=total,
    )
    return restored


async def peek_fare(db: AsyncSession, flight_id: int, fare_class_id: int) -> Decimal:
    result = await db.execute(
        select(SeatPool.fare_per_seat).where(*_active_pool(flight_id, fare_class_id))
    )
    fare = result.scalar_one_or_none()
    if fare is None:
        raise FareClassNotFound(flight_id, fare_class_id)
    return Decimal(fare)


async def publish_pool(
    db: AsyncSession,
    flight_id: int,
    fare_class_id: int,
    total_seats: int,
    fare_per_seat: Decimal,
) -> SeatPool:
    """Create the pool when a flight's fare class goes on sale. All seats start free."""
    pool = SeatPool(
        flight_id=flight_id,
        fare_class_id=fare_class_id,
        total_seats=total_seats,
        remaining_seats=total_seats,
        fare_per_seat=fare_per_seat,
    )
    db.add(pool)
    await db.flush()
    logger.info(
        "seat_pool_published",
        flight_id=flight_id,
        fare_class_id=fare_class_id,
        total_seats=total_seats,
        fare=str(fare_per_seat),
    )
    return pool


async def retire_pool(db: AsyncSession, flight_id: int, fare_class_id: int) -> None:
    """Stop selling a pool. Rows are kept because tickets still reference them."""
    result = await db.execute(
        update(SeatPool)
        .where(*_active_pool(flight_id, fare_class_id))
        .values(deleted_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise FareClassNotFound(flight_id, fare_class_id)
    logger.info("seat_pool_retired", flight_id=flight_id, fare_class_id=fare_class_id)
