"""
Read access to flights and fare classes, as the booking core sees them.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from flight_booking.models.flight import Flight, FareClass
from flight_booking.models.seat_pool import SeatPool
from flight_booking.services import seat_pool
from flight_booking.core.exceptions import BookingError, FlightNotFound, FareClassNotFound
from flight_booking.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class FareClassInfo:
    flight_id: int
    fare_class_id: int
    fare_class_name: str
    fare_per_seat: Decimal
    total_seats: int
    remaining_seats: int


async def get_flight(db: AsyncSession, flight_id: int) -> Flight:
    result = await db.execute(
        select(Flight).where(Flight.id == flight_id, Flight.deleted_at.is_(None))
    )
    flight = result.scalar_one_or_none()
    if not flight:
        raise FlightNotFound(flight_id)
    return flight


async def get_departure(db: AsyncSession, flight_id: int) -> datetime:
    flight = await get_flight(db, flight_id)
    return flight.departure_time


async def get_fare_class(db: AsyncSession, flight_id: int, fare_class_id: int) -> FareClassInfo:
    """Pool and fare class for a flight. Raises FlightNotFound before FareClassNotFound."""
    await get_flight(db, flight_id)

    result = await db.execute(
        select(SeatPool, FareClass.name)
        .join(FareClass, FareClass.id == SeatPool.fare_class_id)
        .where(
            SeatPool.flight_id == flight_id,
            SeatPool.fare_class_id == fare_class_id,
            SeatPool.deleted_at.is_(None),
            FareClass.deleted_at.is_(None),
        )
        .execution_options(populate_existing=True)
    )
    row = result.one_or_none()
    if row is None:
        raise FareClassNotFound(flight_id, fare_class_id)

    pool, name = row
    return FareClassInfo(
        flight_id=flight_id,
        fare_class_id=fare_class_id,
        fare_class_name=name,
        fare_per_seat=Decimal(pool.fare_per_seat),
        total_seats=pool.total_seats,
        remaining_seats=pool.remaining_seats,
    )


async def create_flight(
    db: AsyncSession,
    flight_code: str,
    departure_time: datetime,
    arrival_time: Optional[datetime] = None,
) -> Flight:
    flight = Flight(flight_code=flight_code, departure_time=departure_time, arrival_time=arrival_time)
    db.add(flight)
    await db.flush()
    logger.info("flight_created", flight_id=flight.id, flight_code=flight_code)
    return flight


async def create_fare_class(db: AsyncSession, name: str) -> FareClass:
    fare_class = FareClass(name=name)
    db.add(fare_class)
    await db.flush()
    return fare_class


async def publish_fare_class(
    db: AsyncSession,
    flight_id: int,
    fare_class_id: int,
    total_seats: int,
    fare_per_seat: Decimal,
):
    """Put a fare class of a flight on sale with a fresh seat pool."""
    await get_flight(db, flight_id)
    fare_class = await db.get(FareClass, fare_class_id)
    if fare_class is None or fare_class.deleted_at is not None:
        raise FareClassNotFound(flight_id, fare_class_id)

    existing = await db.get(SeatPool, (flight_id, fare_class_id))
    if existing is not None:
        raise BookingError(
            f"Fare class {fare_class_id} is already published on flight {flight_id}", 409
        )
    return await seat_pool.publish_pool(db, flight_id, fare_class_id, total_seats, fare_per_seat)
