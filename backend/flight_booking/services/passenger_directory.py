"""
Passenger directory: resolve-or-create by citizen id.

A booking names passengers by citizen id. The first booking that mentions
a citizen id creates the record; every later booking reuses it. Two
bookings may race to create the same passenger; the loser's insert hits
the unique constraint inside a SAVEPOINT and simply re-reads the winner's
row, so "already exists" never fails a booking.
"""

import re
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from flight_booking.models.passenger import Passenger
from flight_booking.schemas.booking import PassengerInfo
from flight_booking.core.exceptions import PassengerValidationError
from flight_booking.core.logging import get_logger

logger = get_logger(__name__)

CITIZEN_ID_PATTERN = re.compile(r"^[A-Za-z0-9]{1,20}$")


def validate_passenger_info(info: PassengerInfo) -> None:
    if not info.full_name.strip():
        raise PassengerValidationError("Passenger name must not be blank")
    if not CITIZEN_ID_PATTERN.match(info.citizen_id):
        raise PassengerValidationError(
            f"Invalid citizen id {info.citizen_id!r}: expected 1-20 letters or digits"
        )
    if info.email is not None and "@" not in info.email:
        raise PassengerValidationError(f"Invalid email for passenger {info.citizen_id}")


async def find_by_citizen_id(db: AsyncSession, citizen_id: str) -> Optional[Passenger]:
    result = await db.execute(select(Passenger).where(Passenger.citizen_id == citizen_id))
    return result.scalar_one_or_none()


async def get_passenger(db: AsyncSession, passenger_id: int) -> Passenger:
    passenger = await db.get(Passenger, passenger_id)
    if passenger is None:
        raise PassengerValidationError(f"Passenger {passenger_id} not found", status_code=404)
    return passenger


async def create(db: AsyncSession, info: PassengerInfo) -> Passenger:
    validate_passenger_info(info)
    passenger = Passenger(
        full_name=info.full_name.strip(),
        citizen_id=info.citizen_id,
        email=info.email,
        phone_number=info.phone_number,
    )
    db.add(passenger)
    await db.flush()
    logger.info("passenger_created", passenger_id=passenger.id, citizen_id=passenger.citizen_id)
    return passenger


async def resolve(db: AsyncSession, info: PassengerInfo) -> Passenger:
    """Existing passenger for this citizen id, or a new one. Never overwrites an existing record."""
    existing = await find_by_citizen_id(db, info.citizen_id)
    if existing:
        return existing

    try:
        async with db.begin_nested():
            return await create(db, info)
    except IntegrityError:
        # Lost a create race to a concurrent booking
        existing = await find_by_citizen_id(db, info.citizen_id)
        if existing is None:
            raise
        logger.info("passenger_create_race_resolved", citizen_id=info.citizen_id)
        return existing


async def update_contact(
    db: AsyncSession,
    passenger_id: int,
    email: Optional[str] = None,
    phone_number: Optional[str] = None,
) -> Passenger:
    """Contact fields are the only mutable part of a passenger."""
    passenger = await get_passenger(db, passenger_id)
    if email is not None:
        if "@" not in email:
            raise PassengerValidationError(f"Invalid email for passenger {passenger.citizen_id}")
        passenger.email = email
    if phone_number is not None:
        passenger.phone_number = phone_number
    await db.flush()
    logger.info("passenger_contact_updated", passenger_id=passenger_id)
    return passenger
