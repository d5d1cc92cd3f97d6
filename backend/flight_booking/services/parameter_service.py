"""
Business parameters (hold duration and booking windows).

A stored row wins; until an operator saves one, the settings defaults apply.
"""

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from flight_booking.models.parameter import Parameter
from flight_booking.core.config import get_settings
from flight_booking.core.exceptions import BookingError
from flight_booking.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

PARAMETER_FIELDS = (
    "max_booking_hold_duration",
    "min_flight_duration",
    "min_booking_in_advance_duration",
)


@dataclass(frozen=True)
class ParameterSet:
    max_booking_hold_duration: int
    min_flight_duration: int
    min_booking_in_advance_duration: int


def default_parameters() -> ParameterSet:
    return ParameterSet(
        max_booking_hold_duration=settings.DEFAULT_MAX_BOOKING_HOLD_DURATION,
        min_flight_duration=settings.DEFAULT_MIN_FLIGHT_DURATION,
        min_booking_in_advance_duration=settings.DEFAULT_MIN_BOOKING_IN_ADVANCE_DURATION,
    )


async def _active_row(db: AsyncSession):
    result = await db.execute(
        select(Parameter)
        .where(Parameter.deleted_at.is_(None))
        .order_by(Parameter.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_parameters(db: AsyncSession) -> ParameterSet:
    row = await _active_row(db)
    if row is None:
        return default_parameters()
    return ParameterSet(
        max_booking_hold_duration=row.max_booking_hold_duration,
        min_flight_duration=row.min_flight_duration,
        min_booking_in_advance_duration=row.min_booking_in_advance_duration,
    )


async def update_parameters(db: AsyncSession, **changes) -> ParameterSet:
    """Apply the non-None values in `changes` to the active row, creating it if needed."""
    for name, value in changes.items():
        if name not in PARAMETER_FIELDS:
            raise BookingError(f"Unknown parameter {name}", 422)
        if value is None:
            continue
        if name == "min_booking_in_advance_duration":
            if value < 0:
                raise BookingError(f"{name} must not be negative", 422)
        elif value <= 0:
            raise BookingError(f"{name} must be positive", 422)

    row = await _active_row(db)
    if row is None:
        defaults = default_parameters()
        row = Parameter(
            max_booking_hold_duration=defaults.max_booking_hold_duration,
            min_flight_duration=defaults.min_flight_duration,
            min_booking_in_advance_duration=defaults.min_booking_in_advance_duration,
        )
        db.add(row)

    for name, value in changes.items():
        if value is not None:
            setattr(row, name, value)

    await db.flush()
    logger.info("parameters_updated", **{k: v for k, v in changes.items() if v is not None})
    return await get_parameters(db)
