"""
Seat inventory endpoints with Redis caching on availability reads.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from flight_booking.db.session import get_db
from flight_booking.schemas.inventory import SeatPoolCreate, SeatPoolResponse, AvailabilityResponse
from flight_booking.services import flight_catalog, seat_pool
from flight_booking.services.cache_service import (
    get_cached_availability,
    set_cached_availability,
    invalidate_availability,
)
from flight_booking.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/flights", tags=["Flights"])


@router.post(
    "/{flight_id}/fare-classes",
    response_model=SeatPoolResponse,
    status_code=status.HTTP_201_CREATED,
)
async def publish_fare_class(
    flight_id: int,
    pool_data: SeatPoolCreate,
    db: AsyncSession = Depends(get_db),
):
    pool = await flight_catalog.publish_fare_class(
        db, flight_id, pool_data.fare_class_id, pool_data.total_seats, pool_data.fare_per_seat
    )
    await db.commit()
    await invalidate_availability(flight_id)
    return pool


@router.get("/{flight_id}/availability", response_model=AvailabilityResponse)
async def flight_availability(flight_id: int, db: AsyncSession = Depends(get_db)):
    """
    Remaining seats per fare class. Cached for REDIS_CACHE_TTL seconds and
    invalidated on every seat movement; bookings never read this cache.
    """
    cached = await get_cached_availability(flight_id)
    if cached:
        logger.info("availability_cache_hit", flight_id=flight_id)
        cached["cached"] = True
        return AvailabilityResponse(**cached)

    await flight_catalog.get_flight(db, flight_id)
    pools = await seat_pool.list_pools(db, flight_id)
    response_data = {
        "flight_id": flight_id,
        "pools": [SeatPoolResponse.model_validate(p).model_dump() for p in pools],
        "cached": False,
    }
    await set_cached_availability(flight_id, response_data)
    return AvailabilityResponse(**response_data)


@router.delete("/{flight_id}/fare-classes/{fare_class_id}", status_code=status.HTTP_204_NO_CONTENT)
async def retire_fare_class(flight_id: int, fare_class_id: int, db: AsyncSession = Depends(get_db)):
    """Stop selling a fare class. Existing tickets are untouched."""
    await seat_pool.retire_pool(db, flight_id, fare_class_id)
    await db.commit()
    await invalidate_availability(flight_id)
