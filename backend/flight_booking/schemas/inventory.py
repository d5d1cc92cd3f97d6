"""
Pydantic schemas for seat pool publication and availability reads.
"""

from decimal import Decimal
from pydantic import BaseModel, Field


class SeatPoolCreate(BaseModel):
    fare_class_id: int
    total_seats: int = Field(..., gt=0, le=1000)
    fare_per_seat: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)


class SeatPoolResponse(BaseModel):
    flight_id: int
    fare_class_id: int
    total_seats: int
    remaining_seats: int
    fare_per_seat: Decimal

    model_config = {"from_attributes": True}


class AvailabilityResponse(BaseModel):
    flight_id: int
    pools: list[SeatPoolResponse]
    cached: bool = False
