"""
Pydantic schemas for business parameters.
"""

from typing import Optional
from pydantic import BaseModel, Field


class ParameterResponse(BaseModel):
    max_booking_hold_duration: int
    min_flight_duration: int
    min_booking_in_advance_duration: int


class ParameterUpdate(BaseModel):
    max_booking_hold_duration: Optional[int] = Field(None, gt=0)
    min_flight_duration: Optional[int] = Field(None, gt=0)
    min_booking_in_advance_duration: Optional[int] = Field(None, ge=0)
