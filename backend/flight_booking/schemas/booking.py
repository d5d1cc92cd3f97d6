"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field


class PassengerInfo(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=200)
    citizen_id: str = Field(..., min_length=1, max_length=20)
    email: Optional[str] = Field(None, max_length=200)
    phone_number: Optional[str] = Field(None, max_length=30)


class BookingCreate(BaseModel):
    flight_id: int
    fare_class_id: int
    passengers: list[PassengerInfo]
    seat_numbers: Optional[list[str]] = None


class TicketResponse(BaseModel):
    id: int
    flight_id: int
    fare_class_id: int
    passenger_id: int
    booking_customer_id: Optional[int]
    seat_number: str
    fare: Decimal
    confirmation_code: str
    status: str
    payment_time: Optional[datetime]
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingResponse(BaseModel):
    confirmation_code: str
    tickets: list[TicketResponse]
    total_fare: Decimal


class BookingCancelResponse(BaseModel):
    message: str
    confirmation_code: str
    canceled_ticket_ids: list[int]
    seats_released: int


class SeatAvailabilityResponse(BaseModel):
    flight_id: int
    seat_number: str
    available: bool


class PassengerResponse(BaseModel):
    id: int
    full_name: str
    citizen_id: str
    email: Optional[str]
    phone_number: Optional[str]

    model_config = {"from_attributes": True}


class PassengerContactUpdate(BaseModel):
    email: Optional[str] = Field(None, max_length=200)
    phone_number: Optional[str] = Field(None, max_length=30)
