"""
Booking endpoints: hold seats, look up and cancel bookings by confirmation code.
"""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from flight_booking.db.session import get_db, get_sessionmaker
from flight_booking.schemas.booking import (
    BookingCreate,
    BookingResponse,
    BookingCancelResponse,
    TicketResponse,
)
from flight_booking.services.booking_service import book_tickets, cancel_booking, get_booking
from flight_booking.core.security import get_optional_customer_id

router = APIRouter(prefix="/bookings", tags=["Bookings"])


def _booking_response(tickets) -> BookingResponse:
    return BookingResponse(
        confirmation_code=tickets[0].confirmation_code,
        tickets=[TicketResponse.model_validate(t) for t in tickets],
        total_fare=sum((Decimal(t.fare) for t in tickets), Decimal("0")),
    )


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    customer_id: Optional[int] = Depends(get_optional_customer_id),
    sessionmaker: async_sessionmaker[AsyncSession] = Depends(get_sessionmaker),
):
    """
    Hold one seat per passenger on a flight's fare class.

    All passengers get a seat or none do. Fails with 409 when the pool is
    sold out or a requested seat is taken, 422 on bad passenger data.
    """
    tickets = await book_tickets(sessionmaker, booking_data, booking_customer_id=customer_id)
    return _booking_response(tickets)


@router.get("/{confirmation_code}", response_model=BookingResponse)
async def get_booking_endpoint(confirmation_code: str, db: AsyncSession = Depends(get_db)):
    tickets = await get_booking(db, confirmation_code)
    return _booking_response(tickets)


@router.delete("/{confirmation_code}", response_model=BookingCancelResponse)
async def cancel_booking_endpoint(
    confirmation_code: str,
    sessionmaker: async_sessionmaker[AsyncSession] = Depends(get_sessionmaker),
):
    """Cancel every unpaid ticket of a booking and release their seats."""
    outcome = await cancel_booking(sessionmaker, confirmation_code)
    return BookingCancelResponse(
        message="Booking cancelled successfully",
        confirmation_code=outcome.confirmation_code,
        canceled_ticket_ids=outcome.canceled_ticket_ids,
        seats_released=outcome.seats_released,
    )
