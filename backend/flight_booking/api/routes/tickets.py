"""
Ticket endpoints: lookup, cancellation and seat availability.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from flight_booking.core.security import get_current_customer_id
from flight_booking.db.session import get_db, get_sessionmaker
from flight_booking.schemas.booking import TicketResponse, SeatAvailabilityResponse
from flight_booking.services import ticket_service
from flight_booking.services.booking_service import cancel_ticket, admin_cancel_paid_ticket
from flight_booking.services.integration_factory import get_payment_gateway
from flight_booking.services.interfaces import PaymentGateway

router = APIRouter(prefix="/tickets", tags=["Tickets"])


@router.get("/seat-availability", response_model=SeatAvailabilityResponse)
async def seat_availability(
    flight_id: int = Query(...),
    seat_number: str = Query(..., min_length=1, max_length=7),
    db: AsyncSession = Depends(get_db),
):
    seat = seat_number.strip().upper()
    available = await ticket_service.is_seat_available(db, flight_id, seat)
    return SeatAvailabilityResponse(flight_id=flight_id, seat_number=seat, available=available)


@router.get("/mine", response_model=list[TicketResponse])
async def my_tickets(
    customer_id: int = Depends(get_current_customer_id),
    db: AsyncSession = Depends(get_db),
):
    """Live tickets booked by the authenticated customer, newest first."""
    return await ticket_service.list_by_customer(db, customer_id)


@router.get("/{ticket_id}", response_model=TicketResponse)
async def get_ticket_endpoint(ticket_id: int, db: AsyncSession = Depends(get_db)):
    return await ticket_service.get_ticket(db, ticket_id)


@router.post("/{ticket_id}/cancel", response_model=TicketResponse)
async def cancel_ticket_endpoint(
    ticket_id: int,
    sessionmaker: async_sessionmaker[AsyncSession] = Depends(get_sessionmaker),
):
    """Cancel an unpaid ticket. Repeating the call is harmless."""
    return await cancel_ticket(sessionmaker, ticket_id)


@router.post("/{ticket_id}/admin-cancel", response_model=TicketResponse)
async def admin_cancel_endpoint(
    ticket_id: int,
    sessionmaker: async_sessionmaker[AsyncSession] = Depends(get_sessionmaker),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """
    Administrative cancel. Paid tickets are refunded through the gateway
    first; the seat of a paid ticket is not returned to sale.
    """
    return await admin_cancel_paid_ticket(sessionmaker, gateway, ticket_id)
