"""
Passenger endpoints: contact details and ticket history.

Name and citizen id are fixed once a passenger exists; only contact
fields can change here.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from flight_booking.db.session import get_db
from flight_booking.schemas.booking import PassengerContactUpdate, PassengerResponse, TicketResponse
from flight_booking.services import passenger_directory, ticket_service

router = APIRouter(prefix="/passengers", tags=["Passengers"])


@router.patch("/{passenger_id}/contact", response_model=PassengerResponse)
async def update_passenger_contact(
    passenger_id: int,
    contact: PassengerContactUpdate,
    db: AsyncSession = Depends(get_db),
):
    passenger = await passenger_directory.update_contact(
        db, passenger_id, email=contact.email, phone_number=contact.phone_number
    )
    await db.commit()
    return passenger


@router.get("/{passenger_id}/tickets", response_model=list[TicketResponse])
async def passenger_tickets(passenger_id: int, db: AsyncSession = Depends(get_db)):
    await passenger_directory.get_passenger(db, passenger_id)
    return await ticket_service.list_by_passenger(db, passenger_id)
