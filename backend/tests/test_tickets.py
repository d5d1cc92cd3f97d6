"""
Tests for ticket status transitions and seat uniqueness.
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from flight_booking.core.exceptions import (
    AlreadyCanceled,
    AlreadyPaid,
    InvalidTransition,
    StaleTransition,
    TicketNotFound,
)
from flight_booking.models.ticket import Ticket, TicketStatus, can_transition
from flight_booking.schemas.booking import BookingCreate
from flight_booking.services import ticket_service
from flight_booking.services.booking_service import book_tickets

from conftest import FARE_CLASS_ID, FLIGHT_ID, passenger


async def _book_one(sessionmaker, n=1, seat=None) -> Ticket:
    tickets = await book_tickets(
        sessionmaker,
        BookingCreate(
            flight_id=FLIGHT_ID,
            fare_class_id=FARE_CLASS_ID,
            passengers=[passenger(n)],
            seat_numbers=[seat] if seat else None,
        ),
    )
    return tickets[0]


@pytest.mark.parametrize(
    "current,target,allowed",
    [
        (TicketStatus.HELD, TicketStatus.PAID, True),
        (TicketStatus.HELD, TicketStatus.CANCELED, True),
        (TicketStatus.PAID, TicketStatus.CANCELED, True),
        (TicketStatus.PAID, TicketStatus.HELD, False),
        (TicketStatus.CANCELED, TicketStatus.PAID, False),
        (TicketStatus.CANCELED, TicketStatus.HELD, False),
    ],
)
def test_transition_table(current, target, allowed):
    assert can_transition(current, target) is allowed


@pytest.mark.asyncio
async def test_pay_sets_payment_time_and_order(sessionmaker, test_flight):
    ticket = await _book_one(sessionmaker)

    async with sessionmaker() as db:
        async with db.begin():
            paid = await ticket_service.pay_ticket(db, ticket.id, "order-7")

    assert paid.status == TicketStatus.PAID.value
    assert paid.payment_time is not None
    assert paid.gateway_order_id == "order-7"


@pytest.mark.asyncio
async def test_pay_twice_reports_already_paid(sessionmaker, test_flight):
    ticket = await _book_one(sessionmaker)
    async with sessionmaker() as db:
        async with db.begin():
            await ticket_service.pay_ticket(db, ticket.id)

    with pytest.raises(AlreadyPaid):
        async with sessionmaker() as db:
            await ticket_service.pay_ticket(db, ticket.id)


@pytest.mark.asyncio
async def test_pay_canceled_ticket_is_invalid(sessionmaker, test_flight):
    ticket = await _book_one(sessionmaker)
    async with sessionmaker() as db:
        async with db.begin():
            await ticket_service.cancel_ticket(db, ticket.id)

    with pytest.raises(InvalidTransition):
        async with sessionmaker() as db:
            await ticket_service.pay_ticket(db, ticket.id)


@pytest.mark.asyncio
async def test_missing_ticket(sessionmaker, test_flight):
    async with sessionmaker() as db:
        with pytest.raises(TicketNotFound):
            await ticket_service.pay_ticket(db, 12345)
        with pytest.raises(TicketNotFound):
            await ticket_service.cancel_ticket(db, 12345)


@pytest.mark.asyncio
async def test_cancel_returns_prior_status(sessionmaker, test_flight):
    ticket = await _book_one(sessionmaker)

    async with sessionmaker() as db:
        async with db.begin():
            prior = await ticket_service.cancel_ticket(db, ticket.id)

    assert prior == TicketStatus.HELD


@pytest.mark.asyncio
async def test_cancel_with_stale_expectation(sessionmaker, test_flight):
    ticket = await _book_one(sessionmaker)
    async with sessionmaker() as db:
        async with db.begin():
            await ticket_service.pay_ticket(db, ticket.id)

    with pytest.raises(StaleTransition):
        async with sessionmaker() as db:
            await ticket_service.cancel_ticket(db, ticket.id, expected=TicketStatus.HELD)


@pytest.mark.asyncio
async def test_cancel_twice_reports_already_canceled(sessionmaker, test_flight):
    ticket = await _book_one(sessionmaker)
    async with sessionmaker() as db:
        async with db.begin():
            await ticket_service.cancel_ticket(db, ticket.id)

    with pytest.raises(AlreadyCanceled):
        async with sessionmaker() as db:
            await ticket_service.cancel_ticket(db, ticket.id)


@pytest.mark.asyncio
async def test_two_live_tickets_cannot_share_a_seat(sessionmaker, test_flight):
    ticket = await _book_one(sessionmaker, seat="3F")

    with pytest.raises(IntegrityError):
        async with sessionmaker() as db:
            async with db.begin():
                db.add(
                    Ticket(
                        flight_id=FLIGHT_ID,
                        fare_class_id=FARE_CLASS_ID,
                        passenger_id=ticket.passenger_id,
                        seat_number="3F",
                        fare=Decimal("150.00"),
                        confirmation_code="FMS-20261019-XXXX",
                        status=TicketStatus.HELD.value,
                    )
                )


@pytest.mark.asyncio
async def test_canceled_seat_can_be_sold_again(sessionmaker, test_flight):
    first = await _book_one(sessionmaker, n=1, seat="3F")
    async with sessionmaker() as db:
        async with db.begin():
            await ticket_service.cancel_ticket(db, first.id)

    second = await _book_one(sessionmaker, n=2, seat="3F")

    assert second.seat_number == "3F"
    async with sessionmaker() as db:
        assert await ticket_service.taken_seats(db, FLIGHT_ID) == {"3F"}
        assert await ticket_service.is_seat_available(db, FLIGHT_ID, "3F") is False
        assert await ticket_service.is_seat_available(db, FLIGHT_ID, "3G") is True


@pytest.mark.asyncio
async def test_ticket_queries(sessionmaker, test_flight):
    ticket = await _book_one(sessionmaker)
    async with sessionmaker() as db:
        by_code = await ticket_service.list_by_confirmation_code(db, ticket.confirmation_code)
        by_flight = await ticket_service.list_by_flight(db, FLIGHT_ID)
        by_passenger = await ticket_service.list_by_passenger(db, ticket.passenger_id)

    assert [t.id for t in by_code] == [ticket.id]
    assert [t.id for t in by_flight] == [ticket.id]
    assert [t.id for t in by_passenger] == [ticket.id]
