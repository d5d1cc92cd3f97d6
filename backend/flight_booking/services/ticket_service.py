"""
Ticket status transitions and ticket queries.

Every transition is a conditional UPDATE guarded by the expected prior
status. When it touches zero rows, we re-read the ticket to say precisely
why: a replay (AlreadyPaid / AlreadyCanceled), a lost race
(StaleTransition), an illegal move (InvalidTransition) or a missing row.

These functions do not commit; the caller decides whether a status change
and a seat release share a transaction.
"""

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from flight_booking.models.ticket import Ticket, TicketStatus, can_transition
from flight_booking.db.base import utcnow
from flight_booking.core.exceptions import (
    AlreadyCanceled,
    AlreadyPaid,
    InvalidTransition,
    StaleTransition,
    TicketNotFound,
)
from flight_booking.core.logging import get_logger

logger = get_logger(__name__)


async def get_ticket(db: AsyncSession, ticket_id: int, for_update: bool = False) -> Ticket:
    query = select(Ticket).where(Ticket.id == ticket_id).execution_options(populate_existing=True)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    ticket = result.scalar_one_or_none()
    if not ticket:
        raise TicketNotFound(ticket_id)
    return ticket


async def pay_ticket(db: AsyncSession, ticket_id: int, gateway_order_id: Optional[str] = None) -> Ticket:
    """HELD -> PAID. Stamps payment_time and the gateway order id."""
    result = await db.execute(
        update(Ticket)
        .where(Ticket.id == ticket_id, Ticket.status == TicketStatus.HELD.value)
        .values(
            status=TicketStatus.PAID.value,
            payment_time=utcnow(),
            gateway_order_id=gateway_order_id,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    ticket = await get_ticket(db, ticket_id)
    if result.rowcount == 1:
        logger.info(
            "ticket_paid",
            ticket_id=ticket_id,
            confirmation_code=ticket.confirmation_code,
            order_id=gateway_order_id,
        )
        return ticket

    if ticket.status == TicketStatus.PAID.value:
        raise AlreadyPaid(f"Ticket {ticket_id} is already paid")
    raise InvalidTransition(f"Ticket {ticket_id} is {ticket.status} and cannot be paid")


async def cancel_ticket(
    db: AsyncSession,
    ticket_id: int,
    expected: Optional[TicketStatus] = None,
) -> TicketStatus:
    """
    Move a ticket to CANCELED and soft-delete it.

    With `expected`, the move only happens if the ticket is still in that
    state. Returns the status the ticket had before; if it was HELD the
    caller must release its seat in the same transaction.
    """
    ticket = await get_ticket(db, ticket_id)
    prior = TicketStatus(ticket.status)

    if prior == TicketStatus.CANCELED:
        raise AlreadyCanceled(f"Ticket {ticket_id} is already canceled")
    if expected is not None and prior != expected:
        raise StaleTransition(f"Ticket {ticket_id} is {prior.value}, expected {expected.value}")
    if not can_transition(prior, TicketStatus.CANCELED):
        raise InvalidTransition(f"Ticket {ticket_id} cannot be canceled from {prior.value}")

    now = utcnow()
    result = await db.execute(
        update(Ticket)
        .where(Ticket.id == ticket_id, Ticket.status == prior.value)
        .values(status=TicketStatus.CANCELED.value, deleted_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        # Moved between our read and our write
        raise StaleTransition(f"Ticket {ticket_id} changed state concurrently")

    logger.info("ticket_canceled", ticket_id=ticket_id, prior_status=prior.value)
    return prior


async def list_by_confirmation_code(db: AsyncSession, confirmation_code: str) -> list[Ticket]:
    result = await db.execute(
        select(Ticket)
        .where(Ticket.confirmation_code == confirmation_code)
        .order_by(Ticket.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def list_by_flight(db: AsyncSession, flight_id: int) -> list[Ticket]:
    result = await db.execute(
        select(Ticket)
        .where(Ticket.flight_id == flight_id, Ticket.deleted_at.is_(None))
        .order_by(Ticket.seat_number)
    )
    return list(result.scalars().all())


async def list_by_customer(db: AsyncSession, customer_id: int) -> list[Ticket]:
    result = await db.execute(
        select(Ticket)
        .where(Ticket.booking_customer_id == customer_id, Ticket.deleted_at.is_(None))
        .order_by(Ticket.created_at.desc())
    )
    return list(result.scalars().all())


async def list_by_passenger(db: AsyncSession, passenger_id: int) -> list[Ticket]:
    result = await db.execute(
        select(Ticket)
        .where(Ticket.passenger_id == passenger_id, Ticket.deleted_at.is_(None))
        .order_by(Ticket.created_at.desc())
    )
    return list(result.scalars().all())


async def taken_seats(db: AsyncSession, flight_id: int) -> set[str]:
    result = await db.execute(
        select(Ticket.seat_number).where(
            Ticket.flight_id == flight_id,
            Ticket.status != TicketStatus.CANCELED.value,
        )
    )
    return set(result.scalars().all())


async def is_seat_available(db: AsyncSession, flight_id: int, seat_number: str) -> bool:
    result = await db.execute(
        select(Ticket.id).where(
            Ticket.flight_id == flight_id,
            Ticket.seat_number == seat_number,
            Ticket.status != TicketStatus.CANCELED.value,
        )
    )
    return result.first() is None
