"""
Booking engine: multi-passenger seat holds with all-or-nothing semantics.

FLOW
====

  1. Validate (read-only): passengers, flight, fare class pool, requested seats.
  2. Reserve: seat_pool.reserve(count) in its own short transaction, committed
     immediately. The pool row is locked for one statement only, so concurrent
     bookings on the same flight are not serialized behind ticket inserts.
  3. Create: one transaction resolves passengers, snapshots the fare once,
     generates one confirmation code and inserts N HELD tickets.
  4. Compensate: if step 3 fails for any reason, release the N seats in a
     fresh transaction before the error reaches the caller.

Seat numbers are guarded twice: a pre-check in step 1 for a friendly error,
and the partial unique index on (flight_id, seat_number) as the authority.
Auto-assigned seats that lose an insert race are re-picked up to
MAX_SEAT_ASSIGN_ATTEMPTS times; an explicitly requested seat that loses
is reported as SeatAlreadyTaken.

Cancellation of a HELD ticket and release of its seat always share one
transaction, so the pool can neither leak nor double count a seat.
"""

import asyncio
import secrets
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from flight_booking.models.ticket import SEAT_NUMBER_MAX_LENGTH, Ticket, TicketStatus
from flight_booking.schemas.booking import BookingCreate
from flight_booking.services import flight_catalog, passenger_directory, seat_pool, ticket_service
from flight_booking.services.flight_catalog import FareClassInfo
from flight_booking.services.interfaces import PaymentGateway
from flight_booking.services.cache_service import invalidate_availability
from flight_booking.core.config import get_settings
from flight_booking.core.exceptions import (
    AlreadyCanceled,
    BookingError,
    BookingNotFound,
    EmptyPassengerList,
    InsufficientSeats,
    InvalidTransition,
    MismatchedSeatCount,
    PassengerValidationError,
    SeatAlreadyTaken,
    StaleTransition,
)
from flight_booking.core.metrics import (
    booking_latency,
    compensating_releases,
    record_booking_attempt,
)
from flight_booking.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

CODE_ALPHABET = string.ascii_uppercase + string.digits
MAX_CODE_ATTEMPTS = 10


@dataclass
class CancelResult:
    confirmation_code: str
    canceled_ticket_ids: list[int] = field(default_factory=list)
    seats_released: int = 0


def generate_confirmation_code(now: Optional[datetime] = None) -> str:
    """PREFIX-YYYYMMDD-XXXX, e.g. FMS-20261019-7QK2."""
    now = now or datetime.now(timezone.utc)
    suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(4))
    return f"{settings.CONFIRMATION_CODE_PREFIX}-{now:%Y%m%d}-{suffix}"


def _normalize_seat(seat_number: str) -> str:
    return seat_number.strip().upper()


async def _unique_confirmation_code(db: AsyncSession) -> str:
    for _ in range(MAX_CODE_ATTEMPTS):
        code = generate_confirmation_code()
        exists = await db.execute(select(Ticket.id).where(Ticket.confirmation_code == code).limit(1))
        if exists.first() is None:
            return code
    raise BookingError("Could not allocate a confirmation code, please retry", 503)


async def _assign_seats(db: AsyncSession, flight_id: int, fare_class_name: str, count: int) -> list[str]:
    """Lowest free seat identifiers of the form <class initial><NN>, e.g. E01, E02."""
    prefix = (fare_class_name[:1] or "S").upper()
    taken = await ticket_service.taken_seats(db, flight_id)
    seats = []
    n = 1
    while len(seats) < count:
        candidate = f"{prefix}{n:02d}"
        if candidate not in taken:
            seats.append(candidate)
        n += 1
    return seats


async def _validate(db: AsyncSession, request: BookingCreate) -> tuple[FareClassInfo, Optional[list[str]]]:
    passengers = request.passengers
    if not passengers:
        raise EmptyPassengerList()
    if len(passengers) > settings.MAX_PASSENGERS_PER_BOOKING:
        raise PassengerValidationError(
            f"At most {settings.MAX_PASSENGERS_PER_BOOKING} passengers per booking"
        )

    # An explicit empty list counts as supplied; only None means auto-assign
    seats = None
    if request.seat_numbers is not None:
        if len(request.seat_numbers) != len(passengers):
            raise MismatchedSeatCount(len(request.seat_numbers), len(passengers))
        seats = [_normalize_seat(s) for s in request.seat_numbers]
        if any(not s for s in seats):
            raise PassengerValidationError("Seat numbers must not be blank")
        for seat in seats:
            if len(seat) > SEAT_NUMBER_MAX_LENGTH:
                raise PassengerValidationError(
                    f"Seat number {seat!r} is longer than {SEAT_NUMBER_MAX_LENGTH} characters"
                )

    citizen_ids = set()
    for info in passengers:
        passenger_directory.validate_passenger_info(info)
        if info.citizen_id in citizen_ids:
            raise PassengerValidationError(
                f"Passenger {info.citizen_id} appears more than once in the booking"
            )
        citizen_ids.add(info.citizen_id)

    fare_info = await flight_catalog.get_fare_class(db, request.flight_id, request.fare_class_id)

    if seats is not None:
        seen = set()
        for seat in seats:
            if seat in seen or not await ticket_service.is_seat_available(db, request.flight_id, seat):
                raise SeatAlreadyTaken(seat)
            seen.add(seat)

    return fare_info, seats


async def _create_tickets(
    db: AsyncSession,
    request: BookingCreate,
    fare_info: FareClassInfo,
    seats: Optional[list[str]],
    booking_customer_id: Optional[int],
) -> list[Ticket]:
    passengers = [await passenger_directory.resolve(db, info) for info in request.passengers]

    # One fare snapshot for the whole booking
    fare = await seat_pool.peek_fare(db, request.flight_id, request.fare_class_id)
    confirmation_code = await _unique_confirmation_code(db)

    if seats is None:
        seats = await _assign_seats(db, request.flight_id, fare_info.fare_class_name, len(passengers))

    tickets = [
        Ticket(
            flight_id=request.flight_id,
            fare_class_id=request.fare_class_id,
            passenger_id=passenger.id,
            booking_customer_id=booking_customer_id,
            seat_number=seat,
            fare=fare,
            confirmation_code=confirmation_code,
            status=TicketStatus.HELD.value,
        )
        for passenger, seat in zip(passengers, seats)
    ]
    db.add_all(tickets)
    await db.flush()
    return tickets


async def _first_taken_seat(db: AsyncSession, flight_id: int, seats: list[str]) -> Optional[str]:
    for seat in seats:
        if not await ticket_service.is_seat_available(db, flight_id, seat):
            return seat
    return None


async def _create_with_retry(
    sessionmaker: async_sessionmaker[AsyncSession],
    request: BookingCreate,
    fare_info: FareClassInfo,
    seats: Optional[list[str]],
    booking_customer_id: Optional[int],
) -> list[Ticket]:
    max_attempts = max(settings.MAX_SEAT_ASSIGN_ATTEMPTS, 1)

    for attempt in range(1, max_attempts + 1):
        try:
            async with sessionmaker() as db:
                async with db.begin():
                    return await _create_tickets(db, request, fare_info, seats, booking_customer_id)
        except IntegrityError:
            if seats is not None:
                async with sessionmaker() as db:
                    taken = await _first_taken_seat(db, request.flight_id, seats)
                if taken is None:
                    raise
                raise SeatAlreadyTaken(taken)

            logger.info(
                "seat_assignment_retry",
                flight_id=request.flight_id,
                attempt=attempt,
                reason="seat_conflict",
            )

    raise BookingError("Booking failed due to high demand. Please try again.", 409)


async def _compensate(
    sessionmaker: async_sessionmaker[AsyncSession],
    flight_id: int,
    fare_class_id: int,
    count: int,
) -> None:
    async with sessionmaker() as db:
        async with db.begin():
            await seat_pool.release(db, flight_id, fare_class_id, count)
    compensating_releases.inc(count)
    logger.warning(
        "booking_compensated",
        flight_id=flight_id,
        fare_class_id=fare_class_id,
        seats_released=count,
    )


async def _book(
    sessionmaker: async_sessionmaker[AsyncSession],
    request: BookingCreate,
    booking_customer_id: Optional[int],
) -> list[Ticket]:
    async with sessionmaker() as db:
        fare_info, seats = await _validate(db, request)

    count = len(request.passengers)
    async with sessionmaker() as db:
        async with db.begin():
            await seat_pool.reserve(db, request.flight_id, request.fare_class_id, count)

    try:
        tickets = await _create_with_retry(sessionmaker, request, fare_info, seats, booking_customer_id)
    except (Exception, asyncio.CancelledError) as e:
        logger.warning(
            "booking_failed_after_reserve",
            flight_id=request.flight_id,
            fare_class_id=request.fare_class_id,
            error_type=type(e).__name__,
            error=str(e),
        )
        # The reservation is not cancellable; releasing it is the only rollback
        await asyncio.shield(
            _compensate(sessionmaker, request.flight_id, request.fare_class_id, count)
        )
        raise
    finally:
        await invalidate_availability(request.flight_id)

    logger.info(
        "booking_created",
        confirmation_code=tickets[0].confirmation_code,
        flight_id=request.flight_id,
        fare_class_id=request.fare_class_id,
        customer_id=booking_customer_id,
        seats=[t.seat_number for t in tickets],
    )
    return tickets


async def book_tickets(
    sessionmaker: async_sessionmaker[AsyncSession],
    request: BookingCreate,
    booking_customer_id: Optional[int] = None,
) -> list[Ticket]:
    """
    Hold one seat per passenger on (flight, fare class).

    Returns the HELD tickets, all sharing one confirmation code. On any
    error the seat pool is left exactly as it was.
    """
    start = time.perf_counter()
    try:
        tickets = await _book(sessionmaker, request, booking_customer_id)
    except InsufficientSeats:
        record_booking_attempt("insufficient_seats")
        raise
    except SeatAlreadyTaken:
        record_booking_attempt("seat_taken")
        raise
    except BookingError:
        record_booking_attempt("invalid")
        raise
    except Exception:
        record_booking_attempt("error")
        raise
    finally:
        booking_latency.observe(time.perf_counter() - start)

    record_booking_attempt("success")
    return tickets


async def get_booking(db: AsyncSession, confirmation_code: str) -> list[Ticket]:
    tickets = await ticket_service.list_by_confirmation_code(db, confirmation_code)
    if not tickets:
        raise BookingNotFound(confirmation_code)
    return tickets


async def cancel_ticket(sessionmaker: async_sessionmaker[AsyncSession], ticket_id: int) -> Ticket:
    """
    Customer cancel of a HELD ticket: cancel and release in one transaction.
    Replays are no-ops. Paid tickets need admin_cancel_paid_ticket.
    """
    released = False
    async with sessionmaker() as db:
        async with db.begin():
            ticket = await ticket_service.get_ticket(db, ticket_id)
            if ticket.status == TicketStatus.PAID.value:
                raise InvalidTransition(
                    f"Ticket {ticket_id} is paid; cancellation requires the refund flow"
                )
            try:
                await ticket_service.cancel_ticket(db, ticket_id, expected=TicketStatus.HELD)
            except AlreadyCanceled:
                logger.info("ticket_cancel_replay", ticket_id=ticket_id)
            else:
                await seat_pool.release(db, ticket.flight_id, ticket.fare_class_id, 1)
                released = True

        if released:
            await invalidate_availability(ticket.flight_id)
        return await ticket_service.get_ticket(db, ticket_id)


async def cancel_booking(
    sessionmaker: async_sessionmaker[AsyncSession],
    confirmation_code: str,
) -> CancelResult:
    """Cancel every HELD ticket of a booking, each with its own seat release."""
    async with sessionmaker() as db:
        tickets = await get_booking(db, confirmation_code)

    outcome = CancelResult(confirmation_code=confirmation_code)
    for ticket in tickets:
        if ticket.status != TicketStatus.HELD.value:
            continue
        try:
            async with sessionmaker() as db:
                async with db.begin():
                    await ticket_service.cancel_ticket(db, ticket.id, expected=TicketStatus.HELD)
                    outcome.seats_released += await seat_pool.release(
                        db, ticket.flight_id, ticket.fare_class_id, 1
                    )
        except (StaleTransition, AlreadyCanceled) as e:
            logger.info("ticket_cancel_skipped", ticket_id=ticket.id, reason=type(e).__name__)
            continue
        outcome.canceled_ticket_ids.append(ticket.id)

    if outcome.canceled_ticket_ids:
        await invalidate_availability(tickets[0].flight_id)

    logger.info(
        "booking_canceled",
        confirmation_code=confirmation_code,
        canceled=outcome.canceled_ticket_ids,
        seats_released=outcome.seats_released,
    )
    return outcome


async def admin_cancel_paid_ticket(
    sessionmaker: async_sessionmaker[AsyncSession],
    gateway: PaymentGateway,
    ticket_id: int,
) -> Ticket:
    """
    Administrative cancel. A HELD ticket is canceled and its seat released;
    a PAID ticket is refunded first and its seat stays out of the pool.

    The ticket row stays locked from the status read until the cancel
    commits, with the refund in between. A concurrent admin cancel waits on
    the lock and then finds the ticket CANCELED, so money moves once. A
    failed refund rolls the transaction back and the ticket stays PAID.
    """
    released = False
    async with sessionmaker() as db:
        async with db.begin():
            ticket = await ticket_service.get_ticket(db, ticket_id, for_update=True)
            prior = TicketStatus(ticket.status)

            if prior == TicketStatus.CANCELED:
                logger.info("ticket_cancel_replay", ticket_id=ticket_id)
                return ticket

            if prior == TicketStatus.HELD:
                await ticket_service.cancel_ticket(db, ticket_id, expected=TicketStatus.HELD)
                await seat_pool.release(db, ticket.flight_id, ticket.fare_class_id, 1)
                released = True
            else:
                await gateway.refund(
                    ticket.gateway_order_id or ticket.confirmation_code, Decimal(ticket.fare)
                )
                await ticket_service.cancel_ticket(db, ticket_id, expected=TicketStatus.PAID)
                logger.info("paid_ticket_canceled", ticket_id=ticket_id, refunded=str(ticket.fare))

        if released:
            await invalidate_availability(ticket.flight_id)
        return await ticket_service.get_ticket(db, ticket_id)
