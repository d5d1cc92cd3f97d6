"""
Payment reconciliation against gateway callbacks.

The gateway delivers confirm/fail callbacks at least once, keyed by an
order id we handed it. Everything here is safe to replay:

  - confirm: each HELD ticket of the booking moves to PAID in its own
    transaction; tickets already PAID count as success, tickets canceled
    meanwhile (expiry sweep won the race) are skipped and logged.
  - fail: nothing changes. Tickets stay HELD until the expiry sweep takes
    them, so a late success callback can still land.

Payment never touches the seat pool; seats were taken at booking time.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from flight_booking.models.ticket import Ticket, TicketStatus
from flight_booking.services import ticket_service
from flight_booking.services.booking_service import get_booking
from flight_booking.services.interfaces import NotificationService
from flight_booking.core.exceptions import (
    AlreadyPaid,
    InvalidTransition,
    StaleTransition,
)
from flight_booking.core.metrics import record_payment_confirmation
from flight_booking.core.logging import get_logger

logger = get_logger(__name__)

TIME_PREFIX_LENGTH = 6
MAX_ORDER_ID_LENGTH = 100


@dataclass
class PaymentOrder:
    confirmation_code: str
    order_id: str
    amount: Decimal


@dataclass
class PaymentResult:
    confirmation_code: str
    paid: list[int] = field(default_factory=list)
    already_paid: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)

    @property
    def status(self) -> str:
        if self.paid or self.already_paid:
            return "partially_paid" if self.skipped else "paid"
        return "not_paid"


def encode_order_id(confirmation_code: str, now: Optional[datetime] = None) -> str:
    """HHMMSS + hex(utf-8 code), at most 100 characters (gateway limit)."""
    now = now or datetime.now(timezone.utc)
    order_id = now.strftime("%H%M%S") + confirmation_code.encode("utf-8").hex()
    return order_id[:MAX_ORDER_ID_LENGTH]


def decode_order_id(order_id: str) -> str:
    """Confirmation code behind an order id; anything else comes back unchanged."""
    prefix, body = order_id[:TIME_PREFIX_LENGTH], order_id[TIME_PREFIX_LENGTH:]
    if not prefix.isdigit() or len(prefix) < TIME_PREFIX_LENGTH or not body or len(body) % 2:
        return order_id
    try:
        return bytes.fromhex(body).decode("utf-8")
    except ValueError:
        return order_id


async def create_payment_order(db: AsyncSession, confirmation_code: str) -> PaymentOrder:
    """Order id and amount due for the HELD tickets of a booking."""
    tickets = await get_booking(db, confirmation_code)
    held = [t for t in tickets if t.status == TicketStatus.HELD.value]
    if not held:
        raise InvalidTransition(f"Booking {confirmation_code} has nothing left to pay")

    order = PaymentOrder(
        confirmation_code=confirmation_code,
        order_id=encode_order_id(confirmation_code),
        amount=sum((Decimal(t.fare) for t in held), Decimal("0")),
    )
    logger.info(
        "payment_order_created",
        confirmation_code=confirmation_code,
        order_id=order.order_id,
        amount=str(order.amount),
        tickets=len(held),
    )
    return order


async def _notify(notifier: NotificationService, confirmation_code: str, tickets: list[Ticket]) -> None:
    try:
        await notifier.booking_confirmed(confirmation_code, tickets)
    except Exception as e:
        # Best effort; the payment stands regardless
        logger.warning(
            "booking_notification_failed",
            confirmation_code=confirmation_code,
            error_type=type(e).__name__,
            error=str(e),
        )


async def confirm_payment(
    sessionmaker: async_sessionmaker[AsyncSession],
    confirmation_code: str,
    gateway_order_id: Optional[str],
    notifier: NotificationService,
) -> PaymentResult:
    async with sessionmaker() as db:
        tickets = await get_booking(db, confirmation_code)

    result = PaymentResult(confirmation_code=confirmation_code)
    for ticket in tickets:
        if ticket.status == TicketStatus.PAID.value:
            result.already_paid.append(ticket.id)
            record_payment_confirmation("already_paid")
            continue
        if ticket.status != TicketStatus.HELD.value:
            result.skipped.append(ticket.id)
            record_payment_confirmation("stale")
            continue

        try:
            async with sessionmaker() as db:
                async with db.begin():
                    await ticket_service.pay_ticket(db, ticket.id, gateway_order_id)
        except AlreadyPaid:
            result.already_paid.append(ticket.id)
            record_payment_confirmation("already_paid")
        except (InvalidTransition, StaleTransition) as e:
            logger.warning(
                "ticket_payment_skipped",
                ticket_id=ticket.id,
                confirmation_code=confirmation_code,
                reason=e.message,
            )
            result.skipped.append(ticket.id)
            record_payment_confirmation("stale")
        else:
            result.paid.append(ticket.id)
            record_payment_confirmation("paid")

    if result.paid:
        async with sessionmaker() as db:
            paid_tickets = await ticket_service.list_by_confirmation_code(db, confirmation_code)
        await _notify(notifier, confirmation_code, [t for t in paid_tickets if t.id in result.paid])

    logger.info(
        "payment_confirmed",
        confirmation_code=confirmation_code,
        order_id=gateway_order_id,
        paid=result.paid,
        already_paid=result.already_paid,
        skipped=result.skipped,
    )
    return result


async def fail_payment(
    sessionmaker: async_sessionmaker[AsyncSession],
    confirmation_code: str,
    reason: Optional[str] = None,
) -> PaymentResult:
    """Record a failed payment. Tickets stay HELD for the expiry sweep."""
    async with sessionmaker() as db:
        tickets = await get_booking(db, confirmation_code)

    record_payment_confirmation("failed")
    logger.warning(
        "payment_failed",
        confirmation_code=confirmation_code,
        reason=reason,
        held=[t.id for t in tickets if t.status == TicketStatus.HELD.value],
    )
    return PaymentResult(confirmation_code=confirmation_code)


async def handle_gateway_callback(
    sessionmaker: async_sessionmaker[AsyncSession],
    notifier: NotificationService,
    order_id: str,
    success: bool,
    transaction_id: Optional[str] = None,
    reason: Optional[str] = None,
) -> PaymentResult:
    confirmation_code = decode_order_id(order_id)
    logger.info(
        "gateway_callback_received",
        order_id=order_id,
        confirmation_code=confirmation_code,
        success=success,
        transaction_id=transaction_id,
    )
    if success:
        return await confirm_payment(sessionmaker, confirmation_code, order_id, notifier)
    return await fail_payment(sessionmaker, confirmation_code, reason)
