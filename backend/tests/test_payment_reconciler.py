"""
Tests for payment reconciliation: idempotent confirms, failed payments and
the race against the expiry sweep.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from flight_booking.core.exceptions import BookingNotFound, InvalidTransition
from flight_booking.models.ticket import TicketStatus
from flight_booking.schemas.booking import BookingCreate
from flight_booking.services import ticket_service
from flight_booking.services.booking_service import book_tickets, cancel_ticket
from flight_booking.services.expiry_service import ExpiryReclaimer
from flight_booking.services.payment_service import (
    confirm_payment,
    create_payment_order,
    decode_order_id,
    encode_order_id,
    fail_payment,
    handle_gateway_callback,
)

from conftest import FARE_CLASS_ID, FLIGHT_ID, passenger


async def _book(sessionmaker, *numbers, seats=None):
    return await book_tickets(
        sessionmaker,
        BookingCreate(
            flight_id=FLIGHT_ID,
            fare_class_id=FARE_CLASS_ID,
            passengers=[passenger(n) for n in numbers],
            seat_numbers=seats,
        ),
    )


async def _statuses(sessionmaker, code):
    async with sessionmaker() as db:
        return [t.status for t in await ticket_service.list_by_confirmation_code(db, code)]


def test_order_id_maps_back_to_confirmation_code():
    now = datetime(2026, 10, 19, 14, 5, 9, tzinfo=timezone.utc)
    order_id = encode_order_id("FMS-20261019-AB12", now)

    assert order_id.startswith("140509")
    assert order_id[6:] == "FMS-20261019-AB12".encode("utf-8").hex()
    assert decode_order_id(order_id) == "FMS-20261019-AB12"


def test_order_id_is_capped_at_gateway_limit():
    assert len(encode_order_id("X" * 80)) == 100


@pytest.mark.parametrize("order_id", ["FMS-20261019-AB12", "12345", "123456zz", "123456abc"])
def test_unrecognised_order_id_passes_through(order_id):
    assert decode_order_id(order_id) == order_id


@pytest.mark.asyncio
async def test_confirm_pays_every_held_ticket(sessionmaker, test_flight, notifier, read_pool):
    tickets = await _book(sessionmaker, 1, 2, seats=["1A", "1B"])
    code = tickets[0].confirmation_code

    result = await confirm_payment(sessionmaker, code, "order-1", notifier)

    assert sorted(result.paid) == sorted(t.id for t in tickets)
    assert result.status == "paid"
    assert await _statuses(sessionmaker, code) == ["paid", "paid"]
    async with sessionmaker() as db:
        paid = await ticket_service.list_by_confirmation_code(db, code)
    assert all(t.payment_time is not None for t in paid)
    assert (await read_pool()).remaining_seats == 48
    assert notifier.calls == [(code, sorted(t.id for t in tickets))]


@pytest.mark.asyncio
async def test_confirm_replay_is_a_no_op(sessionmaker, test_flight, notifier, read_pool):
    tickets = await _book(sessionmaker, 1, 2)
    code = tickets[0].confirmation_code
    await confirm_payment(sessionmaker, code, "order-1", notifier)

    replay = await confirm_payment(sessionmaker, code, "order-1", notifier)

    assert replay.paid == []
    assert sorted(replay.already_paid) == sorted(t.id for t in tickets)
    assert replay.status == "paid"
    assert await _statuses(sessionmaker, code) == ["paid", "paid"]
    assert (await read_pool()).remaining_seats == 48
    assert len(notifier.calls) == 1


@pytest.mark.asyncio
async def test_concurrent_duplicate_callbacks(sessionmaker, test_flight, notifier, read_pool):
    tickets = await _book(sessionmaker, 1, 2)
    code = tickets[0].confirmation_code

    first, second = await asyncio.gather(
        confirm_payment(sessionmaker, code, "order-1", notifier),
        confirm_payment(sessionmaker, code, "order-1", notifier),
    )

    assert sorted(first.paid + second.paid) == sorted(t.id for t in tickets)
    assert await _statuses(sessionmaker, code) == ["paid", "paid"]
    assert (await read_pool()).remaining_seats == 48


@pytest.mark.asyncio
async def test_confirm_skips_canceled_tickets(sessionmaker, test_flight, notifier):
    tickets = await _book(sessionmaker, 1, 2)
    await cancel_ticket(sessionmaker, tickets[0].id)

    result = await confirm_payment(sessionmaker, tickets[0].confirmation_code, "order-1", notifier)

    assert result.skipped == [tickets[0].id]
    assert result.paid == [tickets[1].id]
    assert result.status == "partially_paid"


@pytest.mark.asyncio
async def test_notification_failure_does_not_undo_payment(sessionmaker, test_flight, notifier):
    tickets = await _book(sessionmaker, 1)
    notifier.fail = True

    result = await confirm_payment(sessionmaker, tickets[0].confirmation_code, "order-1", notifier)

    assert result.paid == [tickets[0].id]
    assert await _statuses(sessionmaker, tickets[0].confirmation_code) == ["paid"]


@pytest.mark.asyncio
async def test_confirm_unknown_code(sessionmaker, test_flight, notifier):
    with pytest.raises(BookingNotFound):
        await confirm_payment(sessionmaker, "FMS-20261019-NONE", "order-1", notifier)


@pytest.mark.asyncio
async def test_failed_payment_leaves_tickets_held(sessionmaker, test_flight, read_pool):
    tickets = await _book(sessionmaker, 1)

    result = await fail_payment(sessionmaker, tickets[0].confirmation_code, "card declined")

    assert result.paid == []
    assert await _statuses(sessionmaker, tickets[0].confirmation_code) == ["held"]
    assert (await read_pool()).remaining_seats == 49


@pytest.mark.asyncio
async def test_payment_order_totals_held_fares(sessionmaker, test_flight, notifier):
    tickets = await _book(sessionmaker, 1, 2, 3)
    code = tickets[0].confirmation_code
    await cancel_ticket(sessionmaker, tickets[2].id)

    async with sessionmaker() as db:
        order = await create_payment_order(db, code)

    assert order.amount == Decimal("300.00")
    assert decode_order_id(order.order_id) == code

    await confirm_payment(sessionmaker, code, order.order_id, notifier)
    async with sessionmaker() as db:
        with pytest.raises(InvalidTransition):
            await create_payment_order(db, code)


@pytest.mark.asyncio
async def test_gateway_callback_dispatch(sessionmaker, test_flight, notifier):
    tickets = await _book(sessionmaker, 1)
    code = tickets[0].confirmation_code
    order_id = encode_order_id(code)

    failed = await handle_gateway_callback(sessionmaker, notifier, order_id, success=False, reason="declined")
    assert failed.paid == []
    assert await _statuses(sessionmaker, code) == ["held"]

    confirmed = await handle_gateway_callback(sessionmaker, notifier, order_id, success=True, transaction_id="tx-1")
    assert confirmed.paid == [tickets[0].id]
    async with sessionmaker() as db:
        ticket = await ticket_service.get_ticket(db, tickets[0].id)
    assert ticket.gateway_order_id == order_id


@pytest.mark.asyncio
async def test_payment_and_expiry_race_ends_in_one_terminal_state(
    sessionmaker, make_flight, notifier, read_pool, read_ticket
):
    await make_flight(departs_in=timedelta(hours=3))
    tickets = await _book(sessionmaker, 1)
    reclaimer = ExpiryReclaimer(sessionmaker)

    await asyncio.gather(
        confirm_payment(sessionmaker, tickets[0].confirmation_code, "order-1", notifier),
        reclaimer.run_once(),
    )

    ticket = await read_ticket(tickets[0].id)
    remaining = (await read_pool()).remaining_seats
    if ticket.status == TicketStatus.PAID.value:
        assert remaining == 49
        assert ticket.deleted_at is None
    else:
        assert ticket.status == TicketStatus.CANCELED.value
        assert remaining == 50
        assert ticket.payment_time is None


@pytest.mark.asyncio
async def test_expiry_losing_to_payment_does_not_release(
    sessionmaker, make_flight, notifier, read_pool, read_ticket, monkeypatch
):
    """The sweep selected the ticket while HELD; payment lands before the cancel."""
    await make_flight(departs_in=timedelta(hours=3))
    tickets = await _book(sessionmaker, 1)
    reclaimer = ExpiryReclaimer(sessionmaker)

    real_select = reclaimer._expired_holds

    async def select_then_pay(now, cutoff):
        candidates = await real_select(now, cutoff)
        await confirm_payment(sessionmaker, tickets[0].confirmation_code, "order-1", notifier)
        return candidates

    monkeypatch.setattr(reclaimer, "_expired_holds", select_then_pay)

    report = await reclaimer.run_once()

    assert report.stale == [tickets[0].id]
    assert report.canceled == []
    assert (await read_ticket(tickets[0].id)).status == TicketStatus.PAID.value
    assert (await read_pool()).remaining_seats == 49


@pytest.mark.asyncio
async def test_payment_after_expiry_is_skipped(sessionmaker, make_flight, notifier, read_pool):
    await make_flight(departs_in=timedelta(hours=3))
    tickets = await _book(sessionmaker, 1)
    await ExpiryReclaimer(sessionmaker).run_once()

    result = await confirm_payment(sessionmaker, tickets[0].confirmation_code, "order-1", notifier)

    assert result.skipped == [tickets[0].id]
    assert result.status == "not_paid"
    assert notifier.calls == []
    assert (await read_pool()).remaining_seats == 50
