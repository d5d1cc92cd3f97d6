"""
Expiry reclaimer: periodic sweep that cancels unpaid holds close to departure.

Each tick:
  1. cutoff = now + max_booking_hold_duration hours (from the parameters row)
  2. pick HELD tickets whose flight departs at or before the cutoff and that
     are older than the grace window, oldest id first, one batch per tick
  3. per ticket, in its own transaction: cancel(expected=HELD), release(1)

The expected=HELD precondition is what makes racing a payment callback
safe: if the ticket became PAID after we selected it, the cancel raises
StaleTransition and the seat is not released. The same check makes it
safe to run the sweep on several replicas at once.

A failure on one ticket is logged and never aborts the batch. The ticket
sits out of later sweeps until the failure backoff has passed, so a set of
persistently failing tickets cannot occupy every batch.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from flight_booking.models.flight import Flight
from flight_booking.models.ticket import Ticket, TicketStatus
from flight_booking.services import seat_pool, ticket_service
from flight_booking.services.parameter_service import get_parameters
from flight_booking.services.cache_service import invalidate_availability
from flight_booking.core.exceptions import AlreadyCanceled, StaleTransition
from flight_booking.core.metrics import reclaim_sweep_duration, record_reclaim
from flight_booking.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ReclaimReport:
    cutoff: datetime
    examined: int = 0
    canceled: list[int] = field(default_factory=list)
    stale: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)
    seats_released: int = 0


class ExpiryReclaimer:
    def __init__(
        self,
        sessionmaker: async_sessionmaker[AsyncSession],
        interval_seconds: float = 60.0,
        batch_size: int = 500,
        grace_minutes: int = 0,
        failure_backoff_seconds: float = 300.0,
    ):
        self.sessionmaker = sessionmaker
        self.interval_seconds = interval_seconds
        self.batch_size = batch_size
        self.grace = timedelta(minutes=grace_minutes)
        self.failure_backoff = timedelta(seconds=failure_backoff_seconds)
        # ticket id -> time before which the sweep leaves it alone
        self._backoff_until: dict[int, datetime] = {}
        self._task: Optional[asyncio.Task] = None
        self._stopping = asyncio.Event()

    async def _expired_holds(self, now: datetime, cutoff: datetime) -> list[tuple[int, int, int]]:
        query = (
            select(Ticket.id, Ticket.flight_id, Ticket.fare_class_id)
            .join(Flight, Flight.id == Ticket.flight_id)
            .where(
                Ticket.status == TicketStatus.HELD.value,
                Ticket.deleted_at.is_(None),
                Flight.departure_time <= cutoff,
                Ticket.created_at <= now - self.grace,
            )
            .order_by(Ticket.id)
            .limit(self.batch_size)
        )
        # Recently failing tickets must not fill every batch
        if self._backoff_until:
            query = query.where(Ticket.id.notin_(list(self._backoff_until)))

        async with self.sessionmaker() as db:
            result = await db.execute(query)
            return [tuple(row) for row in result.all()]

    async def _reclaim(self, ticket_id: int, flight_id: int, fare_class_id: int) -> int:
        async with self.sessionmaker() as db:
            async with db.begin():
                await ticket_service.cancel_ticket(db, ticket_id, expected=TicketStatus.HELD)
                return await seat_pool.release(db, flight_id, fare_class_id, 1)

    async def run_once(self, now: Optional[datetime] = None) -> ReclaimReport:
        """One sweep. Safe to call directly (tests, admin tooling)."""
        start = time.perf_counter()
        now = now or datetime.now(timezone.utc)

        async with self.sessionmaker() as db:
            params = await get_parameters(db)
        cutoff = now + timedelta(hours=params.max_booking_hold_duration)

        self._backoff_until = {t: until for t, until in self._backoff_until.items() if until > now}

        report = ReclaimReport(cutoff=cutoff)
        candidates = await self._expired_holds(now, cutoff)
        report.examined = len(candidates)

        touched_flights = set()
        for ticket_id, flight_id, fare_class_id in candidates:
            try:
                report.seats_released += await self._reclaim(ticket_id, flight_id, fare_class_id)
            except (StaleTransition, AlreadyCanceled) as e:
                # Paid or canceled since we selected it
                logger.info("ticket_reclaim_skipped", ticket_id=ticket_id, reason=type(e).__name__)
                report.stale.append(ticket_id)
                record_reclaim("stale")
            except Exception as e:
                logger.error(
                    "ticket_reclaim_failed",
                    ticket_id=ticket_id,
                    flight_id=flight_id,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                report.failed.append(ticket_id)
                self._backoff_until[ticket_id] = now + self.failure_backoff
                record_reclaim("error")
            else:
                report.canceled.append(ticket_id)
                touched_flights.add(flight_id)
                record_reclaim("canceled")

        for flight_id in touched_flights:
            await invalidate_availability(flight_id)

        reclaim_sweep_duration.observe(time.perf_counter() - start)
        if report.examined:
            logger.info(
                "reclaim_sweep_completed",
                cutoff=cutoff.isoformat(),
                examined=report.examined,
                canceled=len(report.canceled),
                stale=len(report.stale),
                failed=len(report.failed),
                seats_released=report.seats_released,
            )
        return report

    async def _loop(self) -> None:
        structlog.contextvars.bind_contextvars(component="expiry_reclaimer")
        logger.info("reclaimer_started", interval_seconds=self.interval_seconds)
        while not self._stopping.is_set():
            try:
                await self.run_once()
            except Exception as e:
                logger.error("reclaim_sweep_failed", error_type=type(e).__name__, error=str(e))

            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass
        logger.info("reclaimer_stopped")

    def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._stopping.clear()
        self._task = asyncio.create_task(self._loop(), name="expiry-reclaimer")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stopping.set()
        await self._task
        self._task = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()
