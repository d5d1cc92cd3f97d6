"""
Pytest fixtures for test database, client, and seeded inventory.

Each test gets its own SQLite file. Every transaction opens with
BEGIN IMMEDIATE, which serializes writers the way PostgreSQL row locks do,
so concurrency tests exercise the same conditional updates as production.
"""

import asyncio
import os
from datetime import datetime, timezone, timedelta
from decimal import Decimal
from typing import AsyncGenerator

# Settings are read at import time; no Redis and no background sweep in tests
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("RECLAIM_ENABLED", "false")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from flight_booking.main import app
from flight_booking.db.base import Base
from flight_booking.db.session import get_db, get_sessionmaker
from flight_booking.core.exceptions import PaymentGatewayError
from flight_booking.core.security import create_access_token
from flight_booking.models.flight import Flight, FareClass
from flight_booking.models.seat_pool import SeatPool
from flight_booking.models.ticket import Ticket
from flight_booking.services.interfaces import NotificationService, PaymentGateway
from flight_booking.services.integration_factory import get_notification_service, get_payment_gateway

FLIGHT_ID = 10
FARE_CLASS_ID = 2
FARE = Decimal("150.00")


class RecordingNotifier(NotificationService):
    def __init__(self):
        self.calls = []
        self.fail = False

    async def booking_confirmed(self, confirmation_code, tickets):
        self.calls.append((confirmation_code, sorted(t.id for t in tickets)))
        if self.fail:
            raise RuntimeError("mailer unavailable")


class RecordingGateway(PaymentGateway):
    def __init__(self):
        self.refunds = []
        self.fail = False

    async def refund(self, order_id, amount):
        if self.fail:
            raise PaymentGatewayError(f"Refund for order {order_id} failed: gateway timeout")
        # Yield like a real network call so concurrent callers can interleave
        await asyncio.sleep(0)
        self.refunds.append((order_id, amount))


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    """Fresh SQLite file per test, tables created from the models."""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'booking.db'}",
        connect_args={"timeout": 30},
    )

    @event.listens_for(test_engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(test_engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def sessionmaker(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def gateway() -> RecordingGateway:
    return RecordingGateway()


@pytest_asyncio.fixture
async def make_flight(sessionmaker):
    """Factory: flight + fare class + seat pool, committed."""

    async def _make(
        flight_id: int = FLIGHT_ID,
        fare_class_id: int = FARE_CLASS_ID,
        total_seats: int = 50,
        remaining_seats: int = None,
        fare: Decimal = FARE,
        departs_in: timedelta = timedelta(days=30),
        fare_class_name: str = "Economy",
    ) -> Flight:
        async with sessionmaker() as db:
            async with db.begin():
                flight = Flight(
                    id=flight_id,
                    flight_code=f"FM{flight_id:04d}",
                    departure_time=datetime.now(timezone.utc) + departs_in,
                )
                db.add(flight)
                if await db.get(FareClass, fare_class_id) is None:
                    db.add(FareClass(id=fare_class_id, name=fare_class_name))
                await db.flush()
                db.add(
                    SeatPool(
                        flight_id=flight_id,
                        fare_class_id=fare_class_id,
                        total_seats=total_seats,
                        remaining_seats=total_seats if remaining_seats is None else remaining_seats,
                        fare_per_seat=fare,
                    )
                )
        return flight

    return _make


@pytest_asyncio.fixture
async def test_flight(make_flight) -> Flight:
    """Flight 10, Economy (class 2) at 150.00, 50 seats, departing in 30 days."""
    return await make_flight()


@pytest.fixture
def read_pool(sessionmaker):
    async def _read(flight_id: int = FLIGHT_ID, fare_class_id: int = FARE_CLASS_ID) -> SeatPool:
        async with sessionmaker() as db:
            return await db.get(SeatPool, (flight_id, fare_class_id))

    return _read


@pytest.fixture
def read_ticket(sessionmaker):
    async def _read(ticket_id: int) -> Ticket:
        async with sessionmaker() as db:
            return await db.get(Ticket, ticket_id)

    return _read


@pytest.fixture
def count_tickets(sessionmaker):
    async def _count(flight_id: int = FLIGHT_ID) -> int:
        async with sessionmaker() as db:
            result = await db.execute(select(Ticket.id).where(Ticket.flight_id == flight_id))
            return len(result.all())

    return _count


def passenger(n: int, **overrides) -> dict:
    data = {
        "full_name": f"Passenger {n}",
        "citizen_id": f"C{n:06d}",
        "email": f"p{n}@example.com",
    }
    data.update(overrides)
    return data


@pytest.fixture
def passengers():
    """Factory for passenger payloads with distinct citizen ids."""
    return passenger


@pytest_asyncio.fixture(scope="function")
async def client(sessionmaker, notifier, gateway) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the test database and recording integrations."""

    async def override_get_db():
        async with sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sessionmaker] = lambda: sessionmaker
    app.dependency_overrides[get_notification_service] = lambda: notifier
    app.dependency_overrides[get_payment_gateway] = lambda: gateway

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    """Bearer token for booking customer 42."""
    token = create_access_token(data={"sub": "42"})
    return {"Authorization": f"Bearer {token}"}
