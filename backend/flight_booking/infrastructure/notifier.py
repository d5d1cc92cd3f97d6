"""
Notification adapters.
"""

from typing import Sequence

import httpx

from flight_booking.services.interfaces.notification import NotificationService
from flight_booking.models.ticket import Ticket
from flight_booking.core.logging import get_logger

logger = get_logger(__name__)


class LoggingNotificationService(NotificationService):
    async def booking_confirmed(self, confirmation_code: str, tickets: Sequence[Ticket]) -> None:
        logger.info(
            "booking_confirmed_notification",
            confirmation_code=confirmation_code,
            ticket_ids=[t.id for t in tickets],
        )


class WebhookNotificationService(NotificationService):
    """Posts booking events to the mailer's webhook."""

    def __init__(self, url: str, timeout: float = 5.0):
        self.url = url
        self.timeout = timeout

    async def booking_confirmed(self, confirmation_code: str, tickets: Sequence[Ticket]) -> None:
        payload = {
            "event": "booking_confirmed",
            "confirmation_code": confirmation_code,
            "tickets": [
                {
                    "ticket_id": t.id,
                    "passenger_id": t.passenger_id,
                    "flight_id": t.flight_id,
                    "seat_number": t.seat_number,
                    "fare": str(t.fare),
                }
                for t in tickets
            ],
        }
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(self.url, json=payload)
            response.raise_for_status()
