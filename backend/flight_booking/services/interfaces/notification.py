"""
Notification interface for booking lifecycle messages.
"""

from abc import ABC, abstractmethod
from typing import Sequence

from flight_booking.models.ticket import Ticket


class NotificationService(ABC):
    """
    Fire-and-forget delivery. Callers log and swallow failures: a lost
    "booking confirmed" message must never undo a payment.
    """

    @abstractmethod
    async def booking_confirmed(self, confirmation_code: str, tickets: Sequence[Ticket]) -> None:
        pass
