"""
Domain error taxonomy for booking, payment and reclaim flows.

Services raise these; the API layer maps them to HTTP responses through a
single exception handler (see register_exception_handlers). Callers that
need to tell "sold out" from "seat conflict" from "bad passenger data"
switch on the class, never on the message.
"""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class BookingError(Exception):
    """Base class for every domain failure."""

    status_code: int = 400

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class InsufficientSeats(BookingError):
    status_code = 409

    def __init__(self, requested: int, available: int) -> None:
        self.requested = requested
        self.available = available
        super().__init__(
            f"Not enough seats. Requested: {requested}, Available: {available}"
        )


class SeatAlreadyTaken(BookingError):
    status_code = 409

    def __init__(self, seat_number: str) -> None:
        self.seat_number = seat_number
        super().__init__(f"Seat {seat_number} is already taken")


class MismatchedSeatCount(BookingError):
    status_code = 422

    def __init__(self, seats: int, passengers: int) -> None:
        super().__init__(
            f"Number of seat numbers ({seats}) must match number of passengers ({passengers})"
        )


class EmptyPassengerList(BookingError):
    status_code = 422

    def __init__(self) -> None:
        super().__init__("At least one passenger is required")


class PassengerValidationError(BookingError):
    status_code = 422


class FlightOrFareClassNotFound(BookingError):
    status_code = 404


class FlightNotFound(FlightOrFareClassNotFound):
    def __init__(self, flight_id: int) -> None:
        self.flight_id = flight_id
        super().__init__(f"Flight {flight_id} not found")


class FareClassNotFound(FlightOrFareClassNotFound):
    def __init__(self, flight_id: int, fare_class_id: int) -> None:
        self.flight_id = flight_id
        self.fare_class_id = fare_class_id
        super().__init__(
            f"Fare class {fare_class_id} is not offered on flight {flight_id}"
        )


class TicketNotFound(BookingError):
    status_code = 404

    def __init__(self, ticket_id: int) -> None:
        self.ticket_id = ticket_id
        super().__init__(f"Ticket {ticket_id} not found")


class BookingNotFound(BookingError):
    status_code = 404

    def __init__(self, confirmation_code: str) -> None:
        self.confirmation_code = confirmation_code
        super().__init__(f"No booking found for confirmation code {confirmation_code}")


class InvalidTransition(BookingError):
    status_code = 409


class AlreadyPaid(BookingError):
    """Payment replay. Reconcilers treat this as success."""

    status_code = 200


class AlreadyCanceled(BookingError):
    """Cancel replay. Cancel paths treat this as a no-op."""

    status_code = 200


class StaleTransition(BookingError):
    """Another process moved the ticket first; skip, do not retry in this pass."""

    status_code = 409


class PaymentGatewayError(BookingError):
    status_code = 502


async def booking_error_handler(request: Request, exc: Exception) -> JSONResponse:
    error = exc if isinstance(exc, BookingError) else BookingError(str(exc), 500)
    return JSONResponse(
        status_code=error.status_code,
        content={"detail": error.message, "error": type(error).__name__},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BookingError, booking_error_handler)
