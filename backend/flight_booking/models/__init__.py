from flight_booking.models.flight import Flight, FareClass
from flight_booking.models.seat_pool import SeatPool
from flight_booking.models.passenger import Passenger
from flight_booking.models.ticket import Ticket, TicketStatus
from flight_booking.models.parameter import Parameter

__all__ = [
    "Flight", "FareClass", "SeatPool", "Passenger",
    "Ticket", "TicketStatus", "Parameter",
]
