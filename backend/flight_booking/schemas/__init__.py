from flight_booking.schemas.booking import (
    PassengerInfo, BookingCreate, TicketResponse, BookingResponse, BookingCancelResponse,
    PassengerResponse, PassengerContactUpdate,
)
from flight_booking.schemas.payment import PaymentOrderResponse, GatewayCallback, PaymentResultResponse
from flight_booking.schemas.inventory import SeatPoolCreate, SeatPoolResponse, AvailabilityResponse
from flight_booking.schemas.parameter import ParameterResponse, ParameterUpdate

__all__ = [
    "PassengerInfo", "BookingCreate", "TicketResponse", "BookingResponse", "BookingCancelResponse",
    "PassengerResponse", "PassengerContactUpdate",
    "PaymentOrderResponse", "GatewayCallback", "PaymentResultResponse",
    "SeatPoolCreate", "SeatPoolResponse", "AvailabilityResponse",
    "ParameterResponse", "ParameterUpdate",
]
