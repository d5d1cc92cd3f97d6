"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from flight_booking.api.routes import bookings, tickets, payments, flights, parameters, passengers

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(bookings.router)
api_router.include_router(tickets.router)
api_router.include_router(payments.router)
api_router.include_router(flights.router)
api_router.include_router(parameters.router)
api_router.include_router(passengers.router)
