"""
Ticket: one seat for one passenger, with a small status state machine.

    HELD --pay--> PAID
    HELD --cancel/expire--> CANCELED   (seat goes back to the pool)
    PAID --admin cancel--> CANCELED    (seat stays out; refund flow settles money)

Key design decisions:
- Status changes are conditional UPDATEs on the expected prior status, so two
  reconciliation paths racing on one ticket cannot both win
- Partial unique index on (flight_id, seat_number) over non-canceled rows keeps
  seat numbers unique per flight without blocking re-sale of canceled seats
- `fare` is a snapshot of the pool fare at booking time and is never rewritten
- Tickets are never hard-deleted; cancel stamps `deleted_at`
"""

import enum

from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime, ForeignKey, Index, CheckConstraint, text,
)

from flight_booking.db.base import Base, TimestampMixin


SEAT_NUMBER_MAX_LENGTH = 7


class TicketStatus(str, enum.Enum):
    HELD = "held"
    PAID = "paid"
    CANCELED = "canceled"


ALLOWED_TRANSITIONS = {
    TicketStatus.HELD: {TicketStatus.PAID, TicketStatus.CANCELED},
    TicketStatus.PAID: {TicketStatus.CANCELED},
    TicketStatus.CANCELED: set(),
}


def can_transition(current: TicketStatus, target: TicketStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[TicketStatus(current)]


class Ticket(Base, TimestampMixin):
    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True, index=True)
    flight_id = Column(Integer, ForeignKey("flights.id"), nullable=False, index=True)
    fare_class_id = Column(Integer, ForeignKey("fare_classes.id"), nullable=False)
    passenger_id = Column(Integer, ForeignKey("passengers.id"), nullable=False, index=True)
    booking_customer_id = Column(Integer, nullable=True, index=True)  # NULL = guest booking
    seat_number = Column(String(SEAT_NUMBER_MAX_LENGTH), nullable=False)
    fare = Column(Numeric(10, 2), nullable=False)
    confirmation_code = Column(String(32), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=TicketStatus.HELD.value)
    payment_time = Column(DateTime(timezone=True), nullable=True)
    gateway_order_id = Column(String(100), nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("status IN ('held', 'paid', 'canceled')", name="check_ticket_status"),
        CheckConstraint("fare >= 0", name="check_ticket_fare_non_negative"),
        Index(
            "uq_tickets_flight_seat_active",
            "flight_id",
            "seat_number",
            unique=True,
            postgresql_where=text("status <> 'canceled'"),
            sqlite_where=text("status <> 'canceled'"),
        ),
        # Expiry sweep: HELD tickets joined against departures
        Index("ix_tickets_status_flight", "status", "flight_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Ticket(id={self.id}, flight={self.flight_id}, seat={self.seat_number}, "
            f"status={self.status}, code={self.confirmation_code})>"
        )
