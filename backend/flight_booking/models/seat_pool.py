"""
Seat inventory per (flight, fare class).

Key design decisions:
- `remaining_seats` is the contended counter; it is only ever changed by a
  conditional UPDATE at the storage boundary, never read-modify-written in Python
- CHECK constraints keep 0 <= remaining <= total even if application code is wrong
- `version` is bumped on every counter change so readers can detect movement
- pools are soft-retired via `deleted_at` because tickets keep referencing them
"""

from sqlalchemy import Column, Integer, Numeric, DateTime, ForeignKey, CheckConstraint

from flight_booking.db.base import Base, TimestampMixin


class SeatPool(Base, TimestampMixin):
    __tablename__ = "seat_pools"

    flight_id = Column(Integer, ForeignKey("flights.id"), primary_key=True)
    fare_class_id = Column(Integer, ForeignKey("fare_classes.id"), primary_key=True)
    total_seats = Column(Integer, nullable=False)
    remaining_seats = Column(Integer, nullable=False)
    fare_per_seat = Column(Numeric(10, 2), nullable=False)
    version = Column(Integer, nullable=False, default=1)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("remaining_seats >= 0", name="check_remaining_seats_non_negative"),
        CheckConstraint("total_seats > 0", name="check_total_seats_positive"),
        CheckConstraint("remaining_seats <= total_seats", name="check_remaining_lte_total"),
        CheckConstraint("fare_per_seat >= 0", name="check_fare_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<SeatPool(flight={self.flight_id}, class={self.fare_class_id}, "
            f"remaining={self.remaining_seats}/{self.total_seats})>"
        )
