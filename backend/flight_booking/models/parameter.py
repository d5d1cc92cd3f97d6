"""
Operator-tunable business parameters. At most one active row.
"""

from sqlalchemy import Column, Integer, DateTime, CheckConstraint

from flight_booking.db.base import Base, TimestampMixin


class Parameter(Base, TimestampMixin):
    __tablename__ = "parameters"

    id = Column(Integer, primary_key=True)
    max_booking_hold_duration = Column(Integer, nullable=False)  # hours before departure
    min_flight_duration = Column(Integer, nullable=False)  # minutes
    min_booking_in_advance_duration = Column(Integer, nullable=False)  # hours
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("max_booking_hold_duration > 0", name="check_hold_duration_positive"),
        CheckConstraint("min_flight_duration > 0", name="check_flight_duration_positive"),
        CheckConstraint(
            "min_booking_in_advance_duration >= 0", name="check_booking_advance_non_negative"
        ),
    )
