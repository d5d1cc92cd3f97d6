"""
Flight and fare class records.

Only the columns the booking core reads are kept here: a flight's
departure drives hold expiry, a fare class name drives auto-assigned seat
prefixes. Full flight management lives in the catalog service upstream.
"""

from sqlalchemy import Column, Integer, String, DateTime, Index

from flight_booking.db.base import Base, TimestampMixin


class Flight(Base, TimestampMixin):
    __tablename__ = "flights"

    id = Column(Integer, primary_key=True, index=True)
    flight_code = Column(String(20), nullable=False, unique=True)
    departure_time = Column(DateTime(timezone=True), nullable=False)
    arrival_time = Column(DateTime(timezone=True), nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        # The expiry sweep filters on departure
        Index("ix_flights_departure_time", "departure_time"),
    )

    def __repr__(self) -> str:
        return f"<Flight(id={self.id}, code={self.flight_code}, departure={self.departure_time})>"


class FareClass(Base, TimestampMixin):
    __tablename__ = "fare_classes"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False, unique=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<FareClass(id={self.id}, name={self.name})>"
