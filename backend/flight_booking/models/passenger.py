"""
Passenger identity, keyed naturally by citizen id.
"""

from sqlalchemy import Column, Integer, String

from flight_booking.db.base import Base, TimestampMixin


class Passenger(Base, TimestampMixin):
    __tablename__ = "passengers"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(200), nullable=False)
    citizen_id = Column(String(20), nullable=False, unique=True, index=True)
    email = Column(String(200), nullable=True)
    phone_number = Column(String(30), nullable=True)

    def __repr__(self) -> str:
        return f"<Passenger(id={self.id}, citizen_id={self.citizen_id})>"
