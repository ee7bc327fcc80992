"""
Trip database model.

A trip is one leg of a booking. Its [start_time, end_time] window is the
unit of conflict detection for vehicle assignment.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum, CheckConstraint
from sqlalchemy.sql import func
from charter_backend.app.db.session import Base
from charter_backend.app.models.fleet_enums import VehicleCategory


class Trip(Base):
    """Trip model."""
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    tenant_id = Column(Integer, ForeignKey('tenants.id'), nullable=False, index=True)
    booking_id = Column(Integer, ForeignKey('bookings.id'), nullable=False, index=True)

    # Time window
    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time = Column(DateTime(timezone=True), nullable=False, index=True)

    # Route
    pickup_location = Column(String(255), nullable=False)
    destination = Column(String(255), nullable=False)
    route_description = Column(Text, nullable=True)

    estimated_passengers = Column(Integer, nullable=True)
    requested_category = Column(Enum(VehicleCategory), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint('end_time > start_time', name='ck_trips_window'),
    )

    @property
    def route_summary(self) -> str:
        return f"{self.pickup_location} -> {self.destination}"

    def __repr__(self):
        return f"<Trip(id={self.id}, booking_id={self.booking_id}, {self.start_time} - {self.end_time})>"
