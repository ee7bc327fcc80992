"""
Vehicle database model.

Tenants register their buses (own fleet or partner vendors). Only active
vehicles are ever eligible for assignment.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.sql import func
from charter_backend.app.db.session import Base
from charter_backend.app.models.fleet_enums import VehicleCategory, OwnershipKind


class Vehicle(Base):
    """Vehicle model."""
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    tenant_id = Column(Integer, ForeignKey('tenants.id'), nullable=False, index=True)

    # Identification
    plate_number = Column(String(20), nullable=False)
    nickname = Column(String(100), nullable=True)  # e.g. "Big Blue 01"

    category = Column(Enum(VehicleCategory), nullable=False, index=True)
    seat_capacity = Column(Integer, nullable=False)

    # Ownership
    ownership = Column(Enum(OwnershipKind), default=OwnershipKind.OWNED, nullable=False)
    vendor_name = Column(String(255), nullable=True)

    # Status
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    notes = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint('tenant_id', 'plate_number', name='uq_vehicles_tenant_plate'),
    )

    @property
    def display_name(self) -> str:
        return self.nickname or self.plate_number

    def __repr__(self):
        return f"<Vehicle(id={self.id}, plate='{self.plate_number}', category='{self.category.value}')>"
