"""
Booking database model.

A booking groups the trips, manual price line-items and payments of one
customer order. Ownership is one-directional: trips, charges and payments
point at their booking by id, the booking holds no back-references.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.sql import func
from charter_backend.app.db.session import Base
from charter_backend.app.models.booking_enums import BookingStatus


class Booking(Base):
    """
    Booking model.

    `status` is read-only. The only writer is BookingLifecycle, which
    validates every change against the state machine first.
    """
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Ownership
    tenant_id = Column(Integer, ForeignKey('tenants.id'), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey('customers.id'), nullable=False, index=True)
    sales_actor_id = Column(Integer, nullable=True)

    # Identification
    code = Column(String(50), nullable=False)

    _status = Column("status", Enum(BookingStatus), default=BookingStatus.DRAFT, nullable=False, index=True)

    notes = Column(Text, nullable=True)

    # Timestamps
    booked_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint('tenant_id', 'code', name='uq_bookings_tenant_code'),
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._status = BookingStatus.DRAFT

    @hybrid_property
    def status(self) -> BookingStatus:
        return self._status

    def __repr__(self):
        return f"<Booking(id={self.id}, code='{self.code}', status='{self._status.value}')>"
