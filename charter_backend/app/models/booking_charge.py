"""
Booking Charge database model.

Manual price line-items entered by staff. Prices are never calculated by
the system, only aggregated.
"""

from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Enum, CheckConstraint
from sqlalchemy.sql import func
from charter_backend.app.db.session import Base
from charter_backend.app.models.booking_enums import ChargeKind


class BookingCharge(Base):
    """
    Booking Charge model.

    total = quantity * unit_price, recomputed whenever quantity or price changes.
    """
    __tablename__ = "booking_charges"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    tenant_id = Column(Integer, ForeignKey('tenants.id'), nullable=False, index=True)
    booking_id = Column(Integer, ForeignKey('bookings.id'), nullable=False, index=True)

    description = Column(String(255), nullable=False)
    kind = Column(Enum(ChargeKind), default=ChargeKind.PRIMARY, nullable=False)

    # Financials
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Numeric(15, 2), nullable=False)
    total = Column(Numeric(15, 2), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_booking_charges_quantity'),
        CheckConstraint('unit_price >= 0', name='ck_booking_charges_unit_price'),
    )

    def recompute_total(self) -> None:
        self.total = self.quantity * self.unit_price

    def __repr__(self):
        return f"<BookingCharge(id={self.id}, kind='{self.kind.value}', total={self.total})>"
