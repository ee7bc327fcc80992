"""
Payment database model.

Payments are append-only; every new row triggers finance reconciliation.
"""

from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.sql import func
from charter_backend.app.db.session import Base


class Payment(Base):
    """Payment model."""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    tenant_id = Column(Integer, ForeignKey('tenants.id'), nullable=False, index=True)
    booking_id = Column(Integer, ForeignKey('bookings.id'), nullable=False, index=True)

    amount = Column(Numeric(15, 2), nullable=False)
    method = Column(String(100), nullable=False)  # e.g. "Bank transfer", "Cash"
    proof_url = Column(String(500), nullable=True)
    note = Column(Text, nullable=True)
    verified_by_actor_id = Column(Integer, nullable=True)

    paid_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint('amount > 0', name='ck_payments_amount'),
    )

    def __repr__(self):
        return f"<Payment(id={self.id}, booking_id={self.booking_id}, amount={self.amount})>"
