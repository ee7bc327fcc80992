"""
Customer database model.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum
from sqlalchemy.sql import func
from charter_backend.app.db.session import Base
from charter_backend.app.models.booking_enums import CustomerKind


class Customer(Base):
    """Customer renting buses from a tenant."""
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    tenant_id = Column(Integer, ForeignKey('tenants.id'), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    kind = Column(Enum(CustomerKind), default=CustomerKind.GENERAL, nullable=False)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Customer(id={self.id}, name='{self.name}')>"
