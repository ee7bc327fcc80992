"""
Driver database model.
"""

from datetime import date
from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, ForeignKey
from sqlalchemy.sql import func
from charter_backend.app.db.session import Base


class Driver(Base):
    """Driver model."""
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    tenant_id = Column(Integer, ForeignKey('tenants.id'), nullable=False, index=True)

    full_name = Column(String(255), nullable=False)
    nickname = Column(String(100), nullable=True)
    phone = Column(String(50), nullable=True)

    # License
    license_number = Column(String(50), nullable=True)
    license_expiry = Column(Date, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @property
    def display_name(self) -> str:
        return self.nickname or self.full_name

    def license_valid_on(self, day: date) -> bool:
        """A driver without a recorded expiry is treated as licensed."""
        return self.license_expiry is None or self.license_expiry >= day

    def __repr__(self):
        return f"<Driver(id={self.id}, name='{self.full_name}')>"
