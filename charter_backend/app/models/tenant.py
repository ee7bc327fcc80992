"""
Tenant database model.

A tenant is an isolated charter operator. Every other table carries a
tenant_id and every query is scoped by it.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.sql import func
from charter_backend.app.db.session import Base


class Tenant(Base):
    """Tenant model."""
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Tenant(id={self.id}, name='{self.name}')>"
