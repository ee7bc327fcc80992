"""
Finance Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from charter_backend.app.domain.billing.pricing_ledger import LedgerSummary
from charter_backend.app.domain.booking.lifecycle import StatusChange
from charter_backend.app.models.booking_enums import BookingStatus


class PaymentCreate(BaseModel):
    amount: Decimal
    method: str = Field(..., max_length=100, description="e.g. Bank transfer, Cash")
    proof_url: Optional[str] = Field(None, max_length=500)
    note: Optional[str] = None
    paid_at: Optional[datetime] = None


class PaymentResponse(BaseModel):
    id: int
    booking_id: int
    amount: Decimal
    method: str
    proof_url: Optional[str]
    note: Optional[str]
    verified_by_actor_id: Optional[int]
    paid_at: datetime

    class Config:
        from_attributes = True


class PaymentRecorded(BaseModel):
    """Outcome of recording one payment, after reconciliation."""
    payment: PaymentResponse
    booking_status: BookingStatus
    status_changes: List[StatusChange] = []
    summary: LedgerSummary


class PaymentTotal(BaseModel):
    start: datetime
    end: datetime
    total: Decimal
