"""
Outbound domain events.

Fire-and-forget notifications published after the state change they
describe has been committed. Delivery is at-least-once at best.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DomainEvent(BaseModel):
    """Common envelope."""
    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    tenant_id: int
    occurred_at: datetime = Field(default_factory=_utcnow)
    event_name: str


class BookingConfirmed(DomainEvent):
    """A booking entered PAYMENT_RECEIVED; fleet can prepare assignments."""
    event_name: Literal["BookingConfirmed"] = "BookingConfirmed"
    booking_id: int
    code: str
    customer_id: int
    trip_count: int


class PaymentReceived(DomainEvent):
    event_name: Literal["PaymentReceived"] = "PaymentReceived"
    payment_id: int
    booking_id: int
    amount: Decimal
    method: str


class VehicleAssigned(DomainEvent):
    event_name: Literal["VehicleAssigned"] = "VehicleAssigned"
    assignment_id: int
    trip_id: int
    vehicle_id: int
    driver_id: Optional[int] = None
