"""
Booking Pydantic schemas.

Request and response models for customers, bookings, trips and charges.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from charter_backend.app.models.booking_enums import BookingStatus, ChargeKind, CustomerKind
from charter_backend.app.models.fleet_enums import VehicleCategory


class CustomerCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    kind: CustomerKind = CustomerKind.GENERAL


class CustomerResponse(BaseModel):
    id: int
    name: str
    kind: CustomerKind
    phone: Optional[str]
    email: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class TripCreate(BaseModel):
    """One leg of a booking. The window is checked by BookingService (end after start)."""
    start_time: datetime
    end_time: datetime
    pickup_location: str = Field(..., min_length=1, max_length=255)
    destination: str = Field(..., min_length=1, max_length=255)
    route_description: Optional[str] = None
    estimated_passengers: Optional[int] = Field(None, gt=0)
    requested_category: Optional[VehicleCategory] = None


class TripResponse(BaseModel):
    id: int
    booking_id: int
    start_time: datetime
    end_time: datetime
    pickup_location: str
    destination: str
    route_description: Optional[str]
    estimated_passengers: Optional[int]
    requested_category: Optional[VehicleCategory]

    class Config:
        from_attributes = True


class BookingCreate(BaseModel):
    customer_id: int
    trips: List[TripCreate] = Field(..., description="At least one trip is required")
    notes: Optional[str] = None


class BookingResponse(BaseModel):
    id: int
    code: str
    customer_id: int
    sales_actor_id: Optional[int]
    status: BookingStatus
    notes: Optional[str]
    booked_at: datetime

    class Config:
        from_attributes = True


class BookingDetailResponse(BookingResponse):
    trips: List[TripResponse] = []


class ChargeCreate(BaseModel):
    description: str = Field(..., max_length=255)
    kind: ChargeKind = ChargeKind.PRIMARY
    quantity: int = 1
    unit_price: Decimal


class ChargeUpdate(BaseModel):
    description: Optional[str] = Field(None, max_length=255)
    kind: Optional[ChargeKind] = None
    quantity: Optional[int] = None
    unit_price: Optional[Decimal] = None


class ChargeResponse(BaseModel):
    id: int
    booking_id: int
    description: str
    kind: ChargeKind
    quantity: int
    unit_price: Decimal
    total: Decimal

    class Config:
        from_attributes = True


class TransitionRequest(BaseModel):
    target: BookingStatus


class StatusChangeResponse(BaseModel):
    booking_id: int
    previous: BookingStatus
    current: BookingStatus


class AllowedTargetsResponse(BaseModel):
    booking_id: int
    status: BookingStatus
    allowed_targets: List[BookingStatus]
