"""
Fleet Pydantic schemas.

Vehicles, drivers and availability queries.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional, List, Dict

from charter_backend.app.models.fleet_enums import OwnershipKind, VehicleCategory


class VehicleCreate(BaseModel):
    """Schema for registering a new vehicle."""
    plate_number: str = Field(..., max_length=20, description="Registration plate, unique per tenant")
    nickname: Optional[str] = Field(None, max_length=100)
    category: VehicleCategory
    seat_capacity: int
    ownership: OwnershipKind = OwnershipKind.OWNED
    vendor_name: Optional[str] = Field(None, max_length=255, description="Partner vendor, for PARTNER vehicles")
    notes: Optional[str] = None


class VehicleUpdate(BaseModel):
    plate_number: Optional[str] = Field(None, max_length=20)
    nickname: Optional[str] = Field(None, max_length=100)
    category: Optional[VehicleCategory] = None
    seat_capacity: Optional[int] = None
    ownership: Optional[OwnershipKind] = None
    vendor_name: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None


class VehicleResponse(BaseModel):
    id: int
    plate_number: str
    nickname: Optional[str]
    display_name: str
    category: VehicleCategory
    seat_capacity: int
    ownership: OwnershipKind
    vendor_name: Optional[str]
    is_active: bool

    class Config:
        from_attributes = True


class DriverCreate(BaseModel):
    full_name: str = Field(..., max_length=255)
    nickname: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    license_number: Optional[str] = Field(None, max_length=50)
    license_expiry: Optional[date] = None


class DriverResponse(BaseModel):
    id: int
    full_name: str
    nickname: Optional[str]
    display_name: str
    phone: Optional[str]
    license_number: Optional[str]
    license_expiry: Optional[date]
    is_active: bool

    class Config:
        from_attributes = True


class AvailabilityResponse(BaseModel):
    window_start: datetime
    window_end: datetime
    vehicles: List[VehicleResponse]


class DriverAvailabilityResponse(BaseModel):
    window_start: datetime
    window_end: datetime
    drivers: List[DriverResponse]


class CategoryAvailabilityResponse(BaseModel):
    window_start: datetime
    window_end: datetime
    counts: Dict[VehicleCategory, int]
