"""
Trip assignment Pydantic schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional, List

from charter_backend.app.domain.fleet.assignment_coordinator import SoftWarning
from charter_backend.app.models.fleet_enums import AssignmentStatus


class AssignmentCreate(BaseModel):
    trip_id: int
    vehicle_id: int
    driver_id: Optional[int] = None
    co_driver_id: Optional[int] = None


class OdometerReading(BaseModel):
    odometer: Optional[int] = None


class AssignmentResponse(BaseModel):
    id: int
    trip_id: int
    vehicle_id: int
    driver_id: Optional[int]
    co_driver_id: Optional[int]
    status: AssignmentStatus
    window_start: datetime
    window_end: datetime
    odometer_start: Optional[int]
    odometer_end: Optional[int]
    distance_km: Optional[int]

    class Config:
        from_attributes = True


class AssignmentCreatedResponse(BaseModel):
    """A persisted assignment plus any soft warnings (buffer, license)."""
    assignment: AssignmentResponse
    warnings: List[SoftWarning] = []
