"""
Trip Assignment API Endpoints.

Assigning a vehicle that is already reserved in an intersecting window
returns 409 (ERR_CONFLICT_001). A tight turnaround between trips still
succeeds; the response then carries the buffer warnings.
"""

from typing import List

from fastapi import APIRouter, Depends, Path, Query, status

from charter_backend.app.core.dependencies import get_assignment_coordinator
from charter_backend.app.domain.fleet.assignment_coordinator import AssignmentCoordinator
from charter_backend.app.schemas.assignment import (
    AssignmentCreate,
    AssignmentCreatedResponse,
    AssignmentResponse,
    OdometerReading,
)

router = APIRouter(prefix="/assignments", tags=["Assignments"])


@router.post("", response_model=AssignmentCreatedResponse, status_code=status.HTTP_201_CREATED)
async def assign_vehicle(
    assignment_data: AssignmentCreate,
    coordinator: AssignmentCoordinator = Depends(get_assignment_coordinator)
):
    result = await coordinator.assign(
        trip_id=assignment_data.trip_id,
        vehicle_id=assignment_data.vehicle_id,
        driver_id=assignment_data.driver_id,
        co_driver_id=assignment_data.co_driver_id
    )
    return AssignmentCreatedResponse(
        assignment=AssignmentResponse.model_validate(result.assignment),
        warnings=result.warnings
    )


@router.get("/trips/{trip_id}", response_model=List[AssignmentResponse])
async def assignments_of_trip(
    trip_id: int = Path(..., description="Trip ID"),
    include_cancelled: bool = Query(False),
    coordinator: AssignmentCoordinator = Depends(get_assignment_coordinator)
):
    assignments = await coordinator.assignments_of_trip(trip_id, include_cancelled)
    return [AssignmentResponse.model_validate(a) for a in assignments]


@router.post("/{assignment_id}/cancel", response_model=AssignmentResponse)
async def cancel_assignment(
    assignment_id: int = Path(..., description="Assignment ID"),
    coordinator: AssignmentCoordinator = Depends(get_assignment_coordinator)
):
    return AssignmentResponse.model_validate(await coordinator.cancel(assignment_id))


@router.post("/{assignment_id}/start", response_model=AssignmentResponse)
async def start_assignment(
    reading: OdometerReading,
    assignment_id: int = Path(..., description="Assignment ID"),
    coordinator: AssignmentCoordinator = Depends(get_assignment_coordinator)
):
    return AssignmentResponse.model_validate(await coordinator.start(assignment_id, reading.odometer))


@router.post("/{assignment_id}/complete", response_model=AssignmentResponse)
async def complete_assignment(
    reading: OdometerReading,
    assignment_id: int = Path(..., description="Assignment ID"),
    coordinator: AssignmentCoordinator = Depends(get_assignment_coordinator)
):
    return AssignmentResponse.model_validate(await coordinator.complete(assignment_id, reading.odometer))
