"""
Fleet API Endpoints.

Vehicle and driver registry plus availability queries. Availability windows
are closed intervals: a vehicle whose reservation ends exactly when the
window starts is not available.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status

from charter_backend.app.core.dependencies import get_fleet_service
from charter_backend.app.models.fleet_enums import VehicleCategory
from charter_backend.app.schemas.fleet import (
    AvailabilityResponse,
    CategoryAvailabilityResponse,
    DriverAvailabilityResponse,
    DriverCreate,
    DriverResponse,
    VehicleCreate,
    VehicleResponse,
    VehicleUpdate,
)
from charter_backend.app.services.fleet_service import FleetService

router = APIRouter(prefix="/fleet", tags=["Fleet"])


# Vehicles

@router.post("/vehicles", response_model=VehicleResponse, status_code=status.HTTP_201_CREATED)
async def add_vehicle(
    vehicle_data: VehicleCreate,
    service: FleetService = Depends(get_fleet_service)
):
    vehicle = await service.add_vehicle(**vehicle_data.model_dump())
    return VehicleResponse.model_validate(vehicle)


@router.get("/vehicles", response_model=List[VehicleResponse])
async def list_vehicles(
    category: Optional[VehicleCategory] = Query(None),
    service: FleetService = Depends(get_fleet_service)
):
    return [VehicleResponse.model_validate(v) for v in await service.active_vehicles(category)]


@router.get("/vehicles/available", response_model=AvailabilityResponse)
async def available_vehicles(
    window_start: datetime = Query(...),
    window_end: datetime = Query(...),
    category: Optional[VehicleCategory] = Query(None),
    service: FleetService = Depends(get_fleet_service)
):
    vehicles = await service.available_vehicles(window_start, window_end, category)
    return AvailabilityResponse(
        window_start=window_start,
        window_end=window_end,
        vehicles=[VehicleResponse.model_validate(v) for v in vehicles]
    )


@router.get("/vehicles/availability-by-category", response_model=CategoryAvailabilityResponse)
async def availability_by_category(
    window_start: datetime = Query(...),
    window_end: datetime = Query(...),
    service: FleetService = Depends(get_fleet_service)
):
    counts = await service.availability_by_category(window_start, window_end)
    return CategoryAvailabilityResponse(window_start=window_start, window_end=window_end, counts=counts)


@router.get("/vehicles/{vehicle_id}", response_model=VehicleResponse)
async def get_vehicle(
    vehicle_id: int = Path(..., description="Vehicle ID"),
    service: FleetService = Depends(get_fleet_service)
):
    return VehicleResponse.model_validate(await service.get_vehicle(vehicle_id))


@router.patch("/vehicles/{vehicle_id}", response_model=VehicleResponse)
async def update_vehicle(
    vehicle_data: VehicleUpdate,
    vehicle_id: int = Path(..., description="Vehicle ID"),
    service: FleetService = Depends(get_fleet_service)
):
    vehicle = await service.update_vehicle(vehicle_id, **vehicle_data.model_dump(exclude_unset=True))
    return VehicleResponse.model_validate(vehicle)


@router.post("/vehicles/{vehicle_id}/deactivate", response_model=VehicleResponse)
async def deactivate_vehicle(
    vehicle_id: int = Path(..., description="Vehicle ID"),
    service: FleetService = Depends(get_fleet_service)
):
    return VehicleResponse.model_validate(await service.deactivate_vehicle(vehicle_id))


@router.post("/vehicles/{vehicle_id}/activate", response_model=VehicleResponse)
async def activate_vehicle(
    vehicle_id: int = Path(..., description="Vehicle ID"),
    service: FleetService = Depends(get_fleet_service)
):
    return VehicleResponse.model_validate(await service.activate_vehicle(vehicle_id))


# Drivers

@router.post("/drivers", response_model=DriverResponse, status_code=status.HTTP_201_CREATED)
async def add_driver(
    driver_data: DriverCreate,
    service: FleetService = Depends(get_fleet_service)
):
    return DriverResponse.model_validate(await service.add_driver(**driver_data.model_dump()))


@router.get("/drivers", response_model=List[DriverResponse])
async def list_drivers(service: FleetService = Depends(get_fleet_service)):
    return [DriverResponse.model_validate(d) for d in await service.active_drivers()]


@router.get("/drivers/available", response_model=DriverAvailabilityResponse)
async def available_drivers(
    window_start: datetime = Query(...),
    window_end: datetime = Query(...),
    service: FleetService = Depends(get_fleet_service)
):
    drivers = await service.available_drivers(window_start, window_end)
    return DriverAvailabilityResponse(
        window_start=window_start,
        window_end=window_end,
        drivers=[DriverResponse.model_validate(d) for d in drivers]
    )


@router.post("/drivers/{driver_id}/deactivate", response_model=DriverResponse)
async def deactivate_driver(
    driver_id: int = Path(..., description="Driver ID"),
    service: FleetService = Depends(get_fleet_service)
):
    return DriverResponse.model_validate(await service.deactivate_driver(driver_id))
