"""
Booking API Endpoints.

Drafting bookings, maintaining their trips and charges, and moving them
through the lifecycle. Statuses reached automatically from payments are
handled by the payment endpoints.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, Response, status

from charter_backend.app.core.dependencies import get_booking_service, get_finance_service
from charter_backend.app.domain.billing.pricing_ledger import LedgerSummary
from charter_backend.app.models.booking_enums import BookingStatus
from charter_backend.app.schemas.booking import (
    AllowedTargetsResponse,
    BookingCreate,
    BookingDetailResponse,
    BookingResponse,
    ChargeCreate,
    ChargeResponse,
    ChargeUpdate,
    StatusChangeResponse,
    TransitionRequest,
    TripCreate,
    TripResponse,
)
from charter_backend.app.services.booking_service import BookingService
from charter_backend.app.services.finance_service import FinanceService

router = APIRouter(prefix="/bookings", tags=["Bookings"])


async def _detail(service: BookingService, booking) -> BookingDetailResponse:
    trips = await service.trips_of(booking.id)
    return BookingDetailResponse(
        **BookingResponse.model_validate(booking).model_dump(),
        trips=[TripResponse.model_validate(t) for t in trips]
    )


@router.post("", response_model=BookingDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    service: BookingService = Depends(get_booking_service)
):
    """
    Draft a booking with at least one trip.

    The booking starts in DRAFT and receives a code like BOOK/2024/05/001.
    """
    booking = await service.create_booking(
        customer_id=booking_data.customer_id,
        trips=booking_data.trips,
        notes=booking_data.notes
    )
    return await _detail(service, booking)


@router.get("", response_model=List[BookingResponse])
async def list_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    customer_id: Optional[int] = Query(None, description="Only bookings of this customer"),
    needs_assignment: bool = Query(False, description="Only confirmed bookings with unassigned trips"),
    service: BookingService = Depends(get_booking_service)
):
    if needs_assignment:
        bookings = await service.bookings_needing_assignment()
    else:
        bookings = await service.list_bookings(status_filter, customer_id)
    return [BookingResponse.model_validate(b) for b in bookings]


@router.get("/{booking_id}", response_model=BookingDetailResponse)
async def get_booking(
    booking_id: int = Path(..., description="Booking ID"),
    service: BookingService = Depends(get_booking_service)
):
    return await _detail(service, await service.get_booking(booking_id))


@router.post("/{booking_id}/trips", response_model=TripResponse, status_code=status.HTTP_201_CREATED)
async def add_trip(
    trip_data: TripCreate,
    booking_id: int = Path(..., description="Booking ID"),
    service: BookingService = Depends(get_booking_service)
):
    return TripResponse.model_validate(await service.add_trip(booking_id, trip_data))


# Charges

@router.get("/{booking_id}/charges", response_model=List[ChargeResponse])
async def list_charges(
    booking_id: int = Path(..., description="Booking ID"),
    service: BookingService = Depends(get_booking_service)
):
    return [ChargeResponse.model_validate(c) for c in await service.charges_of(booking_id)]


@router.post("/{booking_id}/charges", response_model=ChargeResponse, status_code=status.HTTP_201_CREATED)
async def add_charge(
    charge_data: ChargeCreate,
    booking_id: int = Path(..., description="Booking ID"),
    service: BookingService = Depends(get_booking_service)
):
    charge = await service.add_charge(
        booking_id,
        description=charge_data.description,
        unit_price=charge_data.unit_price,
        quantity=charge_data.quantity,
        kind=charge_data.kind
    )
    return ChargeResponse.model_validate(charge)


@router.patch("/charges/{charge_id}", response_model=ChargeResponse)
async def update_charge(
    charge_data: ChargeUpdate,
    charge_id: int = Path(..., description="Charge ID"),
    service: BookingService = Depends(get_booking_service)
):
    charge = await service.update_charge(charge_id, **charge_data.model_dump(exclude_unset=True))
    return ChargeResponse.model_validate(charge)


@router.delete("/charges/{charge_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_charge(
    charge_id: int = Path(..., description="Charge ID"),
    service: BookingService = Depends(get_booking_service)
):
    await service.remove_charge(charge_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Lifecycle

@router.get("/{booking_id}/transitions", response_model=AllowedTargetsResponse)
async def get_allowed_targets(
    booking_id: int = Path(..., description="Booking ID"),
    service: BookingService = Depends(get_booking_service)
):
    booking = await service.get_booking(booking_id)
    return AllowedTargetsResponse(
        booking_id=booking.id,
        status=booking.status,
        allowed_targets=await service.allowed_targets(booking_id)
    )


@router.post("/{booking_id}/transitions", response_model=StatusChangeResponse)
async def transition_booking(
    transition: TransitionRequest,
    booking_id: int = Path(..., description="Booking ID"),
    service: BookingService = Depends(get_booking_service)
):
    """
    Move a booking along one edge of the lifecycle.

    Returns 409 for edges that do not exist, and for PAID_IN_FULL while an
    outstanding balance remains.
    """
    change = await service.transition(booking_id, transition.target)
    return StatusChangeResponse(**change.model_dump())


@router.get("/{booking_id}/summary", response_model=LedgerSummary)
async def get_financial_summary(
    booking_id: int = Path(..., description="Booking ID"),
    finance: FinanceService = Depends(get_finance_service)
):
    return await finance.financial_summary(booking_id)
