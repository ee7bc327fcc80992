"""
Customer API Endpoints.
"""

from fastapi import APIRouter, Depends, Path, status

from charter_backend.app.core.dependencies import get_booking_service
from charter_backend.app.schemas.booking import CustomerCreate, CustomerResponse
from charter_backend.app.services.booking_service import BookingService

router = APIRouter(prefix="/customers", tags=["Customers"])


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    customer_data: CustomerCreate,
    service: BookingService = Depends(get_booking_service)
):
    customer = await service.create_customer(
        name=customer_data.name,
        phone=customer_data.phone,
        kind=customer_data.kind,
        email=customer_data.email
    )
    return CustomerResponse.model_validate(customer)


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: int = Path(..., description="Customer ID"),
    service: BookingService = Depends(get_booking_service)
):
    return CustomerResponse.model_validate(await service.get_customer(customer_id))
