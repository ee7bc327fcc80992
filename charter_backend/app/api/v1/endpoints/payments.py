"""
Payment API Endpoints.

Recording a payment reconciles the booking status in the same transaction.
"""

from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, Path, Query, status

from charter_backend.app.core.dependencies import get_finance_service
from charter_backend.app.schemas.finance import PaymentCreate, PaymentRecorded, PaymentResponse, PaymentTotal
from charter_backend.app.services.finance_service import FinanceService

router = APIRouter(tags=["Payments"])


@router.post(
    "/bookings/{booking_id}/payments",
    response_model=PaymentRecorded,
    status_code=status.HTTP_201_CREATED
)
async def record_payment(
    payment_data: PaymentCreate,
    booking_id: int = Path(..., description="Booking ID"),
    finance: FinanceService = Depends(get_finance_service)
):
    outcome = await finance.record_payment(
        booking_id,
        amount=payment_data.amount,
        method=payment_data.method,
        proof_url=payment_data.proof_url,
        note=payment_data.note,
        paid_at=payment_data.paid_at
    )
    return PaymentRecorded(
        payment=PaymentResponse.model_validate(outcome.payment),
        booking_status=outcome.booking_status,
        status_changes=outcome.changes,
        summary=outcome.summary
    )


@router.get("/bookings/{booking_id}/payments", response_model=List[PaymentResponse])
async def list_payments(
    booking_id: int = Path(..., description="Booking ID"),
    finance: FinanceService = Depends(get_finance_service)
):
    return [PaymentResponse.model_validate(p) for p in await finance.payments_of(booking_id)]


@router.get("/payments", response_model=List[PaymentResponse])
async def payments_between(
    start: datetime = Query(...),
    end: datetime = Query(...),
    finance: FinanceService = Depends(get_finance_service)
):
    return [PaymentResponse.model_validate(p) for p in await finance.payments_between(start, end)]


@router.get("/payments/total", response_model=PaymentTotal)
async def total_payments_between(
    start: datetime = Query(...),
    end: datetime = Query(...),
    finance: FinanceService = Depends(get_finance_service)
):
    return PaymentTotal(start=start, end=end, total=await finance.total_payments_between(start, end))
