"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from charter_backend.app.api.v1.endpoints import (
    customers, bookings, payments, fleet, assignments
)

router = APIRouter()

router.include_router(customers.router)
router.include_router(bookings.router)
router.include_router(payments.router)
router.include_router(fleet.router)
router.include_router(assignments.router)
