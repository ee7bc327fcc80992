"""
Pricing Ledger.

Aggregates manual charge line-items and payments of a booking. Nothing is
cached: every call re-reads the current rows and sums them from scratch.

    grand_total = sum(PRIMARY) + sum(ADDITIONAL) - sum(DISCOUNT)
    outstanding = grand_total - sum(payments)
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from pydantic import BaseModel

from charter_backend.app.models.booking_enums import ChargeKind
from charter_backend.app.repositories.booking_repository import BookingRepository

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def line_total(charge) -> Decimal:
    return Decimal(charge.quantity) * Decimal(charge.unit_price)


def grand_total(charges: Iterable) -> Decimal:
    """Net billable amount; independent of charge order."""
    total = ZERO
    for charge in charges:
        if charge.kind == ChargeKind.DISCOUNT:
            total -= line_total(charge)
        else:
            total += line_total(charge)
    return total


def total_payments(payments: Iterable) -> Decimal:
    return sum((Decimal(payment.amount) for payment in payments), ZERO)


def payment_percentage(total: Decimal, paid: Decimal) -> Decimal:
    """
    Share of the grand total already paid, in percent.

    A zero grand total counts as fully paid (100). Over-payment yields
    values above 100.
    """
    if total == ZERO:
        return HUNDRED
    return (paid / total * HUNDRED).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class LedgerSummary(BaseModel):
    """Financial snapshot of one booking."""
    booking_id: int
    grand_total: Decimal
    total_payments: Decimal
    outstanding: Decimal
    payment_percentage: Decimal
    is_paid_in_full: bool


class PricingLedger:
    """Booking totals computed through the persistence port."""

    def __init__(self, bookings: BookingRepository):
        self.bookings = bookings

    async def grand_total(self, booking_id: int) -> Decimal:
        return grand_total(await self.bookings.charges_of(booking_id))

    async def total_payments(self, booking_id: int) -> Decimal:
        return total_payments(await self.bookings.payments_of(booking_id))

    async def outstanding(self, booking_id: int) -> Decimal:
        return await self.grand_total(booking_id) - await self.total_payments(booking_id)

    async def payment_percentage(self, booking_id: int) -> Decimal:
        return payment_percentage(
            await self.grand_total(booking_id),
            await self.total_payments(booking_id)
        )

    async def summary(self, booking_id: int) -> LedgerSummary:
        total = await self.grand_total(booking_id)
        paid = await self.total_payments(booking_id)
        outstanding = total - paid

        return LedgerSummary(
            booking_id=booking_id,
            grand_total=total,
            total_payments=paid,
            outstanding=outstanding,
            payment_percentage=payment_percentage(total, paid),
            is_paid_in_full=outstanding <= ZERO
        )
