"""
Pricing ledger and finance reconciliation tests.
"""

import itertools
import pytest
from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

from charter_backend.app.core.exceptions import ValidationError
from charter_backend.app.domain.billing.pricing_ledger import grand_total, payment_percentage, total_payments
from charter_backend.app.models.booking_enums import BookingStatus, ChargeKind
from charter_backend.tests.factories import trip_window

START = datetime(2024, 7, 1, 6, 0)
END = datetime(2024, 7, 1, 22, 0)


def charge(kind, quantity, unit_price):
    return SimpleNamespace(kind=kind, quantity=quantity, unit_price=Decimal(unit_price))


def test_grand_total_subtracts_discounts():
    charges = [
        charge(ChargeKind.PRIMARY, 2, "5000000"),
        charge(ChargeKind.DISCOUNT, 1, "1000000"),
    ]
    assert grand_total(charges) == Decimal("9000000")


def test_grand_total_is_order_independent():
    charges = [
        charge(ChargeKind.PRIMARY, 2, "5000000"),
        charge(ChargeKind.ADDITIONAL, 3, "125000.50"),
        charge(ChargeKind.DISCOUNT, 1, "1000000"),
        charge(ChargeKind.ADDITIONAL, 1, "0"),
    ]
    expected = grand_total(charges)
    for permutation in itertools.permutations(charges):
        assert grand_total(permutation) == expected
    assert expected == Decimal("9375001.50")


def test_payment_percentage_zero_total_is_full():
    assert payment_percentage(Decimal("0"), Decimal("0")) == Decimal("100")


def test_payment_percentage_exceeds_hundred_on_overpayment():
    assert payment_percentage(Decimal("1000"), Decimal("1500")) == Decimal("150.00")
    assert payment_percentage(Decimal("3000"), Decimal("1000")) == Decimal("33.33")


def test_total_payments_empty():
    assert total_payments([]) == Decimal("0")


@pytest.fixture
async def quoted_booking(booking_service, customer):
    """The 9,000,000 booking: 2 x 5,000,000 primary minus a 1,000,000 discount."""
    booking = await booking_service.create_booking(customer.id, [trip_window(START, END)])
    await booking_service.add_charge(booking.id, "Big bus, 2 days", Decimal("5000000"), quantity=2)
    await booking_service.add_charge(booking.id, "Corporate discount", Decimal("1000000"), kind=ChargeKind.DISCOUNT)
    await booking_service.send_quotation(booking.id)
    return booking


@pytest.mark.asyncio
async def test_single_full_payment_settles_booking(finance_service, quoted_booking, published):
    summary = await finance_service.financial_summary(quoted_booking.id)
    assert summary.grand_total == Decimal("9000000")

    outcome = await finance_service.record_payment(quoted_booking.id, Decimal("9000000"), "Bank transfer")

    assert outcome.summary.outstanding == Decimal("0")
    assert outcome.summary.is_paid_in_full
    assert outcome.booking_status == BookingStatus.PAID_IN_FULL
    assert [c.current for c in outcome.changes] == [BookingStatus.PAYMENT_RECEIVED, BookingStatus.PAID_IN_FULL]
    assert [e.event_name for e in published] == ["PaymentReceived", "BookingConfirmed"]


@pytest.mark.asyncio
async def test_partial_then_final_payment(finance_service, quoted_booking):
    first = await finance_service.record_payment(quoted_booking.id, Decimal("3000000"), "Cash")
    assert first.booking_status == BookingStatus.PAYMENT_RECEIVED
    assert first.summary.outstanding == Decimal("6000000")
    assert first.summary.payment_percentage == Decimal("33.33")

    second = await finance_service.record_payment(quoted_booking.id, Decimal("6000000"), "Bank transfer")
    assert second.booking_status == BookingStatus.PAID_IN_FULL
    assert [c.current for c in second.changes] == [BookingStatus.PAID_IN_FULL]


@pytest.mark.asyncio
async def test_overpayment_still_paid_in_full(finance_service, quoted_booking):
    outcome = await finance_service.record_payment(quoted_booking.id, Decimal("10000000"), "Bank transfer")

    assert outcome.booking_status == BookingStatus.PAID_IN_FULL
    assert outcome.summary.outstanding == Decimal("-1000000")
    assert outcome.summary.payment_percentage > Decimal("100")


@pytest.mark.asyncio
async def test_outstanding_matches_payments(finance_service, quoted_booking):
    amounts = [Decimal("1250000"), Decimal("750000.25"), Decimal("99.75")]
    for amount in amounts:
        await finance_service.record_payment(quoted_booking.id, amount, "Cash")

    summary = await finance_service.financial_summary(quoted_booking.id)
    assert summary.total_payments == sum(amounts)
    assert summary.outstanding == summary.grand_total - sum(amounts)


@pytest.mark.asyncio
async def test_reconcile_is_idempotent(finance_service, quoted_booking):
    await finance_service.record_payment(quoted_booking.id, Decimal("3000000"), "Cash")

    assert await finance_service.reconcile(quoted_booking.id) == []
    assert await finance_service.reconcile(quoted_booking.id) == []
    assert quoted_booking.status == BookingStatus.PAYMENT_RECEIVED


@pytest.mark.asyncio
async def test_reconcile_skips_completed(booking_service, finance_service, quoted_booking):
    await finance_service.record_payment(quoted_booking.id, Decimal("9000000"), "Cash")
    await booking_service.complete_booking(quoted_booking.id)

    outcome = await finance_service.record_payment(quoted_booking.id, Decimal("500000"), "Cash")
    assert outcome.changes == []
    assert outcome.booking_status == BookingStatus.COMPLETED


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-10")])
async def test_non_positive_payment_rejected(finance_service, quoted_booking, amount):
    with pytest.raises(ValidationError):
        await finance_service.record_payment(quoted_booking.id, amount, "Cash")
    assert await finance_service.payments_of(quoted_booking.id) == []


@pytest.mark.asyncio
async def test_payment_requires_method(finance_service, quoted_booking):
    with pytest.raises(ValidationError):
        await finance_service.record_payment(quoted_booking.id, Decimal("100"), " ")


@pytest.mark.asyncio
async def test_payment_rejected_for_draft(booking_service, finance_service, customer):
    booking = await booking_service.create_booking(customer.id, [trip_window(START, END)])
    booking_id = booking.id
    with pytest.raises(ValidationError):
        await finance_service.record_payment(booking_id, Decimal("100"), "Cash")
    assert (await booking_service.get_booking(booking_id)).status == BookingStatus.DRAFT


@pytest.mark.asyncio
async def test_payment_rejected_for_cancelled(booking_service, finance_service, quoted_booking):
    await booking_service.cancel_booking(quoted_booking.id)
    with pytest.raises(ValidationError):
        await finance_service.record_payment(quoted_booking.id, Decimal("100"), "Cash")


@pytest.mark.asyncio
async def test_payments_between(finance_service, quoted_booking):
    await finance_service.record_payment(quoted_booking.id, Decimal("1000000"), "Cash", paid_at=datetime(2024, 6, 1, 10, 0))
    await finance_service.record_payment(quoted_booking.id, Decimal("2000000"), "Cash", paid_at=datetime(2024, 6, 15, 10, 0))
    await finance_service.record_payment(quoted_booking.id, Decimal("4000000"), "Cash", paid_at=datetime(2024, 7, 2, 10, 0))

    june = await finance_service.payments_between(datetime(2024, 6, 1), datetime(2024, 6, 30, 23, 59))
    assert [p.amount for p in june] == [Decimal("1000000"), Decimal("2000000")]
    total = await finance_service.total_payments_between(datetime(2024, 6, 1), datetime(2024, 6, 30, 23, 59))
    assert total == Decimal("3000000")
