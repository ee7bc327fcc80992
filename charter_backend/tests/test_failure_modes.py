"""
Failure Injection Tests.

A broken notification transport must never undo a committed state change.
"""

import json
import pytest
from datetime import datetime
from decimal import Decimal
from unittest.mock import AsyncMock

from charter_backend.app.core.reliability import CircuitBreaker, CircuitOpenError
from charter_backend.app.models.booking_enums import BookingStatus
from charter_backend.app.schemas.events import PaymentReceived, VehicleAssigned
from charter_backend.app.services.event_publisher import (
    EventPublisher,
    InMemoryEventBus,
    RedisEventPublisher,
    publish_safely,
)
from charter_backend.app.services.finance_service import FinanceService
from charter_backend.tests.factories import trip_window

START = datetime(2024, 12, 1, 8, 0)
END = datetime(2024, 12, 1, 20, 0)


class ExplodingPublisher(EventPublisher):
    def __init__(self):
        self.attempts = 0

    async def publish(self, event):
        self.attempts += 1
        raise ConnectionError("redis is down")


@pytest.mark.asyncio
async def test_circuit_breaker_activates():
    """Test that circuit breaker opens after threshold failures."""
    cb = CircuitBreaker(failure_threshold=2, reset_timeout=60)

    async def failing_func():
        raise ValueError("Boom")

    for _ in range(2):
        with pytest.raises(ValueError):
            await cb.call(failing_func)

    assert cb.state == "OPEN"
    with pytest.raises(CircuitOpenError):
        await cb.call(failing_func)


@pytest.mark.asyncio
async def test_circuit_breaker_recovers_after_timeout(mocker):
    cb = CircuitBreaker(failure_threshold=1, reset_timeout=10)
    clock = mocker.patch("charter_backend.app.core.reliability.time.time", return_value=1000.0)

    async def failing_func():
        raise ValueError("Boom")

    async def working_func():
        return "ok"

    with pytest.raises(ValueError):
        await cb.call(failing_func)
    assert cb.state == "OPEN"

    clock.return_value = 1011.0
    assert await cb.call(working_func) == "ok"
    assert cb.state == "CLOSED"


@pytest.mark.asyncio
async def test_payment_survives_publisher_failure(db_session, ctx, booking_service, customer):
    booking = await booking_service.create_booking(customer.id, [trip_window(START, END)])
    await booking_service.add_charge(booking.id, "Rental", Decimal("2000000"))
    await booking_service.send_quotation(booking.id)

    publisher = ExplodingPublisher()
    finance = FinanceService(db_session, ctx, publisher)
    outcome = await finance.record_payment(booking.id, Decimal("2000000"), "Bank transfer")

    assert publisher.attempts == 2  # PaymentReceived + BookingConfirmed
    assert outcome.booking_status == BookingStatus.PAID_IN_FULL
    assert len(await finance.payments_of(booking.id)) == 1


@pytest.mark.asyncio
async def test_publish_safely_logs_and_continues(caplog):
    publisher = ExplodingPublisher()
    events = [
        VehicleAssigned(tenant_id=1, assignment_id=1, trip_id=1, vehicle_id=1),
        VehicleAssigned(tenant_id=1, assignment_id=2, trip_id=2, vehicle_id=1),
    ]

    with caplog.at_level("ERROR", logger="charter.events"):
        await publish_safely(publisher, events)

    assert publisher.attempts == 2
    assert caplog.text.count("Failed to publish event") == 2


@pytest.mark.asyncio
async def test_in_memory_bus_isolates_handlers():
    bus = InMemoryEventBus()
    received = []

    def broken(event):
        raise RuntimeError("handler bug")

    async def recording(event):
        received.append(event)

    bus.subscribe(PaymentReceived, broken)
    bus.subscribe(PaymentReceived, recording)

    event = PaymentReceived(tenant_id=1, payment_id=3, booking_id=4, amount=Decimal("10"), method="Cash")
    await bus.publish(event)
    assert received == [event]

    bus.unsubscribe(PaymentReceived, recording)
    assert bus.handler_count(PaymentReceived) == 1


@pytest.mark.asyncio
async def test_redis_publisher_sends_json():
    client = AsyncMock()
    publisher = RedisEventPublisher(client, "charter.events", breaker=CircuitBreaker())
    event = VehicleAssigned(tenant_id=5, assignment_id=6, trip_id=7, vehicle_id=8, driver_id=9)

    await publisher.publish(event)

    channel, payload = client.publish.call_args.args
    assert channel == "charter.events"
    body = json.loads(payload)
    assert body["event_name"] == "VehicleAssigned"
    assert body["tenant_id"] == 5
    assert body["driver_id"] == 9


@pytest.mark.asyncio
async def test_redis_publisher_opens_circuit():
    client = AsyncMock()
    client.publish.side_effect = ConnectionError("refused")
    publisher = RedisEventPublisher(client, "charter.events", breaker=CircuitBreaker(failure_threshold=1))
    event = VehicleAssigned(tenant_id=5, assignment_id=6, trip_id=7, vehicle_id=8)

    with pytest.raises(ConnectionError):
        await publisher.publish(event)
    with pytest.raises(CircuitOpenError):
        await publisher.publish(event)
    assert client.publish.await_count == 1


@pytest.mark.asyncio
async def test_transport_status_reports_outage():
    from redis.exceptions import ConnectionError as RedisConnectionError
    from charter_backend.app.core.redis_client import transport_status

    healthy = AsyncMock()
    assert await transport_status(healthy) == "up"

    broken = AsyncMock()
    broken.ping.side_effect = RedisConnectionError("Connection refused")
    assert await transport_status(broken) == "down"


@pytest.mark.asyncio
async def test_health_stays_up_when_transport_is_down(client, mocker):
    from charter_backend.app.core.config import settings

    mocker.patch.object(settings, "notifications_enabled", True)
    mocker.patch("charter_backend.app.core.redis_client.transport_status", AsyncMock(return_value="down"))

    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["notifications"] == "down"


@pytest.mark.asyncio
async def test_circuit_breaker_trial_failure_reopens(mocker):
    cb = CircuitBreaker(failure_threshold=2, reset_timeout=10, name="notifications")
    clock = mocker.patch("charter_backend.app.core.reliability.time.time", return_value=1000.0)

    async def failing_func():
        raise ValueError("Boom")

    for _ in range(2):
        with pytest.raises(ValueError):
            await cb.call(failing_func)

    clock.return_value = 1011.0
    with pytest.raises(ValueError):
        await cb.call(failing_func)
    assert cb.state == "OPEN"

    with pytest.raises(CircuitOpenError) as exc_info:
        await cb.call(failing_func)
    assert exc_info.value.name == "notifications"


@pytest.mark.asyncio
async def test_circuit_breaker_counts_consecutive_failures_only():
    cb = CircuitBreaker(failure_threshold=2)

    async def failing_func():
        raise ValueError("Boom")

    async def working_func():
        return "ok"

    with pytest.raises(ValueError):
        await cb.call(failing_func)
    await cb.call(working_func)
    with pytest.raises(ValueError):
        await cb.call(failing_func)

    assert cb.state == "CLOSED"
    assert cb.failures == 1
