"""
End-to-end API tests.

Drives the whole booking flow over HTTP: customer, booking, charges,
quotation, payments, fleet and assignments.
"""

from decimal import Decimal

import pytest


async def _setup_paid_booking(client, headers, start, end, amount="3000000"):
    customer = await client.post("/v1/customers", json={"name": "SMA 1 Bandung", "kind": "SCHOOL"}, headers=headers)
    assert customer.status_code == 201

    booking = await client.post("/v1/bookings", json={
        "customer_id": customer.json()["id"],
        "trips": [{
            "start_time": start,
            "end_time": end,
            "pickup_location": "Bandung",
            "destination": "Yogyakarta",
            "requested_category": "BIG_BUS"
        }]
    }, headers=headers)
    assert booking.status_code == 201
    booking_id = booking.json()["id"]

    charge = await client.post(f"/v1/bookings/{booking_id}/charges", json={
        "description": "Big bus 3 days", "quantity": 3, "unit_price": "3000000"
    }, headers=headers)
    assert charge.status_code == 201

    quote = await client.post(f"/v1/bookings/{booking_id}/transitions", json={"target": "QUOTATION_SENT"}, headers=headers)
    assert quote.status_code == 200

    payment = await client.post(f"/v1/bookings/{booking_id}/payments", json={
        "amount": amount, "method": "Bank transfer"
    }, headers=headers)
    assert payment.status_code == 201
    return booking.json(), payment.json()


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["notifications"] == "disabled"
    assert "X-Correlation-ID" in response.headers


@pytest.mark.asyncio
async def test_missing_tenant_header_rejected(client):
    response = await client.get("/v1/bookings")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_unknown_tenant_is_not_found(client):
    response = await client.get("/v1/bookings", headers={"X-Tenant-ID": "999"})
    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"


@pytest.mark.asyncio
async def test_booking_payment_flow(client, tenant_headers, published):
    booking, payment = await _setup_paid_booking(
        client, tenant_headers, "2025-01-10T06:00:00", "2025-01-12T22:00:00"
    )

    assert booking["status"] == "DRAFT"
    assert booking["code"].startswith("BOOK/")
    assert len(booking["trips"]) == 1
    assert payment["booking_status"] == "PAYMENT_RECEIVED"
    assert Decimal(payment["summary"]["grand_total"]) == Decimal("9000000")

    summary = await client.get(f"/v1/bookings/{booking['id']}/summary", headers=tenant_headers)
    assert Decimal(summary.json()["outstanding"]) == Decimal("6000000")

    targets = await client.get(f"/v1/bookings/{booking['id']}/transitions", headers=tenant_headers)
    assert targets.json()["allowed_targets"] == ["PAID_IN_FULL", "CANCELLED"]

    premature = await client.post(
        f"/v1/bookings/{booking['id']}/transitions", json={"target": "PAID_IN_FULL"}, headers=tenant_headers
    )
    assert premature.status_code == 409
    assert premature.json()["error_code"] == "ERR_STATE_002"

    final = await client.post(f"/v1/bookings/{booking['id']}/payments", json={
        "amount": "6000000", "method": "Cash"
    }, headers=tenant_headers)
    assert final.json()["booking_status"] == "PAID_IN_FULL"
    assert final.json()["summary"]["is_paid_in_full"] is True

    assert [e.event_name for e in published] == ["PaymentReceived", "BookingConfirmed", "PaymentReceived"]


@pytest.mark.asyncio
async def test_invalid_transition_is_conflict(client, tenant_headers):
    customer = await client.post("/v1/customers", json={"name": "Walk-in"}, headers=tenant_headers)
    booking = await client.post("/v1/bookings", json={
        "customer_id": customer.json()["id"],
        "trips": [{
            "start_time": "2025-02-01T08:00:00",
            "end_time": "2025-02-01T18:00:00",
            "pickup_location": "Jakarta",
            "destination": "Bogor"
        }]
    }, headers=tenant_headers)

    response = await client.post(
        f"/v1/bookings/{booking.json()['id']}/transitions", json={"target": "COMPLETED"}, headers=tenant_headers
    )
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_STATE_001"
    assert response.json()["details"] == {"entity": "booking", "current": "DRAFT", "target": "COMPLETED"}


@pytest.mark.asyncio
async def test_inverted_trip_window_rejected(client, tenant_headers):
    customer = await client.post("/v1/customers", json={"name": "Walk-in"}, headers=tenant_headers)
    response = await client.post("/v1/bookings", json={
        "customer_id": customer.json()["id"],
        "trips": [{
            "start_time": "2025-02-01T18:00:00",
            "end_time": "2025-02-01T08:00:00",
            "pickup_location": "Jakarta",
            "destination": "Bogor"
        }]
    }, headers=tenant_headers)
    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION_001"


@pytest.mark.asyncio
async def test_trip_window_with_one_offset_rejected(client, tenant_headers):
    customer = await client.post("/v1/customers", json={"name": "Walk-in"}, headers=tenant_headers)
    response = await client.post("/v1/bookings", json={
        "customer_id": customer.json()["id"],
        "trips": [{
            "start_time": "2024-09-01T08:00:00",
            "end_time": "2024-09-01T18:00:00Z",
            "pickup_location": "Jakarta",
            "destination": "Bogor"
        }]
    }, headers=tenant_headers)
    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION_001"

    listed = await client.get("/v1/bookings", headers=tenant_headers)
    assert listed.json() == []


@pytest.mark.asyncio
async def test_list_bookings_by_customer(client, tenant_headers):
    booking, _ = await _setup_paid_booking(client, tenant_headers, "2025-07-01T06:00:00", "2025-07-01T20:00:00")
    other = await client.post("/v1/customers", json={"name": "Walk-in"}, headers=tenant_headers)

    mine = await client.get("/v1/bookings", params={"customer_id": booking["customer_id"]}, headers=tenant_headers)
    assert [b["id"] for b in mine.json()] == [booking["id"]]

    none = await client.get("/v1/bookings", params={"customer_id": other.json()["id"]}, headers=tenant_headers)
    assert none.json() == []

    unknown = await client.get("/v1/bookings", params={"customer_id": 424242}, headers=tenant_headers)
    assert unknown.status_code == 404


@pytest.mark.asyncio
async def test_assignment_flow(client, tenant_headers):
    bus = await client.post("/v1/fleet/vehicles", json={
        "plate_number": "d 7788 ab", "nickname": "Si Merah", "category": "BIG_BUS", "seat_capacity": 59
    }, headers=tenant_headers)
    assert bus.status_code == 201
    bus_id = bus.json()["id"]
    assert bus.json()["plate_number"] == "D 7788 AB"
    assert bus.json()["display_name"] == "Si Merah"

    driver = await client.post("/v1/fleet/drivers", json={"full_name": "Slamet Riyadi"}, headers=tenant_headers)
    assert driver.status_code == 201

    first, _ = await _setup_paid_booking(client, tenant_headers, "2025-03-01T06:00:00", "2025-03-03T10:00:00")
    second, _ = await _setup_paid_booking(client, tenant_headers, "2025-03-02T06:00:00", "2025-03-04T10:00:00")
    third, _ = await _setup_paid_booking(client, tenant_headers, "2025-03-04T12:00:00", "2025-03-04T20:00:00")

    assigned = await client.post("/v1/assignments", json={
        "trip_id": first["trips"][0]["id"], "vehicle_id": bus_id, "driver_id": driver.json()["id"]
    }, headers=tenant_headers)
    assert assigned.status_code == 201
    assert assigned.json()["assignment"]["status"] == "SCHEDULED"
    assert assigned.json()["warnings"] == []

    conflict = await client.post("/v1/assignments", json={
        "trip_id": second["trips"][0]["id"], "vehicle_id": bus_id
    }, headers=tenant_headers)
    assert conflict.status_code == 409
    assert conflict.json()["error_code"] == "ERR_CONFLICT_001"
    assert conflict.json()["details"]["conflicting_trip_ids"] == [first["trips"][0]["id"]]

    assignment_id = assigned.json()["assignment"]["id"]
    cancelled = await client.post(f"/v1/assignments/{assignment_id}/cancel", headers=tenant_headers)
    assert cancelled.json()["status"] == "CANCELLED"

    retry = await client.post("/v1/assignments", json={
        "trip_id": second["trips"][0]["id"], "vehicle_id": bus_id
    }, headers=tenant_headers)
    assert retry.status_code == 201

    tight = await client.post("/v1/assignments", json={
        "trip_id": third["trips"][0]["id"], "vehicle_id": bus_id
    }, headers=tenant_headers)
    assert tight.status_code == 201
    assert [w["kind"] for w in tight.json()["warnings"]] == ["BUFFER_BEFORE"]
    assert tight.json()["warnings"][0]["gap_hours"] == 2

    available = await client.get("/v1/fleet/vehicles/available", params={
        "window_start": "2025-03-03T00:00:00", "window_end": "2025-03-03T23:00:00"
    }, headers=tenant_headers)
    assert available.json()["vehicles"] == []

    counts = await client.get("/v1/fleet/vehicles/availability-by-category", params={
        "window_start": "2025-04-01T00:00:00", "window_end": "2025-04-02T00:00:00"
    }, headers=tenant_headers)
    assert counts.json()["counts"]["BIG_BUS"] == 1
    assert counts.json()["counts"]["HIACE"] == 0


@pytest.mark.asyncio
async def test_assignment_odometer_flow(client, tenant_headers):
    bus = await client.post("/v1/fleet/vehicles", json={
        "plate_number": "B 1 CC", "category": "BIG_BUS", "seat_capacity": 45
    }, headers=tenant_headers)
    booking, _ = await _setup_paid_booking(client, tenant_headers, "2025-06-01T06:00:00", "2025-06-01T22:00:00")

    assigned = await client.post("/v1/assignments", json={
        "trip_id": booking["trips"][0]["id"], "vehicle_id": bus.json()["id"]
    }, headers=tenant_headers)
    assignment_id = assigned.json()["assignment"]["id"]

    started = await client.post(f"/v1/assignments/{assignment_id}/start", json={"odometer": 120000}, headers=tenant_headers)
    assert started.json()["status"] == "IN_PROGRESS"

    backwards = await client.post(f"/v1/assignments/{assignment_id}/complete", json={"odometer": 100}, headers=tenant_headers)
    assert backwards.status_code == 422

    completed = await client.post(f"/v1/assignments/{assignment_id}/complete", json={"odometer": 120450}, headers=tenant_headers)
    assert completed.json()["status"] == "COMPLETED"
    assert completed.json()["distance_km"] == 450

    again = await client.post(f"/v1/assignments/{assignment_id}/cancel", headers=tenant_headers)
    assert again.status_code == 409


@pytest.mark.asyncio
async def test_other_tenant_cannot_read_booking(client, tenant_headers, other_tenant):
    booking, _ = await _setup_paid_booking(client, tenant_headers, "2025-05-01T06:00:00", "2025-05-01T20:00:00")

    response = await client.get(f"/v1/bookings/{booking['id']}", headers={"X-Tenant-ID": str(other_tenant.id)})
    assert response.status_code == 404
