"""
Centralized Test Configuration.
"""

import pytest
from datetime import datetime
from decimal import Decimal
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from charter_backend.app.main import app
from charter_backend.app.db.session import get_db, Base
from charter_backend.app.core.tenancy import TenantContext
from charter_backend.app.domain.fleet.assignment_coordinator import AssignmentCoordinator
from charter_backend.app.models.booking_enums import ChargeKind
from charter_backend.app.models.fleet_enums import VehicleCategory
from charter_backend.app.models.tenant import Tenant
from charter_backend.app.services.booking_service import BookingService
from charter_backend.app.services.event_publisher import InMemoryEventBus
from charter_backend.app.services.finance_service import FinanceService
from charter_backend.app.services.fleet_service import FleetService
from charter_backend.app.services.vehicle_locking import VehicleLockRegistry
from charter_backend.tests.factories import trip_window

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Event handler to enable foreign keys for SQLite
from sqlalchemy import event
from sqlalchemy.pool import Pool

@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)).lower():
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


@pytest.fixture(scope="session", autouse=True)
def apply_overrides():
    """Apply overrides once for the session."""

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield

    app.dependency_overrides = {}


@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def event_bus():
    """In-memory publisher, also installed on the app for API tests."""
    bus = InMemoryEventBus()
    original = app.state.event_publisher
    app.state.event_publisher = bus
    yield bus
    app.state.event_publisher = original


@pytest.fixture
def published(event_bus):
    """Every event delivered to the bus, in order."""
    from charter_backend.app.schemas.events import BookingConfirmed, PaymentReceived, VehicleAssigned

    events = []
    for event_type in (BookingConfirmed, PaymentReceived, VehicleAssigned):
        event_bus.subscribe(event_type, events.append)
    return events


@pytest.fixture
def vehicle_locks():
    return VehicleLockRegistry()


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


# Tenants

async def _create_tenant(session, name):
    tenant = Tenant(name=name, is_active=True)
    session.add(tenant)
    await session.commit()
    return tenant


@pytest.fixture
async def tenant(db_session):
    return await _create_tenant(db_session, "Sinar Jaya Trans")


@pytest.fixture
async def other_tenant(db_session):
    return await _create_tenant(db_session, "Rival Charter")


@pytest.fixture
def ctx(tenant):
    return TenantContext(tenant_id=tenant.id, actor_id=7)


@pytest.fixture
def other_ctx(other_tenant):
    return TenantContext(tenant_id=other_tenant.id, actor_id=9)


@pytest.fixture
def tenant_headers(tenant):
    return {"X-Tenant-ID": str(tenant.id), "X-Actor-ID": "7"}


# Services bound to the test session

@pytest.fixture
def booking_service(db_session, ctx, event_bus):
    return BookingService(db_session, ctx, event_bus)


@pytest.fixture
def finance_service(db_session, ctx, event_bus):
    return FinanceService(db_session, ctx, event_bus)


@pytest.fixture
def fleet_service(db_session, ctx):
    return FleetService(db_session, ctx)


@pytest.fixture
def coordinator(db_session, ctx, vehicle_locks, event_bus):
    return AssignmentCoordinator(db_session, ctx, vehicle_locks, event_bus)


# Seed data

@pytest.fixture
async def customer(booking_service):
    return await booking_service.create_customer("PT Maju Mundur", phone="0812000111")


@pytest.fixture
async def vehicle(fleet_service):
    return await fleet_service.add_vehicle(
        plate_number="B 7001 XA",
        category=VehicleCategory.BIG_BUS,
        seat_capacity=59,
        nickname="Big Blue 01"
    )


@pytest.fixture
async def driver(fleet_service):
    return await fleet_service.add_driver("Budi Santoso", nickname="Budi", license_expiry=datetime(2030, 1, 1).date())


@pytest.fixture
def make_booking(booking_service, finance_service, customer):
    """
    Factory for a booking with one trip and a 10,000,000 primary charge.

    confirm=True sends the quotation and records a down payment, leaving
    the booking in PAYMENT_RECEIVED (assignable).
    """

    async def _make(start: datetime, end: datetime, confirm: bool = True, pay_in_full: bool = False):
        booking = await booking_service.create_booking(customer.id, [trip_window(start, end)])
        await booking_service.add_charge(booking.id, "Bus rental", Decimal("10000000"), quantity=1, kind=ChargeKind.PRIMARY)
        if confirm:
            await booking_service.send_quotation(booking.id)
            amount = Decimal("10000000") if pay_in_full else Decimal("3000000")
            await finance_service.record_payment(booking.id, amount, "Bank transfer")
        trips = await booking_service.trips_of(booking.id)
        return booking, trips[0]

    return _make
