"""
Trip Assignment database model.

Links one trip to one vehicle (plus optional driver and co-driver).
Assignments are never deleted; they are soft-deleted by moving to CANCELLED.

Double-booking is guarded at the database level:
- a partial unique index on (vehicle_id, trip_id) among non-CANCELLED rows
- on PostgreSQL, an exclusion constraint forbidding two non-CANCELLED rows
  of the same vehicle with intersecting [window_start, window_end] windows
"""

from sqlalchemy import Column, Integer, DateTime, ForeignKey, Enum, Index, DDL, event, text
from sqlalchemy.sql import func
from charter_backend.app.db.session import Base
from charter_backend.app.models.fleet_enums import AssignmentStatus


class TripAssignment(Base):
    """Trip Assignment model."""
    __tablename__ = "trip_assignments"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    tenant_id = Column(Integer, ForeignKey('tenants.id'), nullable=False, index=True)

    # References (ids only, lookups go through the repositories)
    trip_id = Column(Integer, ForeignKey('trips.id'), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey('vehicles.id'), nullable=False, index=True)
    driver_id = Column(Integer, ForeignKey('drivers.id'), nullable=True, index=True)
    co_driver_id = Column(Integer, ForeignKey('drivers.id'), nullable=True, index=True)

    status = Column(Enum(AssignmentStatus), default=AssignmentStatus.SCHEDULED, nullable=False, index=True)

    # Copy of the trip window at assignment time (used by the overlap guard)
    window_start = Column(DateTime(timezone=True), nullable=False)
    window_end = Column(DateTime(timezone=True), nullable=False)

    # Odometer readings
    odometer_start = Column(Integer, nullable=True)
    odometer_end = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index(
            'uq_trip_assignments_vehicle_trip_active', 'vehicle_id', 'trip_id', unique=True,
            postgresql_where=text("status <> 'CANCELLED'"),
            sqlite_where=text("status <> 'CANCELLED'"),
        ),
        Index('ix_trip_assignments_vehicle_window', 'vehicle_id', 'window_start', 'window_end'),
    )

    @property
    def distance_km(self):
        if self.odometer_start is None or self.odometer_end is None:
            return None
        return self.odometer_end - self.odometer_start

    def __repr__(self):
        return f"<TripAssignment(id={self.id}, trip_id={self.trip_id}, vehicle_id={self.vehicle_id}, status='{self.status.value}')>"


event.listen(
    Base.metadata,
    "before_create",
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql"),
)

event.listen(
    TripAssignment.__table__,
    "after_create",
    DDL(
        "ALTER TABLE trip_assignments ADD CONSTRAINT ex_trip_assignments_vehicle_window "
        "EXCLUDE USING gist (vehicle_id WITH =, tstzrange(window_start, window_end, '[]') WITH &&) "
        "WHERE (status <> 'CANCELLED')"
    ).execute_if(dialect="postgresql"),
)
