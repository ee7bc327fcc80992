"""
Vehicle locking for the assignment write path.

`AssignmentCoordinator.assign` is a check-then-act sequence. Within one
process, concurrent callers for the same vehicle are serialized by an
asyncio.Lock held across check -> insert -> commit. Across processes the
transaction additionally locks the vehicle row (SELECT ... FOR UPDATE) and
the database constraints on trip_assignments are the final guard.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Dict, Tuple


class VehicleLockRegistry:
    """
    One asyncio.Lock per (tenant, vehicle).

    Create one registry per application (or per test) and pass it to the
    coordinators that need it.
    """

    def __init__(self):
        self._locks: Dict[Tuple[int, int], asyncio.Lock] = {}

    def lock_for(self, tenant_id: int, vehicle_id: int) -> asyncio.Lock:
        return self._locks.setdefault((tenant_id, vehicle_id), asyncio.Lock())

    def is_locked(self, tenant_id: int, vehicle_id: int) -> bool:
        lock = self._locks.get((tenant_id, vehicle_id))
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, tenant_id: int, vehicle_id: int):
        """Hold the vehicle's assignment lock for the duration of the block."""
        async with self.lock_for(tenant_id, vehicle_id):
            yield
