"""
Tenant scoping.

A TenantContext is built once per request and handed explicitly to every
repository and service. There is no process-wide "current tenant".
"""

from typing import Optional

from fastapi import Depends, Header
from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from charter_backend.app.core.exceptions import ResourceNotFoundError
from charter_backend.app.db.session import get_db
from charter_backend.app.models.tenant import Tenant


class TenantContext(BaseModel):
    """Who is calling, and on behalf of which tenant."""
    model_config = ConfigDict(frozen=True)

    tenant_id: int
    actor_id: Optional[int] = None


async def get_tenant_context(
    x_tenant_id: int = Header(..., description="Tenant the request operates on"),
    x_actor_id: Optional[int] = Header(None, description="Staff user performing the request"),
    db: AsyncSession = Depends(get_db)
) -> TenantContext:
    """
    FastAPI dependency resolving the tenant context from request headers.

    Authentication happens upstream; this only checks that the tenant
    exists and is active.

    Raises:
        ResourceNotFoundError: Unknown or inactive tenant
    """
    result = await db.execute(
        select(Tenant).where(Tenant.id == x_tenant_id, Tenant.is_active == True)
    )
    if result.scalar_one_or_none() is None:
        raise ResourceNotFoundError("Tenant", x_tenant_id)

    return TenantContext(tenant_id=x_tenant_id, actor_id=x_actor_id)
