"""Dashboard API routes.

Every endpoint answers for the signed-in user's organization. A missing
session, or a user not yet assigned to an organization, gets the empty
shape of the response rather than an error.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from leo_shared import schemas
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from portal.auth.jwt import get_current_user_optional
from portal.dashboard.organization import get_current_user_organization_id
from portal.dashboard.service import (
    get_call_count_breakdown,
    get_call_volume_data,
    get_dashboard_stats,
    get_recent_activity,
    get_recent_call_records,
    get_user_properties,
    load_dashboard_overview,
)
from portal.db.capabilities import SchemaCapabilities, get_capabilities
from portal.db.database import get_db, get_session_factory
from portal.db.models import User

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


async def get_organization_id(
    user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
) -> UUID | None:
    """Dependency resolving the caller's organization, or None."""
    if user is None:
        return None
    return await get_current_user_organization_id(db, user.id)


@router.get("/overview", response_model=schemas.DashboardOverview)
async def dashboard_overview(
    limit: int = Query(schemas.DEFAULT_ACTIVITY_LIMIT, ge=1, le=100),
    organization_id: UUID | None = Depends(get_organization_id),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
):
    """Stats, properties and recent activity in one request."""
    return await load_dashboard_overview(
        session_factory, capabilities, organization_id, activity_limit=limit
    )


@router.get("/stats", response_model=schemas.DashboardStats)
async def dashboard_stats(
    organization_id: UUID | None = Depends(get_organization_id),
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
):
    """Total calls, tour rate, average call duration and active properties."""
    return await get_dashboard_stats(db, capabilities, organization_id)


@router.get("/properties", response_model=list[schemas.PropertyWithStats])
async def dashboard_properties(
    organization_id: UUID | None = Depends(get_organization_id),
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
):
    """Properties with per-property call statistics."""
    return await get_user_properties(db, capabilities, organization_id)


@router.get("/activity", response_model=list[schemas.ActivityItem])
async def dashboard_activity(
    limit: int = Query(schemas.DEFAULT_ACTIVITY_LIMIT, ge=1, le=100),
    organization_id: UUID | None = Depends(get_organization_id),
    db: AsyncSession = Depends(get_db),
):
    """Recent activity feed, newest first."""
    return await get_recent_activity(db, organization_id, limit)


@router.get("/calls", response_model=list[schemas.CallRecord])
async def dashboard_calls(
    limit: int = Query(schemas.DEFAULT_ACTIVITY_LIMIT, ge=1, le=100),
    organization_id: UUID | None = Depends(get_organization_id),
    db: AsyncSession = Depends(get_db),
):
    """Recent call records with property names."""
    return await get_recent_call_records(db, organization_id, limit)


@router.get("/call-volume", response_model=list[schemas.CallVolumePoint])
async def dashboard_call_volume(
    days: int = Query(schemas.DEFAULT_VOLUME_DAYS, ge=0, le=365),
    organization_id: UUID | None = Depends(get_organization_id),
    db: AsyncSession = Depends(get_db),
):
    """Daily calls and tours over the trailing window."""
    return await get_call_volume_data(db, organization_id, days)


@router.get("/call-counts", response_model=schemas.CallCountBreakdown)
async def dashboard_call_counts(
    organization_id: UUID | None = Depends(get_organization_id),
    db: AsyncSession = Depends(get_db),
):
    """Call record counts across trailing windows."""
    return await get_call_count_breakdown(db, organization_id)
