"""Dashboard queries for one organization.

Fetches call and property rows from the database and hands them to the
``reporting`` package for aggregation. Every public function returns the
zero-value shape of its result when the organization is unknown, and each
sub-query degrades to an empty result on failure so a partial dashboard
can still render.
"""

import asyncio
import logging
from collections import defaultdict
from collections.abc import Awaitable
from datetime import date, datetime, time, timedelta, timezone
from typing import TypeVar
from uuid import UUID

from leo_shared import schemas
from reporting.aggregation import (
    build_activity_feed,
    build_dashboard_stats,
    bucket_call_volume,
    count_property_outcomes,
    volume_window,
)
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from portal.db.capabilities import SchemaCapabilities, run_with_active_fallback
from portal.db.models import CallRecord, Property

logger = logging.getLogger("leo-portal-dashboard")

T = TypeVar("T")

# Trailing windows reported by the call count breakdown
BREAKDOWN_WINDOWS = {"7days": 7, "30days": 30, "90days": 90}
ALL_TIME_START = datetime(2020, 1, 1, tzinfo=timezone.utc)


async def _safely(db: AsyncSession, label: str, operation: Awaitable[T], default: T) -> T:
    """Await a query, logging failures and falling back to ``default``."""
    try:
        return await operation
    except SQLAlchemyError as e:
        logger.error(f"Error fetching {label}: {e}")
        await db.rollback()
        return default


def _start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


# =============================================================================
# Summary Statistics
# =============================================================================


async def count_calls(db: AsyncSession, organization_id: UUID) -> int:
    """Exact number of call records for an organization."""
    result = await db.execute(
        select(func.count())
        .select_from(CallRecord)
        .where(CallRecord.organization_id == organization_id)
    )
    return result.scalar_one()


async def count_active_properties(
    db: AsyncSession, capabilities: SchemaCapabilities, organization_id: UUID
) -> int:
    """Number of active properties. Without an is_active column, all count."""

    async def _query() -> int:
        stmt = (
            select(func.count())
            .select_from(Property)
            .where(Property.organization_id == organization_id)
        )
        if capabilities.has_active_flag("properties"):
            stmt = stmt.where(Property.is_active.is_(True))
        return (await db.execute(stmt)).scalar_one()

    return await run_with_active_fallback(db, capabilities, "properties", _query)


async def get_dashboard_stats(
    db: AsyncSession,
    capabilities: SchemaCapabilities,
    organization_id: UUID | None,
) -> schemas.DashboardStats:
    """Summary statistics: total calls, tour rate, average duration, active properties."""
    if organization_id is None:
        return schemas.DashboardStats()

    total_calls = await _safely(
        db, "call count for stats", count_calls(db, organization_id), 0
    )

    async def _call_rows():
        result = await db.execute(
            select(CallRecord.tour_scheduled_for, CallRecord.duration_ms).where(
                CallRecord.organization_id == organization_id
            )
        )
        return result.all()

    rows = await _safely(db, "calls for stats", _call_rows(), [])

    active_properties = await _safely(
        db,
        "properties count",
        count_active_properties(db, capabilities, organization_id),
        0,
    )

    return build_dashboard_stats(
        total_calls=total_calls,
        tour_values=[row.tour_scheduled_for for row in rows],
        durations=[row.duration_ms for row in rows],
        active_properties=active_properties,
    )


# =============================================================================
# Properties
# =============================================================================


async def _fetch_properties(
    db: AsyncSession, capabilities: SchemaCapabilities, organization_id: UUID
) -> list[schemas.Property]:
    async def _query() -> list[schemas.Property]:
        columns = capabilities.columns("properties", list(Property.__table__.columns))
        result = await db.execute(
            select(*columns)
            .where(Property.organization_id == organization_id)
            .order_by(Property.created_at.desc())
        )
        return [schemas.Property.model_validate(dict(row)) for row in result.mappings()]

    return await run_with_active_fallback(db, capabilities, "properties", _query)


async def get_user_properties(
    db: AsyncSession,
    capabilities: SchemaCapabilities,
    organization_id: UUID | None,
) -> list[schemas.PropertyWithStats]:
    """The organization's properties, newest first, with call statistics."""
    if organization_id is None:
        return []

    properties = await _safely(
        db,
        "properties",
        _fetch_properties(db, capabilities, organization_id),
        [],
    )
    if not properties:
        return []

    property_ids = [p.id for p in properties]

    async def _call_counts() -> dict[UUID, int]:
        result = await db.execute(
            select(CallRecord.property_id, func.count())
            .where(CallRecord.property_id.in_(property_ids))
            .group_by(CallRecord.property_id)
        )
        return {property_id: count for property_id, count in result.all()}

    async def _call_outcomes() -> dict[UUID, list[tuple]]:
        result = await db.execute(
            select(
                CallRecord.property_id,
                CallRecord.call_successful,
                CallRecord.tour_scheduled_for,
            ).where(CallRecord.property_id.in_(property_ids))
        )
        grouped: dict[UUID, list[tuple]] = defaultdict(list)
        for property_id, call_successful, tour_scheduled_for in result.all():
            grouped[property_id].append((call_successful, tour_scheduled_for))
        return grouped

    call_counts = await _safely(db, "call counts for properties", _call_counts(), {})
    outcomes = await _safely(db, "call stats for properties", _call_outcomes(), {})

    properties_with_stats = []
    for prop in properties:
        lead_count, conversion_count = count_property_outcomes(outcomes.get(prop.id, []))
        properties_with_stats.append(
            schemas.PropertyWithStats(
                **prop.model_dump(),
                call_count=call_counts.get(prop.id, 0),
                lead_count=lead_count,
                conversion_count=conversion_count,
            )
        )
    return properties_with_stats


# =============================================================================
# Recent Calls & Activity
# =============================================================================


async def get_recent_call_records(
    db: AsyncSession,
    organization_id: UUID | None,
    limit: int = schemas.DEFAULT_ACTIVITY_LIMIT,
) -> list[schemas.CallRecord]:
    """Most recent calls first, each with its property's name."""
    if organization_id is None:
        return []

    async def _calls() -> list[schemas.CallRecord]:
        result = await db.execute(
            select(CallRecord)
            .where(CallRecord.organization_id == organization_id)
            .order_by(CallRecord.start_timestamp.desc())
            .limit(limit)
        )
        return [schemas.CallRecord.model_validate(c) for c in result.scalars()]

    calls = await _safely(db, "call records", _calls(), [])
    if not calls:
        return []

    property_ids = list({call.property_id for call in calls})

    async def _property_names() -> dict[UUID, str] | None:
        result = await db.execute(
            select(Property.id, Property.name).where(Property.id.in_(property_ids))
        )
        return {property_id: name for property_id, name in result.all()}

    names = await _safely(db, "property names", _property_names(), None)
    if names is None:
        return calls

    return [
        call.model_copy(
            update={
                "property_name": names.get(
                    call.property_id, schemas.UNKNOWN_PROPERTY_NAME
                )
            }
        )
        for call in calls
    ]


async def get_recent_activity(
    db: AsyncSession,
    organization_id: UUID | None,
    limit: int = schemas.DEFAULT_ACTIVITY_LIMIT,
) -> list[schemas.ActivityItem]:
    """Activity feed built from the most recent calls."""
    calls = await get_recent_call_records(db, organization_id, limit)
    return build_activity_feed(calls)


# =============================================================================
# Call Volume
# =============================================================================


async def get_call_volume_data(
    db: AsyncSession,
    organization_id: UUID | None,
    days: int = schemas.DEFAULT_VOLUME_DAYS,
    today: date | None = None,
) -> list[schemas.CallVolumePoint]:
    """Calls and tours per day over the trailing ``days`` days, today included.

    Always ``days + 1`` points; an unknown organization or a failed query
    yields all-zero days.
    """
    start, end = volume_window(days, today)
    if organization_id is None:
        return bucket_call_volume([], days, end)

    async def _query():
        result = await db.execute(
            select(CallRecord.start_timestamp, CallRecord.tour_scheduled_for)
            .where(CallRecord.organization_id == organization_id)
            .where(CallRecord.start_timestamp >= _start_of_day(start))
            .where(CallRecord.start_timestamp < _start_of_day(end + timedelta(days=1)))
            .order_by(CallRecord.start_timestamp.asc())
        )
        return result.all()

    rows = await _safely(db, "call volume data", _query(), [])
    return bucket_call_volume(
        [(row.start_timestamp, row.tour_scheduled_for) for row in rows], days, end
    )


async def get_call_count_breakdown(
    db: AsyncSession,
    organization_id: UUID | None,
    now: datetime | None = None,
) -> schemas.CallCountBreakdown:
    """Call record counts overall, for the organization, and per trailing window."""
    now = now or datetime.now(timezone.utc)

    async def _count(*conditions) -> int:
        stmt = select(func.count()).select_from(CallRecord)
        for condition in conditions:
            stmt = stmt.where(condition)
        return (await db.execute(stmt)).scalar_one()

    total = await _safely(db, "total call count", _count(), 0)
    if organization_id is None:
        return schemas.CallCountBreakdown(total_records=total)

    in_org = CallRecord.organization_id == organization_id
    organization_total = await _safely(db, "organization call count", _count(in_org), 0)

    ranges = {key: now - timedelta(days=days) for key, days in BREAKDOWN_WINDOWS.items()}
    ranges["allTime"] = ALL_TIME_START

    date_range_records = {}
    for key, since in ranges.items():
        date_range_records[key] = await _safely(
            db,
            f"{key} call count",
            _count(
                in_org,
                CallRecord.start_timestamp >= since,
                CallRecord.start_timestamp <= now,
            ),
            0,
        )

    return schemas.CallCountBreakdown(
        total_records=total,
        organization_records=organization_total,
        date_range_records=date_range_records,
    )


# =============================================================================
# Overview (fan-out / fan-in)
# =============================================================================


async def load_dashboard_overview(
    session_factory: async_sessionmaker[AsyncSession],
    capabilities: SchemaCapabilities,
    organization_id: UUID | None,
    activity_limit: int = schemas.DEFAULT_ACTIVITY_LIMIT,
) -> schemas.DashboardOverview:
    """Fetch properties, activity and stats concurrently.

    Each branch gets its own session and fails independently.
    """
    if organization_id is None:
        return schemas.DashboardOverview()

    async def _properties():
        async with session_factory() as db:
            return await get_user_properties(db, capabilities, organization_id)

    async def _activity():
        async with session_factory() as db:
            return await get_recent_activity(db, organization_id, activity_limit)

    async def _stats():
        async with session_factory() as db:
            return await get_dashboard_stats(db, capabilities, organization_id)

    properties, activity, stats = await asyncio.gather(
        _properties(), _activity(), _stats()
    )

    return schemas.DashboardOverview(
        organization_id=organization_id,
        stats=stats,
        properties=properties,
        activity=activity,
    )
