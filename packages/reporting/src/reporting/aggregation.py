"""Dashboard aggregation over already-fetched call records.

These are pure functions: the query layer fetches rows for one organization
and hands them over here to be reduced into summary statistics, an activity
feed and a per-day volume series. Nothing in this module touches the
database, so every function is safe to call with empty input.
"""

import math
from collections.abc import Iterable
from datetime import date, datetime, timedelta, timezone

from leo_shared.schemas import (
    UNKNOWN_PROPERTY_LABEL,
    ActivityItem,
    ActivityType,
    CallRecord,
    CallVolumePoint,
    DashboardStats,
    has_scheduled_tour,
)

MS_PER_MINUTE = 60_000
MS_PER_SECOND = 1_000


# =============================================================================
# Summary Statistics
# =============================================================================


def calculate_tour_rate(tours: int, total_calls: int) -> float:
    """Tours as a percentage of calls, rounded half-up to one decimal.

    Returns 0 when there are no calls.
    """
    if total_calls <= 0:
        return 0
    rate = (tours / total_calls) * 100
    return math.floor(rate * 10 + 0.5) / 10


def average_duration_ms(durations: Iterable[int | float | None]) -> float:
    """Mean of the strictly positive durations; zero/null values are skipped."""
    valid = [d for d in durations if d is not None and d > 0]
    if not valid:
        return 0
    return sum(valid) / len(valid)


def format_duration(duration_ms: float) -> str:
    """Render milliseconds as ``"{m}m {s}s"``, truncating both parts."""
    minutes = math.floor(duration_ms / MS_PER_MINUTE)
    seconds = math.floor((duration_ms % MS_PER_MINUTE) / MS_PER_SECOND)
    return f"{minutes}m {seconds}s"


def build_dashboard_stats(
    total_calls: int,
    tour_values: Iterable[datetime | str | None],
    durations: Iterable[int | float | None],
    active_properties: int,
) -> DashboardStats:
    """Reduce call rows into the dashboard summary.

    Args:
        total_calls: Exact call count for the organization.
        tour_values: tour_scheduled_for of every call record.
        durations: duration_ms of every call record.
        active_properties: Number of properties with the active flag set.
    """
    tours = sum(1 for value in tour_values if has_scheduled_tour(value))
    return DashboardStats(
        total_calls=total_calls,
        tour_rate=calculate_tour_rate(tours, total_calls),
        avg_call_duration=format_duration(average_duration_ms(durations)),
        active_properties=active_properties,
    )


def count_property_outcomes(
    calls: Iterable[tuple[bool | None, datetime | str | None]],
) -> tuple[int, int]:
    """Count (leads, conversions) among one property's calls.

    Args:
        calls: (call_successful, tour_scheduled_for) pairs.
    """
    leads = 0
    conversions = 0
    for call_successful, tour_scheduled_for in calls:
        if has_scheduled_tour(tour_scheduled_for):
            leads += 1
        if call_successful is True:
            conversions += 1
    return leads, conversions


# =============================================================================
# Activity Feed
# =============================================================================


def classify_call(call: CallRecord) -> tuple[ActivityType, str]:
    """Classify a call for the activity feed.

    A scheduled tour always wins over a successful call, which wins over a
    plain completed call.
    """
    property_name = call.property_name or UNKNOWN_PROPERTY_LABEL

    if call.has_tour:
        return ActivityType.LEAD, f"Lead generated for {property_name}"
    if call.call_successful:
        return ActivityType.CALL, f"Successful call completed for {property_name}"
    return ActivityType.CALL, f"Call completed for {property_name}"


def build_activity_feed(calls: Iterable[CallRecord]) -> list[ActivityItem]:
    """Turn recent call records into activity items, preserving order."""
    activities = []
    for call in calls:
        activity_type, message = classify_call(call)
        activities.append(
            ActivityItem(
                id=call.id,
                type=activity_type,
                message=message,
                timestamp=call.start_timestamp,
                property_name=call.property_name,
            )
        )
    return activities


# =============================================================================
# Call Volume Series
# =============================================================================


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def volume_window(days: int, today: date | None = None) -> tuple[date, date]:
    """First and last calendar day (inclusive) of a trailing window."""
    if days < 0:
        raise ValueError("days must be non-negative")
    end = today or datetime.now(timezone.utc).date()
    return end - timedelta(days=days), end


def bucket_call_volume(
    calls: Iterable[tuple[datetime, datetime | str | None]],
    days: int,
    today: date | None = None,
) -> list[CallVolumePoint]:
    """Group calls into one bucket per UTC calendar day.

    Produces exactly ``days + 1`` points covering ``[today - days, today]``
    in ascending order. Days without calls are present with zero counts and
    calls outside the window are ignored.

    Args:
        calls: (start_timestamp, tour_scheduled_for) pairs.
        days: Size of the trailing window.
        today: Last day of the window; defaults to the current UTC date.
    """
    start, _ = volume_window(days, today)

    buckets: dict[date, CallVolumePoint] = {}
    for offset in range(days + 1):
        day = start + timedelta(days=offset)
        buckets[day] = CallVolumePoint(date=day.isoformat())

    for started_at, tour_scheduled_for in calls:
        point = buckets.get(as_utc(started_at).date())
        if point is None:
            continue
        point.calls += 1
        if has_scheduled_tour(tour_scheduled_for):
            point.tours += 1

    return [buckets[day] for day in sorted(buckets)]


# =============================================================================
# Display Helpers
# =============================================================================


def time_ago(timestamp: datetime, now: datetime | None = None) -> str:
    """Human friendly relative time, falling back to the date after a week."""
    now = as_utc(now or datetime.now(timezone.utc))
    past = as_utc(timestamp)
    diff_ms = (now - past).total_seconds() * 1000

    diff_minutes = math.floor(diff_ms / 60_000)
    diff_hours = math.floor(diff_ms / 3_600_000)
    diff_days = math.floor(diff_ms / 86_400_000)

    if diff_minutes < 1:
        return "Just now"
    if diff_minutes < 60:
        return f"{diff_minutes} minute{'s' if diff_minutes > 1 else ''} ago"
    if diff_hours < 24:
        return f"{diff_hours} hour{'s' if diff_hours > 1 else ''} ago"
    if diff_days < 7:
        return f"{diff_days} day{'s' if diff_days > 1 else ''} ago"

    return f"{past.month}/{past.day}/{past.year}"
