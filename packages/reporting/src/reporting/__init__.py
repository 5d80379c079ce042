"""Reporting package for the Leo leasing-call portal.

Reduces call records that the portal has already fetched into the views the
customer dashboard shows: summary statistics, the recent activity feed and
the per-day call volume series.
"""

from reporting.aggregation import (
    build_activity_feed,
    build_dashboard_stats,
    bucket_call_volume,
    calculate_tour_rate,
    classify_call,
    count_property_outcomes,
    format_duration,
    time_ago,
)

__all__ = [
    "bucket_call_volume",
    "build_activity_feed",
    "build_dashboard_stats",
    "calculate_tour_rate",
    "classify_call",
    "count_property_outcomes",
    "format_duration",
    "time_ago",
]
