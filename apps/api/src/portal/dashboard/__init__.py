"""Dashboard module: organization-scoped call statistics."""

from portal.dashboard.organization import get_current_user_organization_id
from portal.dashboard.routes import router as dashboard_router
from portal.dashboard.service import (
    get_call_count_breakdown,
    get_call_volume_data,
    get_dashboard_stats,
    get_recent_activity,
    get_recent_call_records,
    get_user_properties,
    load_dashboard_overview,
)

__all__ = [
    "dashboard_router",
    "get_call_count_breakdown",
    "get_call_volume_data",
    "get_current_user_organization_id",
    "get_dashboard_stats",
    "get_recent_activity",
    "get_recent_call_records",
    "get_user_properties",
    "load_dashboard_overview",
]
