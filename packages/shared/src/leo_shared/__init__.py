"""Shared schemas, email and ROI helpers for the Leo leasing-call portal."""

from leo_shared.email import (
    EmailConfig,
    EmailSender,
    send_signup_emails,
)
from leo_shared.roi import (
    ROIInputs,
    ROIResults,
    calculate_revenue_leakage,
)
from leo_shared.schemas import (
    ActivityItem,
    ActivityType,
    AdminCapability,
    AdminPermissions,
    AdminUser,
    CallCountBreakdown,
    CallRecord,
    CallVolumePoint,
    DashboardOverview,
    DashboardStats,
    Organization,
    Property,
    PropertyWithStats,
    UserProfile,
)

__all__ = [
    "ActivityItem",
    "ActivityType",
    "AdminCapability",
    "AdminPermissions",
    "AdminUser",
    "CallCountBreakdown",
    "CallRecord",
    "CallVolumePoint",
    "DashboardOverview",
    "DashboardStats",
    "EmailConfig",
    "EmailSender",
    "Organization",
    "Property",
    "PropertyWithStats",
    "ROIInputs",
    "ROIResults",
    "UserProfile",
    "calculate_revenue_leakage",
    "send_signup_emails",
]
