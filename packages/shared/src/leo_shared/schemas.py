"""Pydantic schemas for the Leo leasing-call portal.

Rows coming back from the managed database are decoded into these records
once, at the data-access boundary. Optional columns that may be missing from
a drifted schema (``is_active``) carry defaults here so callers never have
to check for them.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Constants
# =============================================================================

# Placeholder used in activity messages when a call's property is unknown
UNKNOWN_PROPERTY_LABEL: str = "property"

# Placeholder used in call listings when the property row is missing
UNKNOWN_PROPERTY_NAME: str = "Unknown Property"

# Default number of trailing days shown in the call volume chart
DEFAULT_VOLUME_DAYS: int = 30

# Default number of items in the activity feed
DEFAULT_ACTIVITY_LIMIT: int = 10


# =============================================================================
# Enums
# =============================================================================


class ActivityType(str, Enum):
    """Activity feed item categories."""

    CALL = "call"
    LEAD = "lead"


class AdminLevel(str, Enum):
    """Admin privilege levels."""

    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class AdminCapability(str, Enum):
    """Boolean capability flags carried by an admin row."""

    MANAGE_ORGANIZATIONS = "can_manage_organizations"
    MANAGE_PROPERTIES = "can_manage_properties"
    MANAGE_USERS = "can_manage_users"
    VIEW_ALL_DATA = "can_view_all_data"


class _Record(BaseModel):
    """Base for records decoded from database rows."""

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# Tenant Entities
# =============================================================================


class Organization(_Record):
    """Tenant root. Every other entity belongs to exactly one organization."""

    id: UUID
    name: str
    created_at: datetime | None = None
    is_active: bool = True  # Defaults when the column is absent
    properties_count: int = 0
    users_count: int = 0


class Property(_Record):
    """A leasing property handled by one voice agent."""

    id: UUID
    organization_id: UUID
    name: str
    retell_agent_id: str | None = None
    created_at: datetime | None = None
    is_active: bool = True
    organization_name: str | None = None
    calls_count: int = 0


class PropertyWithStats(Property):
    """Property plus per-property call statistics for the dashboard."""

    call_count: int = 0
    lead_count: int = 0
    conversion_count: int = 0


class UserProfile(_Record):
    """Links an authenticated identity to an organization."""

    id: UUID
    user_id: UUID
    organization_id: UUID
    first_name: str
    last_name: str
    created_at: datetime | None = None
    is_active: bool = True
    email: str | None = None
    organization_name: str | None = None
    is_admin: bool = False
    admin_level: str = "user"


class AdminUser(_Record):
    """Grants elevated CRUD permissions to a user."""

    id: UUID
    user_id: UUID
    organization_id: UUID
    admin_level: str = AdminLevel.ADMIN.value
    can_manage_organizations: bool = True
    can_manage_properties: bool = True
    can_manage_users: bool = True
    can_view_all_data: bool = True
    is_active: bool = True
    granted_by: UUID | None = None
    granted_at: datetime | None = None
    created_at: datetime | None = None
    user_email: str | None = None
    user_name: str | None = None
    organization_name: str | None = None


class AdminPermissions(BaseModel):
    """Effective admin permissions of the signed-in user."""

    is_admin: bool
    admin_level: str
    can_manage_organizations: bool
    can_manage_properties: bool
    can_manage_users: bool
    can_view_all_data: bool
    organization_id: UUID

    def allows(self, capability: AdminCapability) -> bool:
        """Check whether a capability flag is granted."""
        return self.is_admin and bool(getattr(self, capability.value))


# =============================================================================
# Call Records (written by the external voice pipeline, read-only here)
# =============================================================================


class CallRecord(_Record):
    """A single call handled by the voice agent."""

    id: UUID
    property_id: UUID
    organization_id: UUID
    call_status: str | None = None
    start_timestamp: datetime
    end_timestamp: datetime | None = None
    duration_ms: int | None = None
    call_successful: bool | None = None
    customer_first_name: str | None = None
    customer_last_name: str | None = None
    customer_phone: str | None = None
    customer_email: str | None = None
    call_summary: str | None = None
    tour_scheduled_for: datetime | str | None = None
    created_at: datetime | None = None
    property_name: str | None = None

    @property
    def has_tour(self) -> bool:
        """A call is a lead/tour when tour_scheduled_for is set and not blank."""
        return has_scheduled_tour(self.tour_scheduled_for)


def has_scheduled_tour(value: datetime | str | None) -> bool:
    """Return True when a tour_scheduled_for value marks a scheduled tour."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return True


# =============================================================================
# Dashboard Views
# =============================================================================


class DashboardStats(BaseModel):
    """Summary statistics for one organization."""

    total_calls: int = 0
    tour_rate: float = 0
    avg_call_duration: str = "0m 0s"
    active_properties: int = 0


class ActivityItem(BaseModel):
    """One entry in the recent activity feed."""

    id: UUID
    type: ActivityType
    message: str
    timestamp: datetime
    property_name: str | None = None


class CallVolumePoint(BaseModel):
    """Calls and tours on a single calendar day."""

    date: str  # ISO calendar date (YYYY-MM-DD)
    calls: int = 0
    tours: int = 0


class CallCountBreakdown(BaseModel):
    """Call record counts across scopes and trailing windows."""

    total_records: int = 0
    organization_records: int = 0
    date_range_records: dict[str, int] = Field(default_factory=dict)


class DashboardOverview(BaseModel):
    """Everything the dashboard home renders, fetched in one round trip."""

    organization_id: UUID | None = None
    stats: DashboardStats = Field(default_factory=DashboardStats)
    properties: list[PropertyWithStats] = Field(default_factory=list)
    activity: list[ActivityItem] = Field(default_factory=list)
