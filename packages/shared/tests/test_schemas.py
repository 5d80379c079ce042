"""Tests for shared schemas."""

from datetime import datetime, timezone
from types import SimpleNamespace
from uuid import uuid4

import pytest
from leo_shared.schemas import (
    AdminCapability,
    AdminPermissions,
    AdminUser,
    CallRecord,
    DashboardOverview,
    DashboardStats,
    Organization,
    Property,
    UserProfile,
    has_scheduled_tour,
)


def make_call(**overrides) -> CallRecord:
    """Create a call record with sensible defaults."""
    values = {
        "id": uuid4(),
        "property_id": uuid4(),
        "organization_id": uuid4(),
        "start_timestamp": datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc),
    }
    values.update(overrides)
    return CallRecord(**values)


class TestHasScheduledTour:
    """Tests for tour detection."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, False),
            ("", False),
            ("   ", False),
            ("2025-01-20T15:00:00Z", True),
            (datetime(2025, 1, 20, tzinfo=timezone.utc), True),
        ],
    )
    def test_has_scheduled_tour(self, value, expected):
        assert has_scheduled_tour(value) is expected

    def test_call_record_has_tour(self):
        assert make_call(tour_scheduled_for="2025-01-20").has_tour is True
        assert make_call().has_tour is False


class TestRecords:
    """Tests for records decoded from rows."""

    def test_organization_defaults_active_when_column_missing(self):
        org = Organization(id=uuid4(), name="Acme Living")
        assert org.is_active is True
        assert org.properties_count == 0
        assert org.users_count == 0

    def test_property_from_attributes(self):
        row = SimpleNamespace(
            id=uuid4(),
            organization_id=uuid4(),
            name="Maple Court",
            retell_agent_id="agent_1",
            created_at=None,
            is_active=False,
        )
        prop = Property.model_validate(row)
        assert prop.name == "Maple Court"
        assert prop.is_active is False

    def test_user_profile_defaults(self):
        profile = UserProfile(
            id=uuid4(),
            user_id=uuid4(),
            organization_id=uuid4(),
            first_name="Jane",
            last_name="Doe",
        )
        assert profile.admin_level == "user"
        assert profile.is_admin is False

    def test_admin_user_permissions_default_true(self):
        admin = AdminUser(id=uuid4(), user_id=uuid4(), organization_id=uuid4())
        assert admin.admin_level == "admin"
        assert admin.can_manage_organizations is True
        assert admin.can_manage_properties is True
        assert admin.can_manage_users is True
        assert admin.can_view_all_data is True


class TestAdminPermissions:
    """Tests for capability checks."""

    def make_permissions(self, **overrides) -> AdminPermissions:
        values = {
            "is_admin": True,
            "admin_level": "admin",
            "can_manage_organizations": True,
            "can_manage_properties": True,
            "can_manage_users": True,
            "can_view_all_data": True,
            "organization_id": uuid4(),
        }
        values.update(overrides)
        return AdminPermissions(**values)

    def test_allows_granted_capability(self):
        permissions = self.make_permissions()
        assert permissions.allows(AdminCapability.MANAGE_PROPERTIES) is True

    def test_denies_missing_capability(self):
        permissions = self.make_permissions(can_manage_users=False)
        assert permissions.allows(AdminCapability.MANAGE_USERS) is False

    def test_denies_non_admin(self):
        permissions = self.make_permissions(is_admin=False)
        assert permissions.allows(AdminCapability.MANAGE_ORGANIZATIONS) is False


class TestDashboardViews:
    """Tests for dashboard view defaults."""

    def test_empty_stats(self):
        stats = DashboardStats()
        assert stats.total_calls == 0
        assert stats.tour_rate == 0
        assert stats.avg_call_duration == "0m 0s"
        assert stats.active_properties == 0

    def test_empty_overview(self):
        overview = DashboardOverview()
        assert overview.organization_id is None
        assert overview.properties == []
        assert overview.activity == []
        assert overview.stats == DashboardStats()
