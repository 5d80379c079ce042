"""Database module for the portal.

Provides SQLAlchemy models, async session management and schema
capability detection.
"""

from portal.db.capabilities import (
    SchemaCapabilities,
    get_capabilities,
    probe_schema,
    run_with_active_fallback,
)
from portal.db.database import (
    Base,
    get_db,
    get_session_factory,
    init_db,
)
from portal.db.models import (
    AdminUser,
    CallRecord,
    Organization,
    Property,
    User,
    UserProfile,
)

__all__ = [
    "AdminUser",
    "Base",
    "CallRecord",
    "Organization",
    "Property",
    "SchemaCapabilities",
    "User",
    "UserProfile",
    "get_capabilities",
    "get_db",
    "get_session_factory",
    "init_db",
    "probe_schema",
    "run_with_active_fallback",
]
