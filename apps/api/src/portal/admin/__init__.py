"""Admin module: tenant management and admin permissions."""

from portal.admin.filters import filter_records
from portal.admin.routes import require_admin
from portal.admin.routes import router as admin_router
from portal.admin.service import (
    OperationResult,
    get_admin_permissions,
    is_user_admin,
)

__all__ = [
    "OperationResult",
    "admin_router",
    "filter_records",
    "get_admin_permissions",
    "is_user_admin",
    "require_admin",
]
