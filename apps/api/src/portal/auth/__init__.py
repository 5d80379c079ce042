"""Authentication module.

Provides JWT-based authentication, password hashing, Google OAuth and
auth routes.
"""

from portal.auth.jwt import (
    create_access_token,
    create_refresh_token,
    create_reset_token,
    decode_token,
    get_current_user,
    get_current_user_optional,
)
from portal.auth.password import (
    get_password_hash,
    validate_password_strength,
    verify_password,
)
from portal.auth.routes import router as auth_router

__all__ = [
    "auth_router",
    "create_access_token",
    "create_refresh_token",
    "create_reset_token",
    "decode_token",
    "get_current_user",
    "get_current_user_optional",
    "get_password_hash",
    "validate_password_strength",
    "verify_password",
]
