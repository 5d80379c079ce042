"""JWT token creation and validation.

Provides access tokens (short-lived), refresh tokens (long-lived),
single-purpose password reset tokens and signed OAuth state values.
"""

import hashlib
import os
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.db.database import get_db
from portal.db.models import User

# JWT Configuration
SECRET_KEY = os.getenv("JWT_SECRET_KEY", "CHANGE_ME_IN_PRODUCTION_32_BYTES!")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 30
REFRESH_TOKEN_EXPIRE_DAYS = 7
RESET_TOKEN_EXPIRE_MINUTES = 60
OAUTH_STATE_EXPIRE_MINUTES = 10

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"
RESET_TOKEN = "reset"
OAUTH_STATE_TOKEN = "oauth_state"


class TokenPayload(BaseModel):
    """JWT token payload structure."""

    sub: str  # User ID, or a random nonce for OAuth state
    type: str  # "access", "refresh", "reset" or "oauth_state"
    exp: datetime
    iat: datetime
    pwd: str | None = None  # Password fingerprint on reset tokens


class TokenPair(BaseModel):
    """Access and refresh token pair."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # Seconds until access token expires


# Security scheme for Swagger UI
security = HTTPBearer(auto_error=False)


def _create_token(
    user_id: UUID | str,
    token_type: str,
    expires_delta: timedelta,
    claims: dict[str, Any] | None = None,
) -> str:
    """Encode a signed token of the given type."""
    now = datetime.now(timezone.utc)
    to_encode: dict[str, Any] = {
        "sub": str(user_id),
        "type": token_type,
        "exp": now + expires_delta,
        "iat": now,
        **(claims or {}),
    }
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def password_fingerprint(password_hash: str | None) -> str:
    """Short digest of a stored password hash.

    It changes whenever the password does, so a reset token carrying it
    stops working once the password has been reset.
    """
    return hashlib.sha256((password_hash or "").encode()).hexdigest()[:16]


def create_access_token(
    user_id: UUID | str, expires_delta: timedelta | None = None
) -> str:
    """Create a short-lived access token."""
    if expires_delta is None:
        expires_delta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    return _create_token(user_id, ACCESS_TOKEN, expires_delta)


def create_refresh_token(
    user_id: UUID | str, expires_delta: timedelta | None = None
) -> str:
    """Create a long-lived refresh token."""
    if expires_delta is None:
        expires_delta = timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS)
    return _create_token(user_id, REFRESH_TOKEN, expires_delta)


def create_reset_token(
    user_id: UUID | str,
    password_hash: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a token that only authorizes one reset of the current password."""
    if expires_delta is None:
        expires_delta = timedelta(minutes=RESET_TOKEN_EXPIRE_MINUTES)
    return _create_token(
        user_id,
        RESET_TOKEN,
        expires_delta,
        claims={"pwd": password_fingerprint(password_hash)},
    )


def create_oauth_state(expires_delta: timedelta | None = None) -> str:
    """Create a signed, short-lived state value for the OAuth round trip."""
    if expires_delta is None:
        expires_delta = timedelta(minutes=OAUTH_STATE_EXPIRE_MINUTES)
    return _create_token(secrets.token_urlsafe(16), OAUTH_STATE_TOKEN, expires_delta)


def create_token_pair(user_id: UUID | str) -> TokenPair:
    """Create both access and refresh tokens.

    Args:
        user_id: The user's UUID.

    Returns:
        TokenPair with access_token, refresh_token, and metadata.
    """
    return TokenPair(
        access_token=create_access_token(user_id),
        refresh_token=create_refresh_token(user_id),
        expires_in=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


def decode_token(token: str, expected_type: str | None = None) -> TokenPayload:
    """Decode and validate a JWT token.

    Args:
        token: The JWT token to decode.
        expected_type: If given, reject tokens of any other type.

    Returns:
        TokenPayload with user ID and token metadata.

    Raises:
        HTTPException: If token is invalid, expired or of the wrong type.
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        token_data = TokenPayload(
            sub=payload["sub"],
            type=payload["type"],
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            pwd=payload.get("pwd"),
        )
    except (JWTError, KeyError) as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {e!s}",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    if expected_type is not None and token_data.type != expected_type:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return token_data


async def get_user_by_id(db: AsyncSession, user_id: UUID | str) -> User | None:
    """Fetch a user by primary key, tolerating malformed ids."""
    try:
        user_uuid = user_id if isinstance(user_id, UUID) else UUID(user_id)
    except ValueError:
        return None
    result = await db.execute(select(User).where(User.id == user_uuid))
    return result.scalar_one_or_none()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """FastAPI dependency to get the current authenticated user.

    Usage:
        @router.get("/me")
        async def get_me(user: User = Depends(get_current_user)):
            return user

    Raises:
        HTTPException: 401 if not authenticated or token invalid.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token_data = decode_token(credentials.credentials, expected_type=ACCESS_TOKEN)

    user = await get_user_by_id(db, token_data.sub)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


async def get_current_user_optional(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """FastAPI dependency to optionally get the current user.

    Returns None if not authenticated instead of raising an exception.
    The dashboard uses it so that a missing session renders empty data.
    """
    if credentials is None:
        return None

    try:
        return await get_current_user(credentials, db)
    except HTTPException:
        return None
