"""Authentication API routes.

Provides signup, login, token refresh, password reset and Google OAuth
endpoints.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from leo_shared.email import EmailSender, send_signup_emails
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.auth.jwt import (
    OAUTH_STATE_TOKEN,
    REFRESH_TOKEN,
    RESET_TOKEN,
    TokenPair,
    create_oauth_state,
    create_reset_token,
    create_token_pair,
    decode_token,
    get_current_user,
    get_user_by_id,
    password_fingerprint,
)
from portal.auth.oauth import GoogleOAuthClient
from portal.auth.password import (
    get_password_hash,
    validate_password_strength,
    verify_password,
)
from portal.db.database import get_db
from portal.db.models import User

logger = logging.getLogger("leo-portal-auth")

router = APIRouter(prefix="/auth", tags=["Authentication"])


# =============================================================================
# Request/Response Models
# =============================================================================


class SignupRequest(BaseModel):
    """Request body for user signup."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    display_name: str | None = Field(None, max_length=255)


class LoginRequest(BaseModel):
    """Request body for user login."""

    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    """Request body for token refresh."""

    refresh_token: str


class PasswordResetRequest(BaseModel):
    """Request body for asking a password reset link."""

    email: EmailStr


class PasswordResetConfirm(BaseModel):
    """Request body for setting a new password."""

    token: str
    password: str
    confirm_password: str


class UserResponse(BaseModel):
    """User data response."""

    id: str
    email: str
    display_name: str
    oauth_provider: str | None
    created_at: datetime | None


class AuthResponse(BaseModel):
    """Authentication response with tokens and user data."""

    user: UserResponse
    tokens: TokenPair


class OAuthStartResponse(BaseModel):
    """Where to send the browser to start OAuth sign-in."""

    url: str
    state: str


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=str(user.id),
        email=user.email,
        display_name=user.name,
        oauth_provider=user.oauth_provider,
        created_at=user.created_at,
    )


# =============================================================================
# Dependencies
# =============================================================================


def get_email_sender() -> EmailSender:
    """Dependency providing the Resend email sender."""
    return EmailSender()


def get_oauth_client() -> GoogleOAuthClient:
    """Dependency providing the Google OAuth client."""
    return GoogleOAuthClient()


async def _get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


# =============================================================================
# Routes
# =============================================================================


@router.post(
    "/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED
)
async def signup(
    request: SignupRequest,
    db: AsyncSession = Depends(get_db),
    email_sender: EmailSender = Depends(get_email_sender),
):
    """Create a new user account.

    - Creates user with hashed password
    - Notifies the Leo team and welcomes the user by email
    - Returns JWT tokens

    The user sees no dashboard data until an admin assigns them to an
    organization.
    """
    if await _get_user_by_email(db, request.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered",
        )

    user = User(
        email=request.email.lower(),
        password_hash=get_password_hash(request.password),
        display_name=request.display_name,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    await send_signup_emails(user.email, user.name, sender=email_sender)

    return AuthResponse(user=_user_response(user), tokens=create_token_pair(user.id))


@router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Authenticate user and return tokens."""
    user = await _get_user_by_email(db, request.email)

    # OAuth-only accounts have no password
    if user is None or not user.password_hash:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    if not verify_password(request.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    return AuthResponse(user=_user_response(user), tokens=create_token_pair(user.id))


@router.post("/refresh", response_model=TokenPair)
async def refresh_token(
    request: RefreshRequest,
    db: AsyncSession = Depends(get_db),
):
    """Refresh access token using refresh token."""
    token_data = decode_token(request.refresh_token, expected_type=REFRESH_TOKEN)

    user = await get_user_by_id(db, token_data.sub)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    return create_token_pair(user.id)


@router.post("/password-reset")
async def request_password_reset(
    request: PasswordResetRequest,
    db: AsyncSession = Depends(get_db),
    email_sender: EmailSender = Depends(get_email_sender),
):
    """Email a password reset link.

    Always answers the same way so the endpoint can't be used to probe
    which emails have accounts.
    """
    user = await _get_user_by_email(db, request.email)
    if user is not None:
        await email_sender.send_password_reset(
            user.email, create_reset_token(user.id, user.password_hash)
        )
    else:
        logger.info(f"Password reset requested for unknown email {request.email}")

    return {"message": "If an account exists for that email, a reset link is on its way"}


@router.post("/password-reset/confirm")
async def confirm_password_reset(
    request: PasswordResetConfirm,
    db: AsyncSession = Depends(get_db),
):
    """Set a new password using a reset token."""
    problem = validate_password_strength(request.password)
    if problem:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=problem)

    if request.password != request.confirm_password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Passwords do not match",
        )

    token_data = decode_token(request.token, expected_type=RESET_TOKEN)
    user = await get_user_by_id(db, token_data.sub)
    # A link stops working once the password it was issued for has changed
    if user is None or token_data.pwd != password_fingerprint(user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This password reset link is invalid or has expired",
        )

    user.password_hash = get_password_hash(request.password)
    await db.commit()

    return {"message": "Password reset successfully"}


@router.get("/oauth/google", response_model=OAuthStartResponse)
async def start_google_oauth(
    oauth_client: GoogleOAuthClient = Depends(get_oauth_client),
):
    """Get the Google consent-screen URL to redirect the browser to."""
    if not oauth_client.config.is_configured():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Google sign-in is not configured",
        )
    url, state = oauth_client.authorization_url(create_oauth_state())
    return OAuthStartResponse(url=url, state=state)


@router.get("/callback", response_model=AuthResponse)
async def oauth_callback(
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    db: AsyncSession = Depends(get_db),
    oauth_client: GoogleOAuthClient = Depends(get_oauth_client),
    email_sender: EmailSender = Depends(get_email_sender),
):
    """Complete Google sign-in and return tokens.

    ``state`` must be the signed value issued by /auth/oauth/google and
    not yet expired. Creates the account on first sign-in.
    """
    if error or not code:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Authentication failed: {error or 'missing authorization code'}",
        )

    try:
        decode_token(state or "", expected_type=OAUTH_STATE_TOKEN)
    except HTTPException as e:
        logger.warning(f"Rejected OAuth callback: {e.detail}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Authentication failed: invalid state",
        ) from e

    identity = await oauth_client.exchange_code(code)
    if not identity.success or not identity.email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Authentication failed: {identity.error}",
        )

    user = await _get_user_by_email(db, identity.email)
    created = user is None
    if user is None:
        user = User(email=identity.email, display_name=identity.name)
        db.add(user)

    user.oauth_provider = oauth_client.provider
    user.oauth_subject = identity.subject
    if not user.display_name and identity.name:
        user.display_name = identity.name

    await db.commit()
    await db.refresh(user)
    logger.info(f"OAuth sign-in for {user.email} (new account: {created})")

    if created:
        await send_signup_emails(user.email, user.name, sender=email_sender)

    return AuthResponse(user=_user_response(user), tokens=create_token_pair(user.id))


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)):
    """Get current authenticated user's profile."""
    return _user_response(user)
