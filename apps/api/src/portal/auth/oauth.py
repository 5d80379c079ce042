"""Google OAuth sign-in.

Implements the authorization-code flow: the browser is sent to Google's
consent screen, Google redirects back to /auth/callback with a code, and the
code is exchanged for the user's verified email and name.
"""

import logging
import os
import secrets
from dataclasses import dataclass
from urllib.parse import urlencode

import httpx

logger = logging.getLogger("leo-portal-oauth")

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"


@dataclass
class GoogleOAuthConfig:
    """Configuration for Google OAuth."""

    client_id: str
    client_secret: str
    redirect_uri: str

    @classmethod
    def from_env(cls) -> "GoogleOAuthConfig":
        """Load OAuth config from environment variables."""
        client_id = os.getenv("GOOGLE_CLIENT_ID", "")
        client_secret = os.getenv("GOOGLE_CLIENT_SECRET", "")
        redirect_uri = os.getenv(
            "GOOGLE_REDIRECT_URI", "http://localhost:8000/auth/callback"
        )

        if not client_id:
            logger.warning("GOOGLE_CLIENT_ID not set - Google sign-in is disabled")

        return cls(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=redirect_uri,
        )

    def is_configured(self) -> bool:
        """Check if all required config is present."""
        return bool(self.client_id and self.client_secret and self.redirect_uri)


@dataclass
class OAuthIdentity:
    """Result of a completed OAuth exchange."""

    success: bool
    email: str | None = None
    name: str | None = None
    subject: str | None = None
    error: str | None = None


class GoogleOAuthClient:
    """Runs the Google authorization-code flow."""

    provider = "google"

    def __init__(self, config: GoogleOAuthConfig | None = None):
        self.config = config or GoogleOAuthConfig.from_env()

    def authorization_url(self, state: str | None = None) -> tuple[str, str]:
        """Build the consent-screen URL.

        Returns:
            Tuple of (url, state). Pass a signed state so the callback can
            verify it; a random one is generated otherwise.
        """
        state = state or secrets.token_urlsafe(16)
        params = {
            "client_id": self.config.client_id,
            "redirect_uri": self.config.redirect_uri,
            "response_type": "code",
            "scope": "openid email profile",
            "access_type": "online",
            "prompt": "select_account",
            "state": state,
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}", state

    async def exchange_code(self, code: str) -> OAuthIdentity:
        """Exchange an authorization code for the user's identity."""
        if not self.config.is_configured():
            return OAuthIdentity(success=False, error="Google sign-in is not configured")

        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                token_response = await client.post(
                    GOOGLE_TOKEN_URL,
                    data={
                        "code": code,
                        "client_id": self.config.client_id,
                        "client_secret": self.config.client_secret,
                        "redirect_uri": self.config.redirect_uri,
                        "grant_type": "authorization_code",
                    },
                )
                if token_response.status_code != 200:
                    detail = token_response.json().get("error_description", "")
                    return OAuthIdentity(
                        success=False,
                        error=detail or f"Token exchange failed ({token_response.status_code})",
                    )

                access_token = token_response.json().get("access_token")
                userinfo_response = await client.get(
                    GOOGLE_USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                if userinfo_response.status_code != 200:
                    return OAuthIdentity(
                        success=False,
                        error=f"Userinfo request failed ({userinfo_response.status_code})",
                    )
                userinfo = userinfo_response.json()

        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Google OAuth exchange error: {e}")
            return OAuthIdentity(success=False, error=str(e))

        email = userinfo.get("email")
        if not email or not userinfo.get("email_verified", False):
            return OAuthIdentity(success=False, error="Google account email is not verified")

        return OAuthIdentity(
            success=True,
            email=email.lower(),
            name=userinfo.get("name"),
            subject=userinfo.get("sub"),
        )
