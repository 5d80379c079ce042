"""Waitlist signup route.

Validates the form and forwards it to the configured webhook. Validation
problems are reported per field before any network call is made.
"""

import logging
import os
import re
from dataclasses import dataclass

import httpx
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = logging.getLogger("leo-portal-waitlist")

router = APIRouter(tags=["Waitlist"])

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
SUBMIT_ERROR = "Something went wrong. Please try again later."


@dataclass
class WaitlistConfig:
    """Waitlist webhook configuration from environment."""

    webhook_url: str
    timeout: float = 10.0

    @classmethod
    def from_env(cls) -> "WaitlistConfig":
        """Load waitlist config from environment variables."""
        webhook_url = os.getenv("WAITLIST_WEBHOOK_URL", "")
        if not webhook_url:
            logger.warning("WAITLIST_WEBHOOK_URL not set - signups cannot be forwarded")
        return cls(webhook_url=webhook_url)

    def is_configured(self) -> bool:
        """Check if the webhook is configured."""
        return bool(self.webhook_url)


class WaitlistSignup(BaseModel):
    """Waitlist form body. Fields are validated by ``validate_signup``."""

    name: str = ""
    email: str = ""


def validate_signup(signup: WaitlistSignup) -> dict[str, str]:
    """Field errors for a waitlist form; empty when the form is valid."""
    errors = {}
    if not signup.name.strip():
        errors["name"] = "Name is required"
    email = signup.email.strip()
    if not email:
        errors["email"] = "Email is required"
    elif not EMAIL_PATTERN.match(email):
        errors["email"] = "Please enter a valid email address"
    return errors


def get_waitlist_config() -> WaitlistConfig:
    """Dependency providing the waitlist configuration."""
    return WaitlistConfig.from_env()


async def forward_signup(config: WaitlistConfig, name: str, email: str) -> bool:
    """Post the signup to the webhook. Returns True on a 2xx answer."""
    if not config.is_configured():
        logger.error("Waitlist signup dropped: no webhook configured")
        return False

    try:
        async with httpx.AsyncClient(timeout=config.timeout) as client:
            response = await client.post(
                config.webhook_url, json={"name": name, "email": email}
            )
    except httpx.HTTPError as e:
        logger.error(f"Waitlist webhook request failed: {e}")
        return False

    if not response.is_success:
        logger.error(f"Waitlist webhook returned {response.status_code}")
        return False
    return True


@router.post("/waitlist")
async def join_waitlist(
    signup: WaitlistSignup,
    config: WaitlistConfig = Depends(get_waitlist_config),
):
    """Join the waitlist."""
    errors = validate_signup(signup)
    if errors:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"errors": errors},
        )

    name, email = signup.name.strip(), signup.email.strip()
    if not await forward_signup(config, name, email):
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"errors": {"submit": SUBMIT_ERROR}},
        )

    logger.info(f"Waitlist signup forwarded for {email}")
    return {"success": True}
