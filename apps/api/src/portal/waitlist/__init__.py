"""Waitlist module."""

from portal.waitlist.routes import WaitlistConfig, validate_signup
from portal.waitlist.routes import router as waitlist_router

__all__ = ["WaitlistConfig", "validate_signup", "waitlist_router"]
