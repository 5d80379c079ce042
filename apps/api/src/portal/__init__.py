"""API package for the Leo leasing-call portal.

This FastAPI application serves:
- The organization dashboard (call stats, properties, activity)
- Admin CRUD over tenants
- The Cal.com booking proxy used by the voice agent
"""

from portal.config import load_environment

# Settings are read at import time by the modules below
load_environment()

from portal.main import app  # noqa: E402

__all__ = ["app"]
