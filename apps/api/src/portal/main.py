"""FastAPI application for the Leo leasing-call portal.

Provides:
- Organization-scoped dashboard over the voice agent's call records
- Admin management of organizations, properties, users and admins
- JWT and Google OAuth authentication with Resend emails
- Cal.com booking proxy for the voice agent
- ROI calculator and waitlist signup for the landing page

Flow:
1. POST /auth/signup - Create account (team is notified by email)
2. Admin assigns the user to an organization (POST /admin/users)
3. GET /dashboard/overview - Stats, properties and recent activity
4. GET /dashboard/call-volume - Daily chart data
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from leo_shared.roi import ROIInputs, ROIResults, calculate_revenue_leakage
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from portal.admin.routes import router as admin_router
from portal.auth.routes import router as auth_router
from portal.booking.routes import BOOKING_PATH
from portal.booking.routes import router as booking_router
from portal.dashboard.routes import router as dashboard_router
from portal.db.capabilities import SchemaCapabilities, probe_schema
from portal.db.database import engine
from portal.waitlist.routes import router as waitlist_router

logger = logging.getLogger("leo-portal-api")


class PortalCORSMiddleware(CORSMiddleware):
    """CORS for the web frontend, skipping paths that set their own headers."""

    def __init__(self, app, exempt_paths=(), **kwargs):
        super().__init__(app, **kwargs)
        self.exempt_paths = frozenset(exempt_paths)

    async def __call__(self, scope, receive, send):
        if scope["type"] == "http" and scope["path"] in self.exempt_paths:
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)


# =============================================================================
# App Lifecycle
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Probe the database schema once before serving requests."""
    try:
        app.state.schema_capabilities = await probe_schema(engine)
    except (SQLAlchemyError, OSError) as e:
        # Statements fall back per table if the optimistic guess is wrong
        logger.error(f"Schema probe failed, assuming full schema: {e}")
        app.state.schema_capabilities = SchemaCapabilities()
    yield
    await engine.dispose()


app = FastAPI(
    title="Leo Portal API",
    description="Dashboard, admin and booking API for the Leo leasing voice agent",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for web frontend; the API uses bearer tokens, not cookies.
# The booking proxy answers its own preflights for the voice agent.
app.add_middleware(
    PortalCORSMiddleware,
    exempt_paths=[BOOKING_PATH],
    allow_origins=["*"],  # Configure appropriately for production
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(dashboard_router)
app.include_router(admin_router)
app.include_router(booking_router)
app.include_router(waitlist_router)


# =============================================================================
# Request/Response Models
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: str


# =============================================================================
# Endpoints
# =============================================================================


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@app.post("/roi/calculate", response_model=ROIResults)
async def calculate_roi(inputs: ROIInputs):
    """Estimate revenue lost to unanswered after-hours calls."""
    return calculate_revenue_leakage(inputs)


def main() -> None:
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
