"""Shared fixtures for API tests.

Database-backed tests run against a throwaway SQLite file per test, with an
engine that does not pool connections so nothing outlives the test's event
loop.
"""

import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from uuid import UUID

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

# Keep the module-level engine off Postgres during tests
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./leo-portal-test.db")

from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from portal.auth.jwt import create_access_token
from portal.auth.password import get_password_hash
from portal.db.capabilities import SchemaCapabilities
from portal.db.database import (
    Base,
    create_session_factory,
    get_db,
    get_session_factory,
)
from portal.db.models import (
    ACTIVE_FLAG_TABLES,
    AdminUser,
    CallRecord,
    Organization,
    Property,
    User,
    UserProfile,
)
from portal.main import app


@pytest.fixture
async def engine(tmp_path):
    """Fresh SQLite database with all tables."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'portal.db'}", poolclass=NullPool
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
async def db(session_factory):
    """A session for arranging and checking data directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def capabilities() -> SchemaCapabilities:
    return SchemaCapabilities()


@pytest.fixture
async def client(session_factory, capabilities):
    """Async client bound to the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.state.schema_capabilities = capabilities

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
    del app.state.schema_capabilities


# =============================================================================
# Data Builders
# =============================================================================


async def drop_active_column(engine, table: str) -> None:
    """Simulate a deployed schema without the optional is_active column."""
    async with engine.begin() as conn:
        await conn.execute(text(f"ALTER TABLE {table} DROP COLUMN is_active"))


async def drop_all_active_columns(engine) -> None:
    for table in ACTIVE_FLAG_TABLES:
        await drop_active_column(engine, table)


async def make_user(db, email: str = "jane@example.com", password: str = "Secret123") -> User:
    user = User(
        email=email,
        password_hash=get_password_hash(password),
        display_name=email.split("@")[0].title(),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def make_organization(db, name: str = "Acme Living") -> Organization:
    org = Organization(name=name)
    db.add(org)
    await db.commit()
    await db.refresh(org)
    return org


async def make_property(db, organization_id: UUID, name: str = "Maple Court") -> Property:
    prop = Property(organization_id=organization_id, name=name)
    db.add(prop)
    await db.commit()
    await db.refresh(prop)
    return prop


async def make_profile(db, user: User, organization_id: UUID) -> UserProfile:
    profile = UserProfile(
        user_id=user.id,
        organization_id=organization_id,
        first_name="Jane",
        last_name="Doe",
    )
    db.add(profile)
    await db.commit()
    await db.refresh(profile)
    return profile


async def make_admin(db, user: User, organization_id: UUID, **flags) -> AdminUser:
    admin = AdminUser(user_id=user.id, organization_id=organization_id, **flags)
    db.add(admin)
    await db.commit()
    await db.refresh(admin)
    return admin


def make_call(prop: Property, **overrides) -> CallRecord:
    values = {
        "property_id": prop.id,
        "organization_id": prop.organization_id,
        "start_timestamp": datetime.now(timezone.utc),
        "call_status": "ended",
    }
    values.update(overrides)
    return CallRecord(**values)


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}
