"""Admin CRUD over organizations, properties, user profiles and admin users.

Every operation returns an ``OperationResult`` instead of raising: required
fields are checked before any write, and database failures come back as
``success=False`` carrying the backend's error text.

Reads and writes go through the cached schema capability flags so tables
without the optional ``is_active`` column work unchanged; records read from
such tables report ``is_active=True``.
"""

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from leo_shared import schemas
from sqlalchemy import Table, func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.db.capabilities import SchemaCapabilities, run_with_active_fallback
from portal.db.models import (
    AdminUser,
    CallRecord,
    Organization,
    Property,
    User,
    UserProfile,
)

logger = logging.getLogger("leo-portal-admin")

UNKNOWN_USER_NAME = "Unknown User"

PERMISSION_FLAGS = tuple(capability.value for capability in schemas.AdminCapability)

# Models and record types addressable by the generic toggle
ENTITIES = {
    "organizations": (Organization, schemas.Organization),
    "properties": (Property, schemas.Property),
    "user_profiles": (UserProfile, schemas.UserProfile),
    "admin_users": (AdminUser, schemas.AdminUser),
}


@dataclass
class OperationResult:
    """Outcome of an admin operation."""

    success: bool
    error: str | None = None
    data: Any = None


def _error_text(error: SQLAlchemyError) -> str:
    """The database's own message, without SQLAlchemy's statement dump."""
    orig = getattr(error, "orig", None)
    return str(orig) if orig is not None else str(error)


def _placeholder_email(user_id: UUID) -> str:
    return f"user-{str(user_id)[:8]}"


async def _failed(db: AsyncSession, action: str, error: SQLAlchemyError, data: Any = None) -> OperationResult:
    logger.error(f"Error {action}: {error}")
    await db.rollback()
    return OperationResult(success=False, error=_error_text(error), data=data)


# =============================================================================
# Generic Reads/Writes
# =============================================================================


def _table(model) -> Table:
    return model.__table__


async def _select_rows(
    db: AsyncSession,
    capabilities: SchemaCapabilities,
    model,
    *conditions,
) -> list[dict]:
    """All rows of a table, newest first, restricted to existing columns."""
    table = _table(model)

    async def _query() -> list[dict]:
        columns = capabilities.columns(table.name, list(table.columns))
        stmt = select(*columns).order_by(table.c.created_at.desc())
        for condition in conditions:
            stmt = stmt.where(condition)
        result = await db.execute(stmt)
        return [dict(row) for row in result.mappings()]

    return await run_with_active_fallback(db, capabilities, table.name, _query)


async def _insert_row(
    db: AsyncSession,
    capabilities: SchemaCapabilities,
    model,
    values: dict,
) -> dict:
    """Insert a row and return it as stored."""
    table = _table(model)

    async def _write() -> dict:
        stmt = (
            insert(table)
            .values(**capabilities.values(table.name, values))
            .returning(*capabilities.columns(table.name, list(table.columns)))
        )
        row = (await db.execute(stmt)).mappings().one()
        await db.commit()
        return dict(row)

    return await run_with_active_fallback(db, capabilities, table.name, _write)


async def _update_row(
    db: AsyncSession,
    capabilities: SchemaCapabilities,
    model,
    record_id: UUID,
    values: dict,
) -> dict | None:
    """Update a row by id and return it, or None when no row matched.

    When nothing is left to write (only is_active, on a table without it)
    the current row is returned unchanged.
    """
    table = _table(model)

    async def _write() -> dict | None:
        payload = capabilities.values(table.name, values)
        columns = capabilities.columns(table.name, list(table.columns))
        if payload:
            stmt = (
                update(table)
                .where(table.c.id == record_id)
                .values(**payload)
                .returning(*columns)
            )
        else:
            stmt = select(*columns).where(table.c.id == record_id)
        row = (await db.execute(stmt)).mappings().first()
        await db.commit()
        return dict(row) if row is not None else None

    return await run_with_active_fallback(db, capabilities, table.name, _write)


async def _grouped_counts(db: AsyncSession, column, ids: list[UUID] | None = None) -> dict[UUID, int]:
    stmt = select(column, func.count()).group_by(column)
    if ids is not None:
        stmt = stmt.where(column.in_(ids))
    result = await db.execute(stmt)
    return {key: count for key, count in result.all()}


async def _organization_names(db: AsyncSession, ids: list[UUID]) -> dict[UUID, str]:
    if not ids:
        return {}
    result = await db.execute(
        select(Organization.id, Organization.name).where(Organization.id.in_(ids))
    )
    return {org_id: name for org_id, name in result.all()}


async def _user_emails(db: AsyncSession, user_ids: list[UUID]) -> dict[UUID, str]:
    if not user_ids:
        return {}
    result = await db.execute(select(User.id, User.email).where(User.id.in_(user_ids)))
    return {user_id: email for user_id, email in result.all()}


async def _profile_names(db: AsyncSession, user_ids: list[UUID]) -> dict[UUID, str]:
    if not user_ids:
        return {}
    result = await db.execute(
        select(UserProfile.user_id, UserProfile.first_name, UserProfile.last_name).where(
            UserProfile.user_id.in_(user_ids)
        )
    )
    return {
        user_id: f"{first_name} {last_name}"
        for user_id, first_name, last_name in result.all()
    }


async def _admin_status(
    db: AsyncSession, capabilities: SchemaCapabilities, user_ids: list[UUID]
) -> dict[UUID, tuple[bool, str]]:
    """Map user id to (is_active, admin_level) for users with an admin row."""
    if not user_ids:
        return {}

    async def _query() -> dict[UUID, tuple[bool, str]]:
        columns = [AdminUser.user_id, AdminUser.admin_level]
        if capabilities.has_active_flag("admin_users"):
            columns.append(AdminUser.is_active)
        result = await db.execute(select(*columns).where(AdminUser.user_id.in_(user_ids)))
        status = {}
        for row in result.mappings():
            status[row["user_id"]] = (row.get("is_active", True), row["admin_level"])
        return status

    return await run_with_active_fallback(db, capabilities, "admin_users", _query)


# =============================================================================
# Permissions
# =============================================================================


async def get_admin_permissions(
    db: AsyncSession, capabilities: SchemaCapabilities, user_id: UUID
) -> schemas.AdminPermissions | None:
    """The user's active admin row as permissions, or None for non-admins."""

    async def _query():
        stmt = select(
            AdminUser.organization_id,
            AdminUser.admin_level,
            AdminUser.can_manage_organizations,
            AdminUser.can_manage_properties,
            AdminUser.can_manage_users,
            AdminUser.can_view_all_data,
        ).where(AdminUser.user_id == user_id)
        if capabilities.has_active_flag("admin_users"):
            stmt = stmt.where(AdminUser.is_active.is_(True))
        return (await db.execute(stmt)).mappings().first()

    try:
        row = await run_with_active_fallback(db, capabilities, "admin_users", _query)
    except SQLAlchemyError as e:
        logger.error(f"Error getting admin permissions: {e}")
        await db.rollback()
        return None

    if row is None:
        return None
    return schemas.AdminPermissions(is_admin=True, **row)


async def is_user_admin(
    db: AsyncSession, capabilities: SchemaCapabilities, user_id: UUID
) -> bool:
    """Whether the user holds an active admin row."""
    return await get_admin_permissions(db, capabilities, user_id) is not None


# =============================================================================
# Organizations
# =============================================================================


async def list_organizations(
    db: AsyncSession, capabilities: SchemaCapabilities
) -> OperationResult:
    """All organizations, newest first, with property and user counts."""
    try:
        rows = await _select_rows(db, capabilities, Organization)
        property_counts = await _grouped_counts(db, Property.organization_id)
        user_counts = await _grouped_counts(db, UserProfile.organization_id)
    except SQLAlchemyError as e:
        return await _failed(db, "fetching organizations", e, data=[])

    organizations = [
        schemas.Organization(
            **row,
            properties_count=property_counts.get(row["id"], 0),
            users_count=user_counts.get(row["id"], 0),
        )
        for row in rows
    ]
    return OperationResult(success=True, data=organizations)


async def create_organization(
    db: AsyncSession, capabilities: SchemaCapabilities, name: str
) -> OperationResult:
    """Create an active organization."""
    if not name or not name.strip():
        return OperationResult(success=False, error="Organization name is required")

    try:
        row = await _insert_row(
            db, capabilities, Organization, {"name": name.strip(), "is_active": True}
        )
    except SQLAlchemyError as e:
        return await _failed(db, "creating organization", e)

    logger.info(f"Created organization {row['id']}")
    return OperationResult(success=True, data=schemas.Organization(**row))


async def update_organization(
    db: AsyncSession,
    capabilities: SchemaCapabilities,
    organization_id: UUID,
    name: str,
    is_active: bool | None = None,
) -> OperationResult:
    """Rename an organization and optionally change its active flag."""
    if not name or not name.strip():
        return OperationResult(success=False, error="Organization name is required")

    values: dict[str, Any] = {"name": name.strip()}
    if is_active is not None:
        values["is_active"] = is_active

    try:
        row = await _update_row(db, capabilities, Organization, organization_id, values)
    except SQLAlchemyError as e:
        return await _failed(db, "updating organization", e)

    if row is None:
        return OperationResult(success=False, error="Organization not found")
    return OperationResult(success=True, data=schemas.Organization(**row))


# =============================================================================
# Properties
# =============================================================================


async def _property_records(db: AsyncSession, rows: list[dict]) -> list[schemas.Property]:
    org_names = await _organization_names(db, list({row["organization_id"] for row in rows}))
    call_counts = await _grouped_counts(
        db, CallRecord.property_id, [row["id"] for row in rows]
    )
    return [
        schemas.Property(
            **row,
            organization_name=org_names.get(row["organization_id"]),
            calls_count=call_counts.get(row["id"], 0),
        )
        for row in rows
    ]


async def list_properties(
    db: AsyncSession,
    capabilities: SchemaCapabilities,
    organization_id: UUID | None = None,
) -> OperationResult:
    """Properties, newest first, optionally for one organization."""
    conditions = []
    if organization_id is not None:
        conditions.append(Property.organization_id == organization_id)

    try:
        rows = await _select_rows(db, capabilities, Property, *conditions)
        properties = await _property_records(db, rows) if rows else []
    except SQLAlchemyError as e:
        return await _failed(db, "fetching properties", e, data=[])

    return OperationResult(success=True, data=properties)


async def create_property(
    db: AsyncSession,
    capabilities: SchemaCapabilities,
    organization_id: UUID | None,
    name: str,
    retell_agent_id: str | None = None,
) -> OperationResult:
    """Create an active property in an organization."""
    if organization_id is None:
        return OperationResult(success=False, error="Organization is required")
    if not name or not name.strip():
        return OperationResult(success=False, error="Property name is required")

    values = {
        "organization_id": organization_id,
        "name": name.strip(),
        "retell_agent_id": retell_agent_id or None,
        "is_active": True,
    }
    try:
        row = await _insert_row(db, capabilities, Property, values)
        [record] = await _property_records(db, [row])
    except SQLAlchemyError as e:
        return await _failed(db, "creating property", e)

    logger.info(f"Created property {row['id']} in organization {organization_id}")
    return OperationResult(success=True, data=record)


async def update_property(
    db: AsyncSession,
    capabilities: SchemaCapabilities,
    property_id: UUID,
    name: str,
    retell_agent_id: str | None = None,
    is_active: bool | None = None,
) -> OperationResult:
    """Update a property's name, agent id and optionally its active flag."""
    if not name or not name.strip():
        return OperationResult(success=False, error="Property name is required")

    values: dict[str, Any] = {
        "name": name.strip(),
        "retell_agent_id": retell_agent_id or None,
    }
    if is_active is not None:
        values["is_active"] = is_active

    try:
        row = await _update_row(db, capabilities, Property, property_id, values)
        if row is None:
            return OperationResult(success=False, error="Property not found")
        [record] = await _property_records(db, [row])
    except SQLAlchemyError as e:
        return await _failed(db, "updating property", e)

    return OperationResult(success=True, data=record)


# =============================================================================
# User Profiles
# =============================================================================


async def _profile_records(
    db: AsyncSession,
    capabilities: SchemaCapabilities,
    rows: list[dict],
    email: str | None = None,
) -> list[schemas.UserProfile]:
    user_ids = [row["user_id"] for row in rows]
    org_names = await _organization_names(db, list({row["organization_id"] for row in rows}))
    emails = await _user_emails(db, user_ids)
    admins = await _admin_status(db, capabilities, user_ids)

    records = []
    for row in rows:
        is_admin, admin_level = admins.get(row["user_id"], (False, "user"))
        records.append(
            schemas.UserProfile(
                **row,
                email=email or emails.get(row["user_id"]) or _placeholder_email(row["user_id"]),
                organization_name=org_names.get(row["organization_id"]),
                is_admin=bool(is_admin),
                admin_level=admin_level if is_admin else "user",
            )
        )
    return records


async def list_user_profiles(
    db: AsyncSession,
    capabilities: SchemaCapabilities,
    organization_id: UUID | None = None,
) -> OperationResult:
    """User profiles, newest first, with email, organization and admin status."""
    conditions = []
    if organization_id is not None:
        conditions.append(UserProfile.organization_id == organization_id)

    try:
        rows = await _select_rows(db, capabilities, UserProfile, *conditions)
        profiles = await _profile_records(db, capabilities, rows) if rows else []
    except SQLAlchemyError as e:
        return await _failed(db, "fetching user profiles", e, data=[])

    return OperationResult(success=True, data=profiles)


async def create_user_profile(
    db: AsyncSession,
    capabilities: SchemaCapabilities,
    user_id: UUID | None,
    organization_id: UUID | None,
    first_name: str,
    last_name: str,
    email: str | None = None,
) -> OperationResult:
    """Attach a user to an organization."""
    if user_id is None:
        return OperationResult(success=False, error="User is required")
    if organization_id is None:
        return OperationResult(success=False, error="Organization is required")
    if not first_name or not first_name.strip():
        return OperationResult(success=False, error="First name is required")
    if not last_name or not last_name.strip():
        return OperationResult(success=False, error="Last name is required")

    values = {
        "user_id": user_id,
        "organization_id": organization_id,
        "first_name": first_name.strip(),
        "last_name": last_name.strip(),
        "is_active": True,
    }
    try:
        row = await _insert_row(db, capabilities, UserProfile, values)
        [record] = await _profile_records(db, capabilities, [row], email=email)
    except SQLAlchemyError as e:
        return await _failed(db, "creating user profile", e)

    logger.info(f"Created user profile for {user_id} in organization {organization_id}")
    return OperationResult(success=True, data=record)


async def update_user_profile(
    db: AsyncSession,
    capabilities: SchemaCapabilities,
    profile_id: UUID,
    first_name: str,
    last_name: str,
    is_active: bool | None = None,
) -> OperationResult:
    """Update a profile's names and optionally its active flag."""
    if not first_name or not first_name.strip():
        return OperationResult(success=False, error="First name is required")
    if not last_name or not last_name.strip():
        return OperationResult(success=False, error="Last name is required")

    values: dict[str, Any] = {
        "first_name": first_name.strip(),
        "last_name": last_name.strip(),
    }
    if is_active is not None:
        values["is_active"] = is_active

    try:
        row = await _update_row(db, capabilities, UserProfile, profile_id, values)
        if row is None:
            return OperationResult(success=False, error="User profile not found")
        [record] = await _profile_records(db, capabilities, [row])
    except SQLAlchemyError as e:
        return await _failed(db, "updating user profile", e)

    return OperationResult(success=True, data=record)


# =============================================================================
# Admin Users
# =============================================================================


async def _admin_records(db: AsyncSession, rows: list[dict]) -> list[schemas.AdminUser]:
    user_ids = [row["user_id"] for row in rows]
    org_names = await _organization_names(db, list({row["organization_id"] for row in rows}))
    names = await _profile_names(db, user_ids)
    emails = await _user_emails(db, user_ids)
    return [
        schemas.AdminUser(
            **row,
            user_name=names.get(row["user_id"], UNKNOWN_USER_NAME),
            user_email=emails.get(row["user_id"]) or _placeholder_email(row["user_id"]),
            organization_name=org_names.get(row["organization_id"]),
        )
        for row in rows
    ]


def _check_admin_level(admin_level: str | None) -> str | None:
    valid = [level.value for level in schemas.AdminLevel]
    if admin_level is not None and admin_level not in valid:
        return f"Admin level must be one of: {', '.join(valid)}"
    return None


async def list_admin_users(
    db: AsyncSession, capabilities: SchemaCapabilities
) -> OperationResult:
    """Admin rows, newest first, with the admin's name, email and organization."""
    try:
        rows = await _select_rows(db, capabilities, AdminUser)
        admins = await _admin_records(db, rows) if rows else []
    except SQLAlchemyError as e:
        return await _failed(db, "fetching admin users", e, data=[])

    return OperationResult(success=True, data=admins)


async def create_admin_user(
    db: AsyncSession,
    capabilities: SchemaCapabilities,
    user_id: UUID | None,
    organization_id: UUID | None,
    admin_level: str = schemas.AdminLevel.ADMIN.value,
    permissions: dict[str, bool] | None = None,
    granted_by: UUID | None = None,
) -> OperationResult:
    """Grant admin rights. Permission flags not given default to True."""
    if user_id is None:
        return OperationResult(success=False, error="User is required")
    if organization_id is None:
        return OperationResult(success=False, error="Organization is required")
    problem = _check_admin_level(admin_level)
    if problem:
        return OperationResult(success=False, error=problem)

    permissions = permissions or {}
    values: dict[str, Any] = {
        "user_id": user_id,
        "organization_id": organization_id,
        "admin_level": admin_level,
        "granted_by": granted_by,
        "is_active": True,
    }
    for flag in PERMISSION_FLAGS:
        values[flag] = permissions.get(flag, True)

    try:
        row = await _insert_row(db, capabilities, AdminUser, values)
        [record] = await _admin_records(db, [row])
    except SQLAlchemyError as e:
        return await _failed(db, "creating admin user", e)

    logger.info(f"Granted {admin_level} to user {user_id}")
    return OperationResult(success=True, data=record)


async def update_admin_user(
    db: AsyncSession,
    capabilities: SchemaCapabilities,
    admin_id: UUID,
    admin_level: str | None = None,
    permissions: dict[str, bool] | None = None,
    is_active: bool | None = None,
) -> OperationResult:
    """Change an admin's level, permission flags or active flag."""
    problem = _check_admin_level(admin_level)
    if problem:
        return OperationResult(success=False, error=problem)

    values: dict[str, Any] = {}
    if admin_level:
        values["admin_level"] = admin_level
    for flag, granted in (permissions or {}).items():
        if flag not in PERMISSION_FLAGS:
            return OperationResult(success=False, error=f"Unknown permission: {flag}")
        values[flag] = granted
    if is_active is not None:
        values["is_active"] = is_active

    try:
        row = await _update_row(db, capabilities, AdminUser, admin_id, values)
        if row is None:
            return OperationResult(success=False, error="Admin user not found")
        [record] = await _admin_records(db, [row])
    except SQLAlchemyError as e:
        return await _failed(db, "updating admin user", e)

    return OperationResult(success=True, data=record)


# =============================================================================
# Active Flag
# =============================================================================


async def set_active(
    db: AsyncSession,
    capabilities: SchemaCapabilities,
    entity: str,
    record_id: UUID,
    is_active: bool,
) -> OperationResult:
    """Flip only the active flag of a record.

    On a table without the column this is a no-op that reports the record
    as active.
    """
    if entity not in ENTITIES:
        return OperationResult(success=False, error=f"Unknown entity: {entity}")
    model, record_type = ENTITIES[entity]

    try:
        row = await _update_row(db, capabilities, model, record_id, {"is_active": is_active})
    except SQLAlchemyError as e:
        return await _failed(db, f"updating {entity} active flag", e)

    if row is None:
        return OperationResult(success=False, error="Record not found")
    return OperationResult(success=True, data=record_type(**row))
