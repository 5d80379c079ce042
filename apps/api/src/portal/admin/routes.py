"""Admin API routes.

CRUD for organizations, properties, user profiles and admin users. Every
route requires an active admin row carrying the matching capability flag;
everyone else gets 403. Write failures come back as an
``{success, error, data}`` envelope rather than an HTTP error.
"""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from leo_shared import schemas
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from portal.admin.filters import filter_records
from portal.admin.service import (
    OperationResult,
    create_admin_user,
    create_organization,
    create_property,
    create_user_profile,
    get_admin_permissions,
    list_admin_users,
    list_organizations,
    list_properties,
    list_user_profiles,
    set_active,
    update_admin_user,
    update_organization,
    update_property,
    update_user_profile,
)
from portal.auth.jwt import get_current_user
from portal.db.capabilities import SchemaCapabilities, get_capabilities
from portal.db.database import get_db
from portal.db.models import User

router = APIRouter(prefix="/admin", tags=["Admin"])


# =============================================================================
# Request/Response Models
# =============================================================================


class OperationResponse(BaseModel):
    """Envelope returned by admin writes."""

    success: bool
    error: str | None = None
    data: Any = None


class OrganizationCreate(BaseModel):
    name: str


class OrganizationUpdate(BaseModel):
    name: str
    is_active: bool | None = None


class PropertyCreate(BaseModel):
    organization_id: UUID
    name: str
    retell_agent_id: str | None = None


class PropertyUpdate(BaseModel):
    name: str
    retell_agent_id: str | None = None
    is_active: bool | None = None


class UserProfileCreate(BaseModel):
    user_id: UUID
    organization_id: UUID
    first_name: str
    last_name: str
    email: str | None = None


class UserProfileUpdate(BaseModel):
    first_name: str
    last_name: str
    is_active: bool | None = None


class AdminPermissionFlags(BaseModel):
    """Permission flags; omitted flags are left unchanged (or default to True on create)."""

    can_manage_organizations: bool | None = None
    can_manage_properties: bool | None = None
    can_manage_users: bool | None = None
    can_view_all_data: bool | None = None

    def given(self) -> dict[str, bool]:
        return self.model_dump(exclude_none=True)


class AdminUserCreate(BaseModel):
    user_id: UUID
    organization_id: UUID
    admin_level: str = schemas.AdminLevel.ADMIN.value
    permissions: AdminPermissionFlags = Field(default_factory=AdminPermissionFlags)


class AdminUserUpdate(BaseModel):
    admin_level: str | None = None
    permissions: AdminPermissionFlags = Field(default_factory=AdminPermissionFlags)
    is_active: bool | None = None


class ActiveToggle(BaseModel):
    is_active: bool


def _envelope(result: OperationResult) -> OperationResponse:
    return OperationResponse(success=result.success, error=result.error, data=result.data)


# =============================================================================
# Dependencies
# =============================================================================


def require_admin(capability: schemas.AdminCapability):
    """Dependency factory: the caller must be an admin with ``capability``."""

    async def _require(
        user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
        capabilities: SchemaCapabilities = Depends(get_capabilities),
    ) -> schemas.AdminPermissions:
        permissions = await get_admin_permissions(db, capabilities, user.id)
        if permissions is None or not permissions.allows(capability):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Admin privileges required",
            )
        return permissions

    return _require


manage_organizations = require_admin(schemas.AdminCapability.MANAGE_ORGANIZATIONS)
manage_properties = require_admin(schemas.AdminCapability.MANAGE_PROPERTIES)
manage_users = require_admin(schemas.AdminCapability.MANAGE_USERS)


# =============================================================================
# Routes: Permissions
# =============================================================================


@router.get("/permissions", response_model=schemas.AdminPermissions | None)
async def my_permissions(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
):
    """The caller's admin permissions, or null for non-admins."""
    return await get_admin_permissions(db, capabilities, user.id)


@router.get("/is-admin")
async def am_i_admin(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
):
    """Whether the caller holds an active admin row."""
    permissions = await get_admin_permissions(db, capabilities, user.id)
    return {"is_admin": permissions is not None}


# =============================================================================
# Routes: Organizations
# =============================================================================


@router.get("/organizations", response_model=list[schemas.Organization])
async def get_organizations(
    search: str | None = None,
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
    _: schemas.AdminPermissions = Depends(manage_organizations),
):
    result = await list_organizations(db, capabilities)
    return filter_records(result.data, search)


@router.post("/organizations", response_model=OperationResponse)
async def post_organization(
    request: OrganizationCreate,
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
    _: schemas.AdminPermissions = Depends(manage_organizations),
):
    return _envelope(await create_organization(db, capabilities, request.name))


@router.patch("/organizations/{organization_id}", response_model=OperationResponse)
async def patch_organization(
    organization_id: UUID,
    request: OrganizationUpdate,
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
    _: schemas.AdminPermissions = Depends(manage_organizations),
):
    return _envelope(
        await update_organization(
            db, capabilities, organization_id, request.name, request.is_active
        )
    )


@router.post("/organizations/{organization_id}/active", response_model=OperationResponse)
async def toggle_organization(
    organization_id: UUID,
    request: ActiveToggle,
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
    _: schemas.AdminPermissions = Depends(manage_organizations),
):
    return _envelope(
        await set_active(db, capabilities, "organizations", organization_id, request.is_active)
    )


# =============================================================================
# Routes: Properties
# =============================================================================


@router.get("/properties", response_model=list[schemas.Property])
async def get_properties(
    organization_id: UUID | None = None,
    search: str | None = None,
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
    _: schemas.AdminPermissions = Depends(manage_properties),
):
    result = await list_properties(db, capabilities, organization_id)
    return filter_records(result.data, search, organization_id)


@router.post("/properties", response_model=OperationResponse)
async def post_property(
    request: PropertyCreate,
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
    _: schemas.AdminPermissions = Depends(manage_properties),
):
    return _envelope(
        await create_property(
            db, capabilities, request.organization_id, request.name, request.retell_agent_id
        )
    )


@router.patch("/properties/{property_id}", response_model=OperationResponse)
async def patch_property(
    property_id: UUID,
    request: PropertyUpdate,
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
    _: schemas.AdminPermissions = Depends(manage_properties),
):
    return _envelope(
        await update_property(
            db,
            capabilities,
            property_id,
            request.name,
            request.retell_agent_id,
            request.is_active,
        )
    )


@router.post("/properties/{property_id}/active", response_model=OperationResponse)
async def toggle_property(
    property_id: UUID,
    request: ActiveToggle,
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
    _: schemas.AdminPermissions = Depends(manage_properties),
):
    return _envelope(
        await set_active(db, capabilities, "properties", property_id, request.is_active)
    )


# =============================================================================
# Routes: User Profiles
# =============================================================================


@router.get("/users", response_model=list[schemas.UserProfile])
async def get_user_profiles(
    organization_id: UUID | None = None,
    search: str | None = None,
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
    _: schemas.AdminPermissions = Depends(manage_users),
):
    result = await list_user_profiles(db, capabilities, organization_id)
    return filter_records(result.data, search, organization_id)


@router.post("/users", response_model=OperationResponse)
async def post_user_profile(
    request: UserProfileCreate,
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
    _: schemas.AdminPermissions = Depends(manage_users),
):
    return _envelope(
        await create_user_profile(
            db,
            capabilities,
            request.user_id,
            request.organization_id,
            request.first_name,
            request.last_name,
            request.email,
        )
    )


@router.patch("/users/{profile_id}", response_model=OperationResponse)
async def patch_user_profile(
    profile_id: UUID,
    request: UserProfileUpdate,
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
    _: schemas.AdminPermissions = Depends(manage_users),
):
    return _envelope(
        await update_user_profile(
            db,
            capabilities,
            profile_id,
            request.first_name,
            request.last_name,
            request.is_active,
        )
    )


@router.post("/users/{profile_id}/active", response_model=OperationResponse)
async def toggle_user_profile(
    profile_id: UUID,
    request: ActiveToggle,
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
    _: schemas.AdminPermissions = Depends(manage_users),
):
    return _envelope(
        await set_active(db, capabilities, "user_profiles", profile_id, request.is_active)
    )


# =============================================================================
# Routes: Admin Users
# =============================================================================


@router.get("/admins", response_model=list[schemas.AdminUser])
async def get_admin_users(
    organization_id: UUID | None = None,
    search: str | None = None,
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
    _: schemas.AdminPermissions = Depends(manage_users),
):
    result = await list_admin_users(db, capabilities)
    return filter_records(result.data, search, organization_id)


@router.post("/admins", response_model=OperationResponse)
async def post_admin_user(
    request: AdminUserCreate,
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
    user: User = Depends(get_current_user),
    _: schemas.AdminPermissions = Depends(manage_users),
):
    return _envelope(
        await create_admin_user(
            db,
            capabilities,
            request.user_id,
            request.organization_id,
            request.admin_level,
            request.permissions.given(),
            granted_by=user.id,
        )
    )


@router.patch("/admins/{admin_id}", response_model=OperationResponse)
async def patch_admin_user(
    admin_id: UUID,
    request: AdminUserUpdate,
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
    _: schemas.AdminPermissions = Depends(manage_users),
):
    return _envelope(
        await update_admin_user(
            db,
            capabilities,
            admin_id,
            request.admin_level,
            request.permissions.given(),
            request.is_active,
        )
    )


@router.post("/admins/{admin_id}/active", response_model=OperationResponse)
async def toggle_admin_user(
    admin_id: UUID,
    request: ActiveToggle,
    db: AsyncSession = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
    _: schemas.AdminPermissions = Depends(manage_users),
):
    return _envelope(
        await set_active(db, capabilities, "admin_users", admin_id, request.is_active)
    )
