"""Organization management routes (requires auth)."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from vatofotsy_api.auth import get_current_user
from vatofotsy_api.db import get_db
from vatofotsy_api.models import (
    MemberStatus,
    OrganizationMember,
    OrganizationRole,
    OrganizationType,
    User,
)
from vatofotsy_api.routes.polls import PollResponse, poll_response
from vatofotsy_api.services import members as member_service
from vatofotsy_api.services import organizations as organization_service
from vatofotsy_api.services import polls as poll_service
from vatofotsy_api.services.storage import FileStorage, get_file_storage

router = APIRouter(prefix="/organizations", tags=["organizations"])


# --- Schemas ---


class OrganizationCreate(BaseModel):
    """Create a new organization."""

    name: str = Field(min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    website: str | None = None
    email: str | None = None
    phone: str | None = None
    organization_type: OrganizationType = OrganizationType.GROUP


class OrganizationUpdate(BaseModel):
    """Update an organization. Omitted fields are left unchanged."""

    name: str | None = Field(default=None, min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    website: str | None = None
    email: str | None = None
    phone: str | None = None
    organization_type: OrganizationType | None = None
    is_active: bool | None = None


class OrganizationResponse(BaseModel):
    """Organization response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str | None
    website: str | None
    email: str | None
    phone: str | None
    organization_type: OrganizationType
    is_active: bool
    created_at: datetime


class MemberResponse(BaseModel):
    """Organization member or pending invite."""

    id: str
    user_id: str
    email: str
    first_name: str
    last_name: str
    role: OrganizationRole
    status: MemberStatus
    invited_by: str | None
    invited_at: datetime | None
    joined_at: datetime | None
    expires_at: datetime | None


class InviteCreate(BaseModel):
    """Invite an existing user."""

    user_id: str
    role: OrganizationRole = OrganizationRole.MEMBER


class MembershipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    organization_id: str
    user_id: str
    role: OrganizationRole
    status: MemberStatus
    invited_by: str | None
    invited_at: datetime | None
    joined_at: datetime | None
    expires_at: datetime | None


class MemberUpdateRole(BaseModel):
    role: OrganizationRole


# --- Helper functions ---


def member_response(member: OrganizationMember, user: User) -> MemberResponse:
    return MemberResponse(
        id=member.id,
        user_id=member.user_id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        role=member.role,
        status=member.status,
        invited_by=member.invited_by,
        invited_at=member.invited_at,
        joined_at=member.joined_at,
        expires_at=member.expires_at,
    )


# --- Organization endpoints ---


@router.post(
    "", response_model=OrganizationResponse, status_code=status.HTTP_201_CREATED
)
async def create_organization(
    data: OrganizationCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create a new organization. Creator becomes owner."""
    return await organization_service.create_organization(
        db,
        name=data.name,
        owner_id=current_user.id,
        description=data.description,
        website=data.website,
        email=data.email,
        phone=data.phone,
        organization_type=data.organization_type,
    )


@router.get("", response_model=list[OrganizationResponse])
async def list_organizations(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await organization_service.list_organizations(db)


@router.get("/{org_id}", response_model=OrganizationResponse)
async def get_organization(
    org_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await organization_service.get_organization(db, org_id)


@router.put("/{org_id}", response_model=OrganizationResponse)
async def update_organization(
    org_id: str,
    data: OrganizationUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Update organization (admin+ only)."""
    patch = organization_service.OrganizationPatch(
        **data.model_dump(exclude_unset=True)
    )
    return await organization_service.update_organization(
        db, org_id, patch, current_user.id
    )


@router.delete("/{org_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_organization(
    org_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    storage: Annotated[FileStorage, Depends(get_file_storage)],
):
    """Delete organization with its polls (owner only)."""
    await organization_service.delete_organization(
        db, org_id, current_user.id, storage=storage
    )


# --- Member endpoints ---


@router.get("/{org_id}/members", response_model=list[MemberResponse])
async def list_members(
    org_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """List members and pending invites (members only)."""
    await organization_service.get_organization(db, org_id)
    await member_service.require_role(db, org_id, current_user.id)
    rows = await member_service.get_organization_members(db, org_id)
    return [member_response(member, user) for member, user in rows]


@router.post(
    "/{org_id}/members/invite",
    response_model=MembershipResponse,
    status_code=status.HTTP_201_CREATED,
)
async def invite_member(
    org_id: str,
    data: InviteCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Invite a user to the organization (admin+ only)."""
    return await member_service.invite_user(
        db, org_id, data.user_id, data.role, invited_by=current_user.id
    )


@router.put("/{org_id}/members/{user_id}/role", response_model=MembershipResponse)
async def update_member_role(
    org_id: str,
    user_id: str,
    data: MemberUpdateRole,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Change a member's role (owner only)."""
    return await member_service.update_member_role(
        db, org_id, user_id, data.role, updated_by=current_user.id
    )


@router.delete("/{org_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    org_id: str,
    user_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Remove a member or revoke an invite (admin+ only)."""
    await member_service.remove_member(db, org_id, user_id, removed_by=current_user.id)


# --- Poll endpoints ---


@router.get("/{org_id}/polls", response_model=list[PollResponse])
async def list_organization_polls(
    org_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    polls = await poll_service.list_polls_by_organization(db, org_id, current_user.id)
    return [poll_response(poll) for poll in polls]
