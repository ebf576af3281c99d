"""The current user's organizations and invites."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from vatofotsy_api.auth import get_current_user
from vatofotsy_api.db import get_db
from vatofotsy_api.models import MemberStatus, OrganizationRole, User
from vatofotsy_api.routes.organizations import MembershipResponse
from vatofotsy_api.services import members as member_service

router = APIRouter(prefix="/users/me/organizations", tags=["invites"])


# --- Schemas ---


class UserOrganizationResponse(BaseModel):
    """An organization the user belongs to, with their role."""

    organization_id: str
    name: str
    description: str | None
    role: OrganizationRole
    joined_at: datetime | None


class PendingInviteResponse(BaseModel):
    id: str
    organization_id: str
    organization_name: str
    role: OrganizationRole
    status: MemberStatus
    invited_by: str | None
    invited_at: datetime | None
    expires_at: datetime | None


# --- Endpoints ---


@router.get("", response_model=list[UserOrganizationResponse])
async def list_my_organizations(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    rows = await member_service.get_user_organizations(db, current_user.id)
    return [
        UserOrganizationResponse(
            organization_id=org.id,
            name=org.name,
            description=org.description,
            role=member.role,
            joined_at=member.joined_at,
        )
        for org, member in rows
    ]


@router.get("/invites", response_model=list[PendingInviteResponse])
async def list_my_invites(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    rows = await member_service.get_pending_invites(db, current_user.id)
    return [
        PendingInviteResponse(
            id=invite.id,
            organization_id=org.id,
            organization_name=org.name,
            role=invite.role,
            status=invite.status,
            invited_by=invite.invited_by,
            invited_at=invite.invited_at,
            expires_at=invite.expires_at,
        )
        for invite, org in rows
    ]


@router.put("/invites/{invite_id}/accept", response_model=MembershipResponse)
async def accept_invite(
    invite_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await member_service.accept_invite(db, invite_id, current_user.id)


@router.put("/invites/{invite_id}/decline", response_model=MembershipResponse)
async def decline_invite(
    invite_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await member_service.decline_invite(db, invite_id, current_user.id)
