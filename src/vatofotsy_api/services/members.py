"""Organization membership: invites, role changes and removal."""

import logging
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vatofotsy_api.config import poll_settings
from vatofotsy_api.errors import (
    AlreadyMember,
    CannotAssignOwnerRole,
    CannotModifyOwner,
    CannotRemoveOwner,
    InsufficientPermissions,
    InviteExpired,
    InviteNotForUser,
    InviteNotFound,
    InviteNotPending,
    InvitePending,
    MemberNotFound,
    NotOrganizationMember,
    OrganizationNotFound,
    UserNotFound,
)
from vatofotsy_api.models import (
    MemberStatus,
    Organization,
    OrganizationMember,
    OrganizationRole,
    User,
)
from vatofotsy_api.models.base import as_utc, utc_now

logger = logging.getLogger(__name__)

ROLE_HIERARCHY = {
    OrganizationRole.MEMBER: 0,
    OrganizationRole.ADMIN: 1,
    OrganizationRole.OWNER: 2,
}


async def get_membership(
    db: AsyncSession, organization_id: str, user_id: str
) -> OrganizationMember | None:
    """Get the membership row of a user in an organization, in any status."""
    result = await db.execute(
        select(OrganizationMember).where(
            OrganizationMember.organization_id == organization_id,
            OrganizationMember.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def is_accepted_member(
    db: AsyncSession, organization_id: str, user_id: str
) -> bool:
    membership = await get_membership(db, organization_id, user_id)
    return membership is not None and membership.status == MemberStatus.ACCEPTED


async def require_role(
    db: AsyncSession,
    organization_id: str,
    user_id: str,
    min_role: OrganizationRole = OrganizationRole.MEMBER,
) -> OrganizationMember:
    """Require an ACCEPTED membership with at least min_role.

    Raises:
        NotOrganizationMember: No accepted membership
        InsufficientPermissions: Accepted, but the role is too low
    """
    membership = await get_membership(db, organization_id, user_id)
    if membership is None or membership.status != MemberStatus.ACCEPTED:
        raise NotOrganizationMember()
    if ROLE_HIERARCHY[membership.role] < ROLE_HIERARCHY[min_role]:
        raise InsufficientPermissions(
            f"Requires {min_role.value} role or higher"
        )
    return membership


async def _require_organization(db: AsyncSession, organization_id: str) -> Organization:
    organization = await db.get(Organization, organization_id)
    if organization is None:
        raise OrganizationNotFound()
    return organization


async def invite_user(
    db: AsyncSession,
    organization_id: str,
    user_id: str,
    role: OrganizationRole,
    invited_by: str,
) -> OrganizationMember:
    """Invite a user to an organization.

    A user whose earlier invite was declined or expired is re-invited on the
    same membership row.

    Args:
        db: Database session
        organization_id: Organization to invite into
        user_id: User being invited
        role: ADMIN or MEMBER
        invited_by: Inviting user, must be an OWNER or ADMIN

    Returns:
        The PENDING membership

    Raises:
        OrganizationNotFound, UserNotFound, InsufficientPermissions,
        CannotAssignOwnerRole, AlreadyMember, InvitePending
    """
    await _require_organization(db, organization_id)
    try:
        await require_role(db, organization_id, invited_by, OrganizationRole.ADMIN)
    except NotOrganizationMember as e:
        raise InsufficientPermissions() from e
    if role == OrganizationRole.OWNER:
        raise CannotAssignOwnerRole()
    if await db.get(User, user_id) is None:
        raise UserNotFound()

    now = utc_now()
    expires_at = now + timedelta(days=poll_settings.invite_ttl_days)
    membership = await get_membership(db, organization_id, user_id)
    if membership is not None:
        if membership.status == MemberStatus.ACCEPTED:
            raise AlreadyMember()
        if membership.status == MemberStatus.PENDING:
            raise InvitePending()
        membership.role = role
        membership.status = MemberStatus.PENDING
        membership.invited_by = invited_by
        membership.invited_at = now
        membership.joined_at = None
        membership.expires_at = expires_at
    else:
        membership = OrganizationMember(
            organization_id=organization_id,
            user_id=user_id,
            role=role,
            status=MemberStatus.PENDING,
            invited_by=invited_by,
            invited_at=now,
            expires_at=expires_at,
        )
        db.add(membership)

    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise InvitePending() from e
    await db.refresh(membership)
    logger.info(
        "User %s invited user %s to organization %s as %s",
        invited_by,
        user_id,
        organization_id,
        role.value,
    )
    return membership


async def _get_invite_for_user(
    db: AsyncSession, invite_id: str, user_id: str
) -> OrganizationMember:
    invite = await db.get(OrganizationMember, invite_id)
    if invite is None:
        raise InviteNotFound()
    if invite.user_id != user_id:
        raise InviteNotForUser()
    if invite.status != MemberStatus.PENDING:
        raise InviteNotPending()
    return invite


async def accept_invite(
    db: AsyncSession, invite_id: str, user_id: str
) -> OrganizationMember:
    """Accept a pending invite.

    An invite found past its expiry is marked EXPIRED before failing.

    Raises:
        InviteNotFound, InviteNotForUser, InviteNotPending, InviteExpired
    """
    invite = await _get_invite_for_user(db, invite_id, user_id)
    now = utc_now()
    if invite.expires_at is not None and as_utc(invite.expires_at) <= now:
        invite.status = MemberStatus.EXPIRED
        await db.commit()
        raise InviteExpired()

    invite.status = MemberStatus.ACCEPTED
    invite.joined_at = now
    await db.commit()
    await db.refresh(invite)
    logger.info(
        "User %s joined organization %s", user_id, invite.organization_id
    )
    return invite


async def decline_invite(
    db: AsyncSession, invite_id: str, user_id: str
) -> OrganizationMember:
    invite = await _get_invite_for_user(db, invite_id, user_id)
    invite.status = MemberStatus.DECLINED
    await db.commit()
    await db.refresh(invite)
    return invite


async def remove_member(
    db: AsyncSession, organization_id: str, user_id: str, removed_by: str
) -> None:
    """Remove a member (or revoke an invite) from an organization.

    Raises:
        MemberNotFound: No membership row for the user
        CannotRemoveOwner: The target is the owner
        InsufficientPermissions: The remover is not an accepted OWNER or ADMIN
    """
    membership = await get_membership(db, organization_id, user_id)
    if membership is None:
        raise MemberNotFound()
    if membership.role == OrganizationRole.OWNER:
        raise CannotRemoveOwner()
    try:
        await require_role(db, organization_id, removed_by, OrganizationRole.ADMIN)
    except NotOrganizationMember as e:
        raise InsufficientPermissions("Insufficient permissions to remove member") from e

    await db.delete(membership)
    await db.commit()
    logger.info(
        "User %s removed user %s from organization %s",
        removed_by,
        user_id,
        organization_id,
    )


async def update_member_role(
    db: AsyncSession,
    organization_id: str,
    user_id: str,
    new_role: OrganizationRole,
    updated_by: str,
) -> OrganizationMember:
    """Change a member's role. Only the owner may do this.

    Raises:
        MemberNotFound, CannotModifyOwner, InsufficientPermissions,
        CannotAssignOwnerRole
    """
    membership = await get_membership(db, organization_id, user_id)
    if membership is None:
        raise MemberNotFound()
    if membership.role == OrganizationRole.OWNER and new_role != OrganizationRole.OWNER:
        raise CannotModifyOwner()
    try:
        await require_role(db, organization_id, updated_by, OrganizationRole.OWNER)
    except (NotOrganizationMember, InsufficientPermissions) as e:
        raise InsufficientPermissions(
            "Only organization owners can update member roles"
        ) from e
    if new_role == OrganizationRole.OWNER:
        raise CannotAssignOwnerRole()

    membership.role = new_role
    await db.commit()
    await db.refresh(membership)
    return membership


async def get_organization_members(
    db: AsyncSession, organization_id: str
) -> list[tuple[OrganizationMember, User]]:
    """List all membership rows of an organization with their users."""
    result = await db.execute(
        select(OrganizationMember, User)
        .join(User, User.id == OrganizationMember.user_id)
        .where(OrganizationMember.organization_id == organization_id)
        .order_by(OrganizationMember.created_at)
    )
    return [(member, user) for member, user in result.all()]


async def get_user_organizations(
    db: AsyncSession, user_id: str
) -> list[tuple[Organization, OrganizationMember]]:
    """List organizations the user has joined, with the user's membership."""
    result = await db.execute(
        select(Organization, OrganizationMember)
        .join(OrganizationMember, OrganizationMember.organization_id == Organization.id)
        .where(
            OrganizationMember.user_id == user_id,
            OrganizationMember.status == MemberStatus.ACCEPTED,
        )
        .order_by(Organization.name)
    )
    return [(org, member) for org, member in result.all()]


async def get_pending_invites(
    db: AsyncSession, user_id: str
) -> list[tuple[OrganizationMember, Organization]]:
    """List the user's pending invites, newest first."""
    result = await db.execute(
        select(OrganizationMember, Organization)
        .join(Organization, Organization.id == OrganizationMember.organization_id)
        .where(
            OrganizationMember.user_id == user_id,
            OrganizationMember.status == MemberStatus.PENDING,
        )
        .order_by(OrganizationMember.invited_at.desc())
    )
    return [(member, org) for member, org in result.all()]
