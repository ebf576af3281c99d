"""Organization creation, update and deletion."""

import logging

from pydantic import BaseModel
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vatofotsy_api.errors import DuplicateOrganizationName, OrganizationNotFound
from vatofotsy_api.models import (
    MemberStatus,
    Organization,
    OrganizationMember,
    OrganizationRole,
    OrganizationType,
    Poll,
)
from vatofotsy_api.models.base import utc_now
from vatofotsy_api.services import polls as poll_service
from vatofotsy_api.services.members import require_role
from vatofotsy_api.services.storage import FileStorage
from vatofotsy_api.services.validation import (
    validate_email,
    validate_phone,
    validate_website,
)

logger = logging.getLogger(__name__)


class OrganizationPatch(BaseModel):
    """Partial organization update. Only fields that were set are applied;
    an explicit None clears an optional field."""

    name: str | None = None
    description: str | None = None
    website: str | None = None
    email: str | None = None
    phone: str | None = None
    organization_type: OrganizationType | None = None
    is_active: bool | None = None


def _validated_contact(
    website: str | None, email: str | None, phone: str | None
) -> tuple[str | None, str | None, str | None]:
    return (
        validate_website(website) if website else None,
        validate_email(email) if email else None,
        validate_phone(phone) if phone else None,
    )


async def _name_taken(
    db: AsyncSession, name: str, exclude_id: str | None = None
) -> bool:
    query = select(Organization.id).where(Organization.name == name)
    if exclude_id is not None:
        query = query.where(Organization.id != exclude_id)
    result = await db.execute(query)
    return result.first() is not None


async def get_organization(db: AsyncSession, organization_id: str) -> Organization:
    organization = await db.get(Organization, organization_id)
    if organization is None:
        raise OrganizationNotFound()
    return organization


async def list_organizations(db: AsyncSession) -> list[Organization]:
    result = await db.execute(
        select(Organization)
        .where(Organization.is_active.is_(True))
        .order_by(Organization.name)
    )
    return list(result.scalars().all())


async def create_organization(
    db: AsyncSession,
    name: str,
    owner_id: str,
    description: str | None = None,
    website: str | None = None,
    email: str | None = None,
    phone: str | None = None,
    organization_type: OrganizationType = OrganizationType.GROUP,
) -> Organization:
    """Create an organization owned by owner_id.

    The organization and its OWNER membership are written in one
    transaction; neither exists if either insert fails.

    Raises:
        DuplicateOrganizationName: Name already used
        InvalidEmail, InvalidWebsite, InvalidPhone: Malformed contact details
    """
    name = name.strip()
    website, email, phone = _validated_contact(website, email, phone)
    if await _name_taken(db, name):
        raise DuplicateOrganizationName()

    organization = Organization(
        name=name,
        description=description,
        website=website,
        email=email,
        phone=phone,
        organization_type=organization_type,
        is_active=True,
    )
    db.add(organization)
    try:
        await db.flush()  # Get organization.id
        db.add(
            OrganizationMember(
                organization_id=organization.id,
                user_id=owner_id,
                role=OrganizationRole.OWNER,
                status=MemberStatus.ACCEPTED,
                joined_at=utc_now(),
            )
        )
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if await _name_taken(db, name):
            raise DuplicateOrganizationName() from e
        raise

    await db.refresh(organization)
    logger.info("User %s created organization %s", owner_id, organization.id)
    return organization


async def update_organization(
    db: AsyncSession,
    organization_id: str,
    patch: OrganizationPatch,
    updated_by: str,
) -> Organization:
    """Apply a partial update. Requires OWNER or ADMIN.

    Raises:
        OrganizationNotFound, NotOrganizationMember, InsufficientPermissions,
        DuplicateOrganizationName, InvalidEmail, InvalidWebsite, InvalidPhone
    """
    organization = await get_organization(db, organization_id)
    await require_role(db, organization_id, updated_by, OrganizationRole.ADMIN)

    changes = {field: getattr(patch, field) for field in patch.model_fields_set}
    if changes.get("name") is not None:
        changes["name"] = changes["name"].strip()
        if changes["name"] != organization.name and await _name_taken(
            db, changes["name"], exclude_id=organization.id
        ):
            raise DuplicateOrganizationName()
    elif "name" in changes:
        del changes["name"]
    if "organization_type" in changes and changes["organization_type"] is None:
        del changes["organization_type"]
    if "is_active" in changes and changes["is_active"] is None:
        del changes["is_active"]
    if changes.get("website"):
        changes["website"] = validate_website(changes["website"])
    if changes.get("email"):
        changes["email"] = validate_email(changes["email"])
    if changes.get("phone"):
        changes["phone"] = validate_phone(changes["phone"])

    for field, value in changes.items():
        setattr(organization, field, value)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if "name" in changes and await _name_taken(
            db, changes["name"], exclude_id=organization_id
        ):
            raise DuplicateOrganizationName() from e
        raise
    await db.refresh(organization)
    return organization


async def delete_organization(
    db: AsyncSession,
    organization_id: str,
    deleted_by: str,
    storage: FileStorage | None = None,
) -> None:
    """Delete an organization with its memberships and polls. OWNER only."""
    await get_organization(db, organization_id)
    await require_role(db, organization_id, deleted_by, OrganizationRole.OWNER)

    result = await db.execute(
        select(Poll).where(Poll.organization_id == organization_id)
    )
    polls = list(result.scalars().all())
    file_names: list[str] = []
    for poll in polls:
        file_names.extend(await poll_service.collect_poll_files(db, poll))
        await poll_service.delete_poll_rows(db, poll.id)

    await db.execute(
        delete(OrganizationMember).where(
            OrganizationMember.organization_id == organization_id
        )
    )
    await db.execute(delete(Organization).where(Organization.id == organization_id))
    await db.commit()
    logger.info("User %s deleted organization %s", deleted_by, organization_id)

    if storage is not None:
        await storage.delete_many(file_names)
