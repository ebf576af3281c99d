"""Poll lifecycle: creation, updates, state transitions and deletion.

DRAFT -> ACTIVE -> ENDED | CANCELLED, and DRAFT -> CANCELLED. Only the
creator drives transitions. Choices can be changed only while DRAFT.
"""

import logging
from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from vatofotsy_api.errors import (
    InvalidFile,
    OrganizationNotFound,
    OrganizationRequired,
    PollAlreadyClosed,
    PollForbidden,
    PollNotActive,
    PollNotDraft,
    PollNotFound,
    VotingEndInPast,
)
from vatofotsy_api.models import (
    Organization,
    Poll,
    PollChoice,
    PollChoiceMedia,
    PollStatus,
    PollType,
    PollVote,
    ResultDisplayType,
)
from vatofotsy_api.models.base import as_utc, utc_now
from vatofotsy_api.services.members import is_accepted_member, require_role
from vatofotsy_api.services.storage import FileStorage, IncomingFile

logger = logging.getLogger(__name__)


class PollPatch(BaseModel):
    """Partial poll update, applied to DRAFT polls only."""

    title: str | None = None
    description: str | None = None
    voting_ends_at: datetime | None = None
    result_display_type: ResultDisplayType | None = None
    allow_multiple_choices: bool | None = None


async def _load_poll(db: AsyncSession, poll_id: str) -> Poll:
    poll = await db.get(Poll, poll_id)
    if poll is None:
        raise PollNotFound()
    return poll


async def get_poll_for_creator(db: AsyncSession, poll_id: str, user_id: str) -> Poll:
    """Load a poll the user created.

    Raises:
        PollNotFound: No such poll
        PollForbidden: The user is not the creator
    """
    poll = await _load_poll(db, poll_id)
    if poll.created_by != user_id:
        raise PollForbidden()
    return poll


async def can_view_poll(db: AsyncSession, poll: Poll, viewer_id: str | None) -> bool:
    """Public polls are visible to everyone, private ones to the creator and
    accepted members of the poll's organization."""
    if poll.type == PollType.PUBLIC:
        return True
    if viewer_id is None:
        return False
    if poll.created_by == viewer_id:
        return True
    return poll.organization_id is not None and await is_accepted_member(
        db, poll.organization_id, viewer_id
    )


async def get_poll(db: AsyncSession, poll_id: str, viewer_id: str | None) -> Poll:
    """Load a poll the viewer may see. Hidden polls look like missing ones."""
    poll = await _load_poll(db, poll_id)
    if not await can_view_poll(db, poll, viewer_id):
        raise PollNotFound()
    return poll


async def create_poll(
    db: AsyncSession,
    created_by: str,
    title: str,
    voting_ends_at: datetime,
    description: str | None = None,
    type: PollType = PollType.PUBLIC,
    result_display_type: ResultDisplayType = ResultDisplayType.CLOSED,
    organization_id: str | None = None,
    allow_multiple_choices: bool = False,
    now: datetime | None = None,
) -> Poll:
    """Create a DRAFT poll.

    Args:
        db: Database session
        created_by: Creating user
        title: Poll question
        voting_ends_at: End of voting, must be in the future
        description: Optional details
        type: PUBLIC or PRIVATE
        result_display_type: OPEN shows live results, CLOSED only after the end
        organization_id: Owning organization, required for PRIVATE polls
        allow_multiple_choices: Whether a user may vote for several choices
        now: Current time, for tests

    Raises:
        OrganizationRequired: PRIVATE without organization
        VotingEndInPast: voting_ends_at is not in the future
        OrganizationNotFound: Unknown organization
        NotOrganizationMember: Creator is not an accepted member of it
    """
    now = now or utc_now()
    voting_ends_at = as_utc(voting_ends_at)
    if type == PollType.PRIVATE and not organization_id:
        raise OrganizationRequired()
    if voting_ends_at <= now:
        raise VotingEndInPast()
    if organization_id:
        if await db.get(Organization, organization_id) is None:
            raise OrganizationNotFound()
        await require_role(db, organization_id, created_by)

    poll = Poll(
        title=title,
        description=description,
        created_by=created_by,
        organization_id=organization_id,
        type=type,
        result_display_type=result_display_type,
        status=PollStatus.DRAFT,
        voting_ends_at=voting_ends_at,
        allow_multiple_choices=allow_multiple_choices,
        is_active=True,
    )
    db.add(poll)
    await db.commit()
    await db.refresh(poll)
    logger.info("User %s created poll %s", created_by, poll.id)
    return poll


async def activate_poll(
    db: AsyncSession, poll_id: str, user_id: str, now: datetime | None = None
) -> Poll:
    """Open a DRAFT poll for voting.

    Raises:
        PollNotFound, PollForbidden, PollNotDraft,
        VotingEndInPast: The end time passed while the poll was a draft
    """
    now = now or utc_now()
    poll = await get_poll_for_creator(db, poll_id, user_id)
    if poll.status != PollStatus.DRAFT:
        raise PollNotDraft("Only draft polls can be activated")
    if as_utc(poll.voting_ends_at) <= now:
        raise VotingEndInPast("Cannot activate poll with past voting end time")

    poll.status = PollStatus.ACTIVE
    await db.commit()
    await db.refresh(poll)
    logger.info("Poll %s activated", poll.id)
    return poll


async def update_poll(
    db: AsyncSession,
    poll_id: str,
    user_id: str,
    patch: PollPatch,
    now: datetime | None = None,
) -> Poll:
    now = now or utc_now()
    poll = await get_poll_for_creator(db, poll_id, user_id)
    if poll.status != PollStatus.DRAFT:
        raise PollNotDraft("Only draft polls can be updated")

    changes = {
        field: getattr(patch, field)
        for field in patch.model_fields_set
        if field == "description" or getattr(patch, field) is not None
    }
    if "voting_ends_at" in changes:
        changes["voting_ends_at"] = as_utc(changes["voting_ends_at"])
        if changes["voting_ends_at"] <= now:
            raise VotingEndInPast()

    for field, value in changes.items():
        setattr(poll, field, value)
    await db.commit()
    await db.refresh(poll)
    return poll


async def end_poll(db: AsyncSession, poll_id: str, user_id: str) -> Poll:
    """Close voting on an ACTIVE poll ahead of its end time."""
    poll = await get_poll_for_creator(db, poll_id, user_id)
    if poll.status != PollStatus.ACTIVE:
        raise PollNotActive()
    poll.status = PollStatus.ENDED
    await db.commit()
    await db.refresh(poll)
    logger.info("Poll %s ended by its creator", poll.id)
    return poll


async def cancel_poll(db: AsyncSession, poll_id: str, user_id: str) -> Poll:
    poll = await get_poll_for_creator(db, poll_id, user_id)
    if poll.status not in (PollStatus.DRAFT, PollStatus.ACTIVE):
        raise PollAlreadyClosed()
    poll.status = PollStatus.CANCELLED
    await db.commit()
    await db.refresh(poll)
    logger.info("Poll %s cancelled", poll.id)
    return poll


async def close_expired_polls(db: AsyncSession, now: datetime | None = None) -> int:
    """Mark ACTIVE polls past their end time as ENDED.

    Returns:
        Number of polls closed
    """
    now = now or utc_now()
    result = await db.execute(
        update(Poll)
        .where(Poll.status == PollStatus.ACTIVE, Poll.voting_ends_at <= now)
        .values(status=PollStatus.ENDED, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    closed = result.rowcount or 0
    if closed:
        logger.info("Closed %d expired poll(s)", closed)
    return closed


async def list_public_polls(db: AsyncSession) -> list[Poll]:
    """Public polls that are open or finished, newest first. Drafts are hidden."""
    result = await db.execute(
        select(Poll)
        .where(
            Poll.type == PollType.PUBLIC,
            Poll.is_active.is_(True),
            Poll.status != PollStatus.DRAFT,
        )
        .order_by(Poll.created_at.desc())
    )
    return list(result.scalars().all())


async def list_polls_by_creator(db: AsyncSession, user_id: str) -> list[Poll]:
    result = await db.execute(
        select(Poll).where(Poll.created_by == user_id).order_by(Poll.created_at.desc())
    )
    return list(result.scalars().all())


async def list_polls_by_organization(
    db: AsyncSession, organization_id: str, viewer_id: str
) -> list[Poll]:
    """Polls of an organization. Requires an accepted membership."""
    if await db.get(Organization, organization_id) is None:
        raise OrganizationNotFound()
    await require_role(db, organization_id, viewer_id)
    result = await db.execute(
        select(Poll)
        .where(Poll.organization_id == organization_id)
        .order_by(Poll.created_at.desc())
    )
    return list(result.scalars().all())


async def set_main_image(
    db: AsyncSession,
    poll_id: str,
    user_id: str,
    file: IncomingFile,
    storage: FileStorage,
) -> Poll:
    """Replace the poll's main image. The previous file is deleted best-effort."""
    poll = await get_poll_for_creator(db, poll_id, user_id)
    if not file.content_type.startswith("image/"):
        raise InvalidFile("Only image files are allowed for main image")
    storage.validate_all([file])

    previous = poll.main_image_file_name
    stored = await storage.upload(file)
    poll.main_image_url = stored.url
    poll.main_image_file_name = stored.file_name
    await db.commit()
    await db.refresh(poll)
    if previous:
        await storage.delete(previous)
    return poll


async def collect_poll_files(db: AsyncSession, poll: Poll) -> list[str]:
    """Names of all stored files belonging to a poll."""
    file_names = [poll.main_image_file_name] if poll.main_image_file_name else []
    choices = await db.execute(
        select(PollChoice.media_file_name).where(
            PollChoice.poll_id == poll.id, PollChoice.media_file_name.is_not(None)
        )
    )
    file_names.extend(choices.scalars().all())
    media = await db.execute(
        select(PollChoiceMedia.file_name)
        .join(PollChoice, PollChoice.id == PollChoiceMedia.poll_choice_id)
        .where(PollChoice.poll_id == poll.id)
    )
    file_names.extend(media.scalars().all())
    return file_names


async def delete_poll_rows(db: AsyncSession, poll_id: str) -> None:
    """Delete a poll with its votes, choices and media rows. Does not commit."""
    choice_ids = select(PollChoice.id).where(PollChoice.poll_id == poll_id)
    await db.execute(delete(PollVote).where(PollVote.poll_id == poll_id))
    await db.execute(
        delete(PollChoiceMedia).where(PollChoiceMedia.poll_choice_id.in_(choice_ids))
    )
    await db.execute(delete(PollChoice).where(PollChoice.poll_id == poll_id))
    await db.execute(delete(Poll).where(Poll.id == poll_id))


async def delete_poll(
    db: AsyncSession,
    poll_id: str,
    user_id: str,
    storage: FileStorage | None = None,
) -> None:
    """Delete a poll and everything under it. Creator only.

    Rows go in one transaction; stored files are removed afterwards and a
    failure there is only logged.
    """
    poll = await get_poll_for_creator(db, poll_id, user_id)
    file_names = await collect_poll_files(db, poll)
    await delete_poll_rows(db, poll.id)
    await db.commit()
    logger.info("User %s deleted poll %s", user_id, poll_id)

    if storage is not None:
        await storage.delete_many(file_names)


