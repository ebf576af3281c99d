"""Choices of a poll and their attached media."""

import logging

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from vatofotsy_api.errors import ChoiceNotFound, PollNotDraft
from vatofotsy_api.models import Poll, PollChoice, PollChoiceMedia, PollStatus, PollVote
from vatofotsy_api.services.polls import get_poll, get_poll_for_creator
from vatofotsy_api.services.storage import FileStorage, IncomingFile

logger = logging.getLogger(__name__)


def _require_draft(poll: Poll, message: str) -> None:
    if poll.status != PollStatus.DRAFT:
        raise PollNotDraft(message)


async def get_choice(db: AsyncSession, poll_id: str, choice_id: str) -> PollChoice:
    choice = await db.get(PollChoice, choice_id)
    if choice is None or choice.poll_id != poll_id:
        raise ChoiceNotFound()
    return choice


async def list_choices(
    db: AsyncSession, poll_id: str, viewer_id: str | None = None
) -> list[PollChoice]:
    """Choices of a visible poll in display order, media included."""
    await get_poll(db, poll_id, viewer_id)
    result = await db.execute(
        select(PollChoice).where(PollChoice.poll_id == poll_id).order_by(PollChoice.order)
    )
    return list(result.scalars().all())


async def add_choice(
    db: AsyncSession,
    poll_id: str,
    user_id: str,
    name: str,
    description: str | None = None,
    files: list[IncomingFile] | None = None,
    storage: FileStorage | None = None,
) -> PollChoice:
    """Append a choice to a DRAFT poll.

    The choice gets order = number of existing choices. Files are all
    validated before any is stored, then recorded as media in upload order.

    Raises:
        PollNotFound, PollForbidden, PollNotDraft, InvalidFile
    """
    poll = await get_poll_for_creator(db, poll_id, user_id)
    _require_draft(poll, "Cannot add choices to active or ended polls")
    files = files or []
    if files:
        if storage is None:
            raise ValueError("A file storage is required to attach files")
        storage.validate_all(files)

    count = await db.scalar(
        select(func.count()).select_from(PollChoice).where(PollChoice.poll_id == poll_id)
    )
    choice = PollChoice(
        poll_id=poll_id,
        name=name,
        description=description,
        order=count or 0,
    )
    stored_files = await storage.upload_many(files) if files else []
    for index, stored in enumerate(stored_files):
        choice.media.append(
            PollChoiceMedia(
                file_name=stored.file_name,
                original_name=stored.original_name,
                url=stored.url,
                media_type=stored.media_type,
                mime_type=stored.mime_type,
                size=stored.size,
                order=index,
            )
        )
    if stored_files:
        # Legacy single-media fields mirror the first attachment
        first = stored_files[0]
        choice.media_url = first.url
        choice.media_type = first.media_type
        choice.media_file_name = first.file_name

    db.add(choice)
    await db.commit()
    await db.refresh(choice)
    logger.info("Added choice %s to poll %s", choice.id, poll_id)
    return choice


async def update_choice(
    db: AsyncSession,
    poll_id: str,
    choice_id: str,
    user_id: str,
    name: str | None = None,
    description: str | None = None,
) -> PollChoice:
    poll = await get_poll_for_creator(db, poll_id, user_id)
    _require_draft(poll, "Cannot modify choices of active or ended polls")
    choice = await get_choice(db, poll_id, choice_id)
    if name is not None:
        choice.name = name
    if description is not None:
        choice.description = description
    await db.commit()
    await db.refresh(choice)
    return choice


async def delete_choice(
    db: AsyncSession,
    poll_id: str,
    choice_id: str,
    user_id: str,
    storage: FileStorage | None = None,
) -> None:
    """Delete a choice of a DRAFT poll along with its media files."""
    poll = await get_poll_for_creator(db, poll_id, user_id)
    _require_draft(poll, "Cannot delete choices of active or ended polls")
    choice = await get_choice(db, poll_id, choice_id)

    file_names = [media.file_name for media in choice.media]
    if choice.media_file_name and choice.media_file_name not in file_names:
        file_names.append(choice.media_file_name)

    await db.execute(delete(PollVote).where(PollVote.choice_id == choice.id))
    await db.delete(choice)
    await db.flush()

    # Keep display order contiguous
    remaining = await db.execute(
        select(PollChoice).where(PollChoice.poll_id == poll_id).order_by(PollChoice.order)
    )
    for index, other in enumerate(remaining.scalars().all()):
        other.order = index
    await db.commit()
    if storage is not None:
        await storage.delete_many(file_names)
