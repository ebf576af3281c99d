"""Adding and removing media on existing choices."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from vatofotsy_api.errors import ChoiceNotFound, MediaNotFound
from vatofotsy_api.models import PollChoice, PollChoiceMedia
from vatofotsy_api.services.polls import get_poll_for_creator
from vatofotsy_api.services.storage import FileStorage, IncomingFile

logger = logging.getLogger(__name__)


async def add_media_to_choice(
    db: AsyncSession,
    choice_id: str,
    user_id: str,
    files: list[IncomingFile],
    storage: FileStorage,
) -> list[PollChoiceMedia]:
    """Attach files to a choice, ordered after its existing media.

    Returns:
        The new media records

    Raises:
        ChoiceNotFound, PollForbidden, InvalidFile
    """
    choice = await db.get(PollChoice, choice_id)
    if choice is None:
        raise ChoiceNotFound()
    await get_poll_for_creator(db, choice.poll_id, user_id)
    storage.validate_all(files)

    next_order = max((m.order for m in choice.media), default=-1) + 1
    added = []
    for offset, stored in enumerate(await storage.upload_many(files)):
        media = PollChoiceMedia(
            file_name=stored.file_name,
            original_name=stored.original_name,
            url=stored.url,
            media_type=stored.media_type,
            mime_type=stored.mime_type,
            size=stored.size,
            order=next_order + offset,
        )
        choice.media.append(media)
        added.append(media)
    await db.commit()
    logger.info("Added %d media file(s) to choice %s", len(added), choice_id)
    return added


async def delete_media(
    db: AsyncSession,
    media_id: str,
    user_id: str,
    storage: FileStorage,
) -> None:
    """Delete a media record and, best-effort, its file."""
    media = await db.get(PollChoiceMedia, media_id)
    if media is None:
        raise MediaNotFound()
    choice = await db.get(PollChoice, media.poll_choice_id)
    if choice is None:
        raise MediaNotFound()
    await get_poll_for_creator(db, choice.poll_id, user_id)

    if choice.media_file_name == media.file_name:
        choice.media_url = None
        choice.media_type = None
        choice.media_file_name = None
    choice.media.remove(media)
    await db.commit()
    await storage.delete(media.file_name)
