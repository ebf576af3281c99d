"""File upload routes for poll and choice media."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, UploadFile, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from vatofotsy_api.auth import get_current_user
from vatofotsy_api.config import storage_settings
from vatofotsy_api.db import get_db
from vatofotsy_api.errors import InvalidFile
from vatofotsy_api.models import MediaType, User
from vatofotsy_api.routes.polls import (
    MediaResponse,
    PollResponse,
    check_choice_file_count,
    poll_response,
    read_upload,
)
from vatofotsy_api.services import media as media_service
from vatofotsy_api.services import polls as poll_service
from vatofotsy_api.services.storage import FileStorage, StoredFile, get_file_storage

router = APIRouter(prefix="/polls", tags=["files"])


# --- Schemas ---


class UploadedFileResponse(BaseModel):
    file_name: str
    original_name: str
    mime_type: str
    size: int
    url: str
    media_type: MediaType


def _uploaded(stored: StoredFile) -> UploadedFileResponse:
    return UploadedFileResponse(
        file_name=stored.file_name,
        original_name=stored.original_name,
        mime_type=stored.mime_type,
        size=stored.size,
        url=stored.url,
        media_type=stored.media_type,
    )


# --- Endpoints ---


@router.post(
    "/upload/single",
    response_model=UploadedFileResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_single(
    file: Annotated[UploadFile, File()],
    current_user: Annotated[User, Depends(get_current_user)],
    storage: Annotated[FileStorage, Depends(get_file_storage)],
):
    incoming = await read_upload(file)
    storage.validate_all([incoming])
    return _uploaded(await storage.upload(incoming))


@router.post(
    "/upload/multiple",
    response_model=list[UploadedFileResponse],
    status_code=status.HTTP_201_CREATED,
)
async def upload_multiple(
    files: Annotated[list[UploadFile], File()],
    current_user: Annotated[User, Depends(get_current_user)],
    storage: Annotated[FileStorage, Depends(get_file_storage)],
):
    if len(files) > storage_settings.max_files_per_upload:
        raise InvalidFile(
            f"At most {storage_settings.max_files_per_upload} files per upload"
        )
    incoming = [await read_upload(f) for f in files]
    storage.validate_all(incoming)
    return [_uploaded(stored) for stored in await storage.upload_many(incoming)]


@router.post(
    "/choices/{choice_id}/media",
    response_model=list[MediaResponse],
    status_code=status.HTTP_201_CREATED,
)
async def add_choice_media(
    choice_id: str,
    files: Annotated[list[UploadFile], File()],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    storage: Annotated[FileStorage, Depends(get_file_storage)],
):
    check_choice_file_count(files)
    incoming = [await read_upload(f) for f in files]
    return await media_service.add_media_to_choice(
        db, choice_id, current_user.id, incoming, storage
    )


@router.delete("/media/{media_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_media(
    media_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    storage: Annotated[FileStorage, Depends(get_file_storage)],
):
    await media_service.delete_media(db, media_id, current_user.id, storage)


@router.put("/{poll_id}/main-image", response_model=PollResponse)
async def set_main_image(
    poll_id: str,
    file: Annotated[UploadFile, File()],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    storage: Annotated[FileStorage, Depends(get_file_storage)],
):
    incoming = await read_upload(file)
    poll = await poll_service.set_main_image(
        db, poll_id, current_user.id, incoming, storage
    )
    return poll_response(poll)
