"""Poll, choice, vote and result routes."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from vatofotsy_api.auth import get_current_user, get_current_user_optional
from vatofotsy_api.config import storage_settings
from vatofotsy_api.db import get_db
from vatofotsy_api.errors import InvalidFile
from vatofotsy_api.models import (
    MediaType,
    Poll,
    PollStatus,
    PollType,
    ResultDisplayType,
    User,
)
from vatofotsy_api.services import choices as choice_service
from vatofotsy_api.services import polls as poll_service
from vatofotsy_api.services import votes as vote_service
from vatofotsy_api.services.storage import FileStorage, IncomingFile, get_file_storage

router = APIRouter(prefix="/polls", tags=["polls"])


# --- Schemas ---


class PollCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    type: PollType = PollType.PUBLIC
    result_display_type: ResultDisplayType = ResultDisplayType.CLOSED
    organization_id: str | None = None
    voting_ends_at: datetime
    allow_multiple_choices: bool = False


class PollUpdate(BaseModel):
    """Update a draft poll. Omitted fields are left unchanged."""

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    voting_ends_at: datetime | None = None
    result_display_type: ResultDisplayType | None = None
    allow_multiple_choices: bool | None = None


class PollResponse(BaseModel):
    id: str
    title: str
    description: str | None
    created_by: str
    organization_id: str | None
    type: PollType
    result_display_type: ResultDisplayType
    status: PollStatus
    voting_ends_at: datetime
    allow_multiple_choices: bool
    is_active: bool
    main_image_url: str | None
    created_at: datetime
    is_voting_active: bool
    is_voting_ended: bool
    can_view_results: bool


class MediaResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    file_name: str
    original_name: str
    url: str
    media_type: MediaType
    mime_type: str
    size: int
    order: int


class ChoiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    poll_id: str
    name: str
    description: str | None
    order: int
    media_url: str | None
    media_type: MediaType | None
    media: list[MediaResponse]


class ChoiceUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)


class VoteCreate(BaseModel):
    choice_id: str


class VoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    poll_id: str
    choice_id: str
    user_id: str
    voted_at: datetime


class ChoiceResultResponse(BaseModel):
    choice_id: str
    name: str
    order: int
    votes: int


class PollResultsResponse(BaseModel):
    poll_id: str
    total_votes: int
    choices: list[ChoiceResultResponse]


# --- Helper functions ---


def poll_response(poll: Poll, now: datetime | None = None) -> PollResponse:
    return PollResponse(
        id=poll.id,
        title=poll.title,
        description=poll.description,
        created_by=poll.created_by,
        organization_id=poll.organization_id,
        type=poll.type,
        result_display_type=poll.result_display_type,
        status=poll.status,
        voting_ends_at=poll.voting_ends_at,
        allow_multiple_choices=poll.allow_multiple_choices,
        is_active=poll.is_active,
        main_image_url=poll.main_image_url,
        created_at=poll.created_at,
        is_voting_active=poll.is_voting_active(now),
        is_voting_ended=poll.is_voting_ended(now),
        can_view_results=poll.can_view_results(now),
    )


async def read_upload(file: UploadFile) -> IncomingFile:
    return IncomingFile(
        filename=file.filename or "upload",
        content_type=file.content_type or "application/octet-stream",
        data=await file.read(),
    )


def check_choice_file_count(files: list[UploadFile]) -> None:
    if len(files) > storage_settings.max_files_per_choice:
        raise InvalidFile(
            f"At most {storage_settings.max_files_per_choice} files per choice"
        )


# --- Poll endpoints ---


@router.post("", response_model=PollResponse, status_code=status.HTTP_201_CREATED)
async def create_poll(
    data: PollCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create a draft poll."""
    poll = await poll_service.create_poll(
        db,
        created_by=current_user.id,
        title=data.title,
        voting_ends_at=data.voting_ends_at,
        description=data.description,
        type=data.type,
        result_display_type=data.result_display_type,
        organization_id=data.organization_id,
        allow_multiple_choices=data.allow_multiple_choices,
    )
    return poll_response(poll)


@router.get("/public", response_model=list[PollResponse])
async def list_public_polls(db: Annotated[AsyncSession, Depends(get_db)]):
    polls = await poll_service.list_public_polls(db)
    return [poll_response(poll) for poll in polls]


@router.get("/my-polls", response_model=list[PollResponse])
async def list_my_polls(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    polls = await poll_service.list_polls_by_creator(db, current_user.id)
    return [poll_response(poll) for poll in polls]


@router.get("/{poll_id}", response_model=PollResponse)
async def get_poll(
    poll_id: str,
    current_user: Annotated[User | None, Depends(get_current_user_optional)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    viewer_id = current_user.id if current_user else None
    return poll_response(await poll_service.get_poll(db, poll_id, viewer_id))


@router.put("/{poll_id}", response_model=PollResponse)
async def update_poll(
    poll_id: str,
    data: PollUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    patch = poll_service.PollPatch(**data.model_dump(exclude_unset=True))
    poll = await poll_service.update_poll(db, poll_id, current_user.id, patch)
    return poll_response(poll)


@router.delete("/{poll_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_poll(
    poll_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    storage: Annotated[FileStorage, Depends(get_file_storage)],
):
    await poll_service.delete_poll(db, poll_id, current_user.id, storage=storage)


@router.put("/{poll_id}/activate", response_model=PollResponse)
async def activate_poll(
    poll_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return poll_response(await poll_service.activate_poll(db, poll_id, current_user.id))


@router.put("/{poll_id}/end", response_model=PollResponse)
async def end_poll(
    poll_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return poll_response(await poll_service.end_poll(db, poll_id, current_user.id))


@router.put("/{poll_id}/cancel", response_model=PollResponse)
async def cancel_poll(
    poll_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return poll_response(await poll_service.cancel_poll(db, poll_id, current_user.id))


# --- Choice endpoints ---


@router.post(
    "/{poll_id}/choices",
    response_model=ChoiceResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_choice(
    poll_id: str,
    name: Annotated[str, Form(min_length=1, max_length=200)],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    storage: Annotated[FileStorage, Depends(get_file_storage)],
    description: Annotated[str | None, Form(max_length=1000)] = None,
    files: Annotated[list[UploadFile] | None, File()] = None,
):
    """Add a choice to a draft poll, optionally with media files."""
    check_choice_file_count(files or [])
    incoming = [await read_upload(f) for f in files or []]
    return await choice_service.add_choice(
        db,
        poll_id,
        current_user.id,
        name=name,
        description=description,
        files=incoming,
        storage=storage,
    )


@router.get("/{poll_id}/choices", response_model=list[ChoiceResponse])
async def list_choices(
    poll_id: str,
    current_user: Annotated[User | None, Depends(get_current_user_optional)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    viewer_id = current_user.id if current_user else None
    return await choice_service.list_choices(db, poll_id, viewer_id)


@router.put("/{poll_id}/choices/{choice_id}", response_model=ChoiceResponse)
async def update_choice(
    poll_id: str,
    choice_id: str,
    data: ChoiceUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await choice_service.update_choice(
        db,
        poll_id,
        choice_id,
        current_user.id,
        name=data.name,
        description=data.description,
    )


@router.delete(
    "/{poll_id}/choices/{choice_id}", status_code=status.HTTP_204_NO_CONTENT
)
async def delete_choice(
    poll_id: str,
    choice_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    storage: Annotated[FileStorage, Depends(get_file_storage)],
):
    await choice_service.delete_choice(
        db, poll_id, choice_id, current_user.id, storage=storage
    )


# --- Vote endpoints ---


@router.post(
    "/{poll_id}/votes", response_model=VoteResponse, status_code=status.HTTP_201_CREATED
)
async def cast_vote(
    poll_id: str,
    data: VoteCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await vote_service.cast_vote(db, poll_id, data.choice_id, current_user.id)


@router.get("/{poll_id}/votes/me", response_model=list[VoteResponse])
async def list_my_votes(
    poll_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await vote_service.get_user_votes(db, poll_id, current_user.id)


@router.get("/{poll_id}/results", response_model=PollResultsResponse)
async def get_results(
    poll_id: str,
    current_user: Annotated[User | None, Depends(get_current_user_optional)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    viewer_id = current_user.id if current_user else None
    results = await vote_service.get_poll_results(db, poll_id, viewer_id)
    return PollResultsResponse(
        poll_id=results.poll_id,
        total_votes=results.total_votes,
        choices=[
            ChoiceResultResponse(
                choice_id=c.choice_id, name=c.name, order=c.order, votes=c.votes
            )
            for c in results.choices
        ],
    )
