"""User registration and profile routes."""

import re
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from vatofotsy_api.auth import get_current_user
from vatofotsy_api.auth.passwords import MAX_PASSWORD_BYTES
from vatofotsy_api.db import get_db
from vatofotsy_api.models import User
from vatofotsy_api.services import users as user_service
from vatofotsy_api.services.validation import EMAIL_PATTERN

router = APIRouter(prefix="/users", tags=["users"])

PASSWORD_SPECIAL_CHARACTERS = "@$!%*?&"


def _check_password_bytes(v: str) -> str:
    if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password cannot be longer than {MAX_PASSWORD_BYTES} bytes")
    return v


# --- Schemas ---


class UserCreate(BaseModel):
    """Register a new user."""

    email: str = Field(max_length=255)
    password: str = Field(min_length=8, max_length=72)
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        if not EMAIL_PATTERN.match(v.strip()):
            raise ValueError("Invalid email format")
        return v.strip()

    @field_validator("password")
    @classmethod
    def validate_password_bytes(cls, v: str) -> str:
        return _check_password_bytes(v)


class UserProfileUpdate(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=50)
    last_name: str | None = Field(default=None, min_length=1, max_length=50)


class PasswordChange(BaseModel):
    old_password: str = Field(min_length=1, max_length=72)
    new_password: str = Field(min_length=8, max_length=72)

    @field_validator("new_password")
    @classmethod
    def validate_strength(cls, v: str) -> str:
        if not (
            re.search(r"[a-z]", v)
            and re.search(r"[A-Z]", v)
            and re.search(r"\d", v)
            and any(c in PASSWORD_SPECIAL_CHARACTERS for c in v)
        ):
            raise ValueError(
                "Password must contain uppercase, lowercase, number and "
                f"one of {PASSWORD_SPECIAL_CHARACTERS}"
            )
        return _check_password_bytes(v)


class UserResponse(BaseModel):
    """User response. Never includes the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    first_name: str
    last_name: str
    is_verified: bool
    is_active: bool
    created_at: datetime


# --- Endpoints ---


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: UserCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await user_service.create_user(
        db,
        email=data.email,
        password=data.password,
        first_name=data.first_name,
        last_name=data.last_name,
    )


@router.get("/profile", response_model=UserResponse)
async def get_profile(
    current_user: Annotated[User, Depends(get_current_user)],
):
    return current_user


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    data: UserProfileUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    patch = user_service.UserProfilePatch(**data.model_dump(exclude_unset=True))
    return await user_service.update_profile(db, current_user.id, patch)


@router.put("/profile/password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(
    data: PasswordChange,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    await user_service.change_password(
        db, current_user.id, data.old_password, data.new_password
    )


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await user_service.get_user(db, user_id)
