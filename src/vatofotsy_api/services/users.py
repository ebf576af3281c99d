"""User registration, profile and password management."""

import logging

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vatofotsy_api.auth.passwords import hash_password, verify_password
from vatofotsy_api.errors import EmailAlreadyRegistered, IncorrectPassword, UserNotFound
from vatofotsy_api.models import User
from vatofotsy_api.services.events import AuthEvent, publish_auth_event

logger = logging.getLogger(__name__)


class UserProfilePatch(BaseModel):
    """Partial profile update. Only fields that were set are applied."""

    first_name: str | None = None
    last_name: str | None = None


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_user(db: AsyncSession, user_id: str) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise UserNotFound()
    return user


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
) -> User:
    """Register a new user.

    Args:
        db: Database session
        email: Login email, unique case-insensitively
        password: Plain-text password, stored as a bcrypt hash
        first_name: Given name
        last_name: Family name

    Returns:
        The created user

    Raises:
        EmailAlreadyRegistered: If the email is taken, including when a
            concurrent registration wins the race at the unique constraint
    """
    email = normalize_email(email)
    if await get_user_by_email(db, email) is not None:
        raise EmailAlreadyRegistered()

    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        is_verified=True,
        is_active=True,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise EmailAlreadyRegistered() from e
    await db.refresh(user)
    logger.info("Registered user %s", user.id)
    return user


async def update_profile(
    db: AsyncSession, user_id: str, patch: UserProfilePatch
) -> User:
    user = await get_user(db, user_id)
    for field in patch.model_fields_set:
        value = getattr(patch, field)
        if value is not None:
            setattr(user, field, value)
    await db.commit()
    await db.refresh(user)
    return user


async def change_password(
    db: AsyncSession, user_id: str, old_password: str, new_password: str
) -> None:
    """Replace a user's password after checking the current one.

    Raises:
        UserNotFound: If the user does not exist
        IncorrectPassword: If old_password does not match
    """
    user = await get_user(db, user_id)
    if not verify_password(old_password, user.password_hash):
        raise IncorrectPassword()
    user.password_hash = hash_password(new_password)
    await db.commit()
    publish_auth_event(AuthEvent.PASSWORD_CHANGED, user.id)


async def set_verified(db: AsyncSession, user_id: str, verified: bool) -> User:
    user = await get_user(db, user_id)
    user.is_verified = verified
    await db.commit()
    await db.refresh(user)
    logger.info("User %s verified=%s", user.id, verified)
    return user
