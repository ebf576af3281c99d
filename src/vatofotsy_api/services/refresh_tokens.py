"""Persistent store of the current refresh token per user."""

from datetime import datetime

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from vatofotsy_api.models import RefreshToken


async def get_refresh_token(db: AsyncSession, user_id: str) -> RefreshToken | None:
    return await db.get(RefreshToken, user_id)


async def set_refresh_token(
    db: AsyncSession, user_id: str, token: str, expires_at: datetime
) -> None:
    """Store a user's refresh token, replacing any previous one. Does not commit."""
    stored = await db.get(RefreshToken, user_id)
    if stored is None:
        db.add(RefreshToken(user_id=user_id, token=token, expires_at=expires_at))
    else:
        stored.token = token
        stored.expires_at = expires_at


async def delete_refresh_token(db: AsyncSession, user_id: str) -> None:
    """Remove a user's refresh token. A no-op when none is stored. Does not commit."""
    await db.execute(delete(RefreshToken).where(RefreshToken.user_id == user_id))
