"""Stored refresh token, one per user."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from vatofotsy_api.models.base import Base, TimestampMixin


class RefreshToken(Base, TimestampMixin):
    """Current refresh token of a user.

    Keyed by user id so a new login or refresh overwrites the previous value.
    """

    __tablename__ = "refresh_tokens"

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    token: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
