"""PollChoice model."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vatofotsy_api.models.base import Base, TimestampMixin, UpdatedAtMixin, generate_uuid
from vatofotsy_api.models.enums import MediaType

if TYPE_CHECKING:
    from vatofotsy_api.models.poll_choice_media import PollChoiceMedia


class PollChoice(Base, TimestampMixin, UpdatedAtMixin):
    """One option of a poll, displayed in `order`."""

    __tablename__ = "poll_choices"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )
    poll_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("polls.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Single attachment kept for clients predating multi-media choices
    media_url: Mapped[str | None] = mapped_column(String(500))
    media_type: Mapped[MediaType | None] = mapped_column(Enum(MediaType))
    media_file_name: Mapped[str | None] = mapped_column(String(255))

    # Relationships
    media: Mapped[list[PollChoiceMedia]] = relationship(
        order_by="PollChoiceMedia.order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )
