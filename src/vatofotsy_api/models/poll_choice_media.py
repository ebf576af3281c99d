"""PollChoiceMedia model for files attached to a choice."""

from sqlalchemy import BigInteger, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from vatofotsy_api.models.base import Base, TimestampMixin, UpdatedAtMixin, generate_uuid
from vatofotsy_api.models.enums import MediaType


class PollChoiceMedia(Base, TimestampMixin, UpdatedAtMixin):
    """A stored file belonging to a choice."""

    __tablename__ = "poll_choice_media"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )
    poll_choice_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("poll_choices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(String(500), nullable=False)
    media_type: Mapped[MediaType] = mapped_column(Enum(MediaType), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
