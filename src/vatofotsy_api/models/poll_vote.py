"""PollVote model."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from vatofotsy_api.models.base import Base, TimestampMixin, generate_uuid, utc_now


class PollVote(Base, TimestampMixin):
    """A single user's vote for one choice of a poll.

    The (poll, user, choice) triple is unique; whether a user may hold votes
    for several choices of the same poll depends on allow_multiple_choices.
    """

    __tablename__ = "poll_votes"
    __table_args__ = (
        UniqueConstraint("poll_id", "user_id", "choice_id", name="uq_poll_vote"),
    )

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
    choice_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("poll_choices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    voted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
