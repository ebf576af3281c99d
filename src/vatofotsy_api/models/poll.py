"""Poll model and its voting-state predicates."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from vatofotsy_api.models.base import (
    Base,
    TimestampMixin,
    UpdatedAtMixin,
    as_utc,
    generate_uuid,
    utc_now,
)
from vatofotsy_api.models.enums import PollStatus, PollType, ResultDisplayType


class Poll(Base, TimestampMixin, UpdatedAtMixin):
    """A question with choices that users vote on.

    ENDED is derived at read time from voting_ends_at, so the predicates
    below are authoritative even before the status column is updated.
    """

    __tablename__ = "polls"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    created_by: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    # Required for PRIVATE polls
    organization_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    type: Mapped[PollType] = mapped_column(
        Enum(PollType),
        nullable=False,
        default=PollType.PUBLIC,
    )
    result_display_type: Mapped[ResultDisplayType] = mapped_column(
        Enum(ResultDisplayType),
        nullable=False,
        default=ResultDisplayType.CLOSED,
    )
    status: Mapped[PollStatus] = mapped_column(
        Enum(PollStatus),
        nullable=False,
        default=PollStatus.DRAFT,
        index=True,
    )
    voting_ends_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    allow_multiple_choices: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    main_image_url: Mapped[str | None] = mapped_column(String(500))
    main_image_file_name: Mapped[str | None] = mapped_column(String(255))

    def is_voting_active(self, now: datetime | None = None) -> bool:
        now = now or utc_now()
        return self.status == PollStatus.ACTIVE and now < as_utc(self.voting_ends_at)

    def is_voting_ended(self, now: datetime | None = None) -> bool:
        now = now or utc_now()
        return self.status == PollStatus.ENDED or now >= as_utc(self.voting_ends_at)

    def can_view_results(self, now: datetime | None = None) -> bool:
        """Whether results are disclosed to voters (creators always see them)."""
        return self.result_display_type == ResultDisplayType.OPEN or (
            self.is_voting_ended(now)
        )
