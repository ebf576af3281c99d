"""Database models."""

from vatofotsy_api.models.base import Base, TimestampMixin, UpdatedAtMixin
from vatofotsy_api.models.enums import (
    MediaType,
    MemberStatus,
    OrganizationRole,
    OrganizationType,
    PollStatus,
    PollType,
    ResultDisplayType,
)
from vatofotsy_api.models.organization import Organization
from vatofotsy_api.models.organization_member import OrganizationMember
from vatofotsy_api.models.poll import Poll
from vatofotsy_api.models.poll_choice import PollChoice
from vatofotsy_api.models.poll_choice_media import PollChoiceMedia
from vatofotsy_api.models.poll_vote import PollVote
from vatofotsy_api.models.refresh_token import RefreshToken
from vatofotsy_api.models.user import User

__all__ = [
    "Base",
    "MediaType",
    "MemberStatus",
    "Organization",
    "OrganizationMember",
    "OrganizationRole",
    "OrganizationType",
    "Poll",
    "PollChoice",
    "PollChoiceMedia",
    "PollStatus",
    "PollType",
    "PollVote",
    "RefreshToken",
    "ResultDisplayType",
    "TimestampMixin",
    "UpdatedAtMixin",
    "User",
]
