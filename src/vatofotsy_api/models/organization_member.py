"""OrganizationMember model for user-organization relationships."""

from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from vatofotsy_api.models.base import Base, TimestampMixin, UpdatedAtMixin, generate_uuid
from vatofotsy_api.models.enums import MemberStatus, OrganizationRole


class OrganizationMember(Base, TimestampMixin, UpdatedAtMixin):
    """Membership of a user in an organization, including pending invites.

    A single row per (organization, user) holds the current state of the
    relationship. Each organization has exactly one OWNER.
    """

    __tablename__ = "organization_members"
    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", name="uq_org_member"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )
    organization_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role: Mapped[OrganizationRole] = mapped_column(
        Enum(OrganizationRole),
        nullable=False,
        default=OrganizationRole.MEMBER,
    )
    status: Mapped[MemberStatus] = mapped_column(
        Enum(MemberStatus),
        nullable=False,
        default=MemberStatus.PENDING,
    )
    invited_by: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    invited_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    joined_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
