"""Organization model."""

from sqlalchemy import Boolean, Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from vatofotsy_api.models.base import Base, TimestampMixin, UpdatedAtMixin, generate_uuid
from vatofotsy_api.models.enums import OrganizationType


class Organization(Base, TimestampMixin, UpdatedAtMixin):
    """A group of users that can own private polls.

    Users belong to organizations via OrganizationMember with roles.
    """

    __tablename__ = "organizations"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    description: Mapped[str | None] = mapped_column(Text)
    website: Mapped[str | None] = mapped_column(String(255))
    email: Mapped[str | None] = mapped_column(String(255))
    phone: Mapped[str | None] = mapped_column(String(32))
    organization_type: Mapped[OrganizationType] = mapped_column(
        Enum(OrganizationType),
        nullable=False,
        default=OrganizationType.GROUP,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
