"""Initial schema: users, organizations, memberships, polls, choices, media, votes.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

organization_type = postgresql.ENUM(
    "GROUP", "TEAM", "ORGANIZATION", "ENTERPRISE",
    name="organizationtype",
    create_type=False,
)
organization_role = postgresql.ENUM(
    "OWNER", "ADMIN", "MEMBER", name="organizationrole", create_type=False
)
member_status = postgresql.ENUM(
    "PENDING", "ACCEPTED", "DECLINED", "EXPIRED",
    name="memberstatus",
    create_type=False,
)
poll_type = postgresql.ENUM("PUBLIC", "PRIVATE", name="polltype", create_type=False)
result_display_type = postgresql.ENUM(
    "OPEN", "CLOSED", name="resultdisplaytype", create_type=False
)
poll_status = postgresql.ENUM(
    "DRAFT", "ACTIVE", "ENDED", "CANCELLED", name="pollstatus", create_type=False
)
media_type = postgresql.ENUM(
    "IMAGE", "VIDEO", "DOCUMENT", name="mediatype", create_type=False
)

ENUMS = [
    organization_type,
    organization_role,
    member_status,
    poll_type,
    result_display_type,
    poll_status,
    media_type,
]


def _timestamps(updated: bool = True) -> list[sa.Column]:
    columns = [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        )
    ]
    if updated:
        columns.append(
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=True),
                nullable=False,
                server_default=sa.text("now()"),
            )
        )
    return columns


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in ENUMS:
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "refresh_tokens",
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("token", sa.Text(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(updated=False),
    )

    op.create_table(
        "organizations",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("website", sa.String(255), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column(
            "organization_type",
            organization_type,
            nullable=False,
            server_default="GROUP",
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_organizations_name", "organizations", ["name"], unique=True)

    op.create_table(
        "organization_members",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "organization_id",
            sa.String(36),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("role", organization_role, nullable=False, server_default="MEMBER"),
        sa.Column("status", member_status, nullable=False, server_default="PENDING"),
        sa.Column(
            "invited_by",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("invited_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("organization_id", "user_id", name="uq_org_member"),
    )
    op.create_index(
        "ix_organization_members_organization_id",
        "organization_members",
        ["organization_id"],
    )
    op.create_index(
        "ix_organization_members_user_id", "organization_members", ["user_id"]
    )

    op.create_table(
        "polls",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "created_by", sa.String(36), sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column(
            "organization_id",
            sa.String(36),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("type", poll_type, nullable=False, server_default="PUBLIC"),
        sa.Column(
            "result_display_type",
            result_display_type,
            nullable=False,
            server_default="CLOSED",
        ),
        sa.Column("status", poll_status, nullable=False, server_default="DRAFT"),
        sa.Column("voting_ends_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "allow_multiple_choices",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("main_image_url", sa.String(500), nullable=True),
        sa.Column("main_image_file_name", sa.String(255), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_polls_created_by", "polls", ["created_by"])
    op.create_index("ix_polls_organization_id", "polls", ["organization_id"])
    op.create_index("ix_polls_status", "polls", ["status"])

    op.create_table(
        "poll_choices",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "poll_id",
            sa.String(36),
            sa.ForeignKey("polls.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("media_url", sa.String(500), nullable=True),
        sa.Column("media_type", media_type, nullable=True),
        sa.Column("media_file_name", sa.String(255), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_poll_choices_poll_id", "poll_choices", ["poll_id"])

    op.create_table(
        "poll_choice_media",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "poll_choice_id",
            sa.String(36),
            sa.ForeignKey("poll_choices.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("original_name", sa.String(255), nullable=False),
        sa.Column("url", sa.String(500), nullable=False),
        sa.Column("media_type", media_type, nullable=False),
        sa.Column("mime_type", sa.String(100), nullable=False),
        sa.Column("size", sa.BigInteger(), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index(
        "ix_poll_choice_media_poll_choice_id", "poll_choice_media", ["poll_choice_id"]
    )

    op.create_table(
        "poll_votes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "poll_id",
            sa.String(36),
            sa.ForeignKey("polls.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "choice_id",
            sa.String(36),
            sa.ForeignKey("poll_choices.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("voted_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(updated=False),
        sa.UniqueConstraint("poll_id", "user_id", "choice_id", name="uq_poll_vote"),
    )
    op.create_index("ix_poll_votes_poll_id", "poll_votes", ["poll_id"])
    op.create_index("ix_poll_votes_choice_id", "poll_votes", ["choice_id"])
    op.create_index("ix_poll_votes_user_id", "poll_votes", ["user_id"])


def downgrade() -> None:
    op.drop_table("poll_votes")
    op.drop_table("poll_choice_media")
    op.drop_table("poll_choices")
    op.drop_table("polls")
    op.drop_table("organization_members")
    op.drop_table("organizations")
    op.drop_table("refresh_tokens")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in reversed(ENUMS):
        enum_type.drop(bind, checkfirst=True)
