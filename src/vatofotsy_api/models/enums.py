"""Enumeration types for database models."""

import enum


class OrganizationType(str, enum.Enum):
    """Size hint for an organization. Not enforced anywhere."""

    GROUP = "Group"  # < 30 members
    TEAM = "Team"  # 30-100
    ORGANIZATION = "Organization"  # 100-1000
    ENTERPRISE = "Enterprise"  # 1000+


class OrganizationRole(str, enum.Enum):
    """Role of a user within an organization."""

    OWNER = "OWNER"  # Full control, cannot be removed or demoted
    ADMIN = "ADMIN"  # Can invite and remove members, edit the organization
    MEMBER = "MEMBER"  # Can see and vote on the organization's polls


class MemberStatus(str, enum.Enum):
    """Status of an organization membership row."""

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    EXPIRED = "EXPIRED"


class PollType(str, enum.Enum):
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"  # Restricted to members of the poll's organization


class ResultDisplayType(str, enum.Enum):
    """When results may be shown to voters."""

    OPEN = "OPEN"  # Live, while voting is still running
    CLOSED = "CLOSED"  # Only once voting has ended


class PollStatus(str, enum.Enum):
    """Lifecycle state of a poll.

    DRAFT -> ACTIVE -> ENDED | CANCELLED, and DRAFT -> CANCELLED.
    """

    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"
    CANCELLED = "CANCELLED"


class MediaType(str, enum.Enum):
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"
    DOCUMENT = "DOCUMENT"
