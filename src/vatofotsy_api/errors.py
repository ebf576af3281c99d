"""Domain errors.

Every failure a service can report is a DomainError subclass with a stable
message and code. The class-level kind decides the HTTP status the error
handlers answer with, so services never deal in status codes.
"""

import enum


class ErrorKind(str, enum.Enum):
    """Category of a domain error, mapped 1:1 to an HTTP status."""

    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"


HTTP_STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.CONFLICT: 409,
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTHENTICATION: 401,
}


class DomainError(Exception):
    """Base exception for domain failures."""

    kind: ErrorKind = ErrorKind.VALIDATION
    default_message: str = "Invalid request"
    code: str = "DOMAIN_ERROR"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_KIND[self.kind]

    def to_response(self) -> dict[str, str]:
        return {"detail": self.message, "code": self.code}


class NotFoundError(DomainError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Not found"
    code = "NOT_FOUND"


class ForbiddenError(DomainError):
    kind = ErrorKind.FORBIDDEN
    default_message = "Forbidden"
    code = "FORBIDDEN"


class ConflictError(DomainError):
    kind = ErrorKind.CONFLICT
    default_message = "Conflict"
    code = "CONFLICT"


class ValidationError(DomainError):
    kind = ErrorKind.VALIDATION
    default_message = "Invalid request"
    code = "VALIDATION_ERROR"


class AuthenticationError(DomainError):
    kind = ErrorKind.AUTHENTICATION
    default_message = "Not authenticated"
    code = "AUTHENTICATION_ERROR"


# --- Identity / access ---


class UserNotFound(NotFoundError):
    default_message = "User not found"
    code = "USER_NOT_FOUND"


class EmailAlreadyRegistered(ConflictError):
    default_message = "User with this email already exists"
    code = "EMAIL_ALREADY_REGISTERED"


class IncorrectPassword(ValidationError):
    default_message = "Current password is incorrect"
    code = "INCORRECT_PASSWORD"


class PasswordTooLong(ValidationError):
    default_message = "Password cannot be longer than 72 bytes"
    code = "PASSWORD_TOO_LONG"


class InvalidCredentials(AuthenticationError):
    default_message = "Invalid credentials"
    code = "INVALID_CREDENTIALS"


class AccountNotVerified(AuthenticationError):
    default_message = "User account is not verified"
    code = "ACCOUNT_NOT_VERIFIED"


class InvalidRefreshToken(AuthenticationError):
    default_message = "Invalid refresh token"
    code = "INVALID_REFRESH_TOKEN"


class InvalidToken(AuthenticationError):
    default_message = "Invalid token"
    code = "INVALID_TOKEN"


class TokenExpired(InvalidToken):
    default_message = "Token has expired"
    code = "TOKEN_EXPIRED"


# --- Organizations ---


class OrganizationNotFound(NotFoundError):
    default_message = "Organization not found"
    code = "ORGANIZATION_NOT_FOUND"


class DuplicateOrganizationName(ConflictError):
    default_message = "Organization with this name already exists"
    code = "DUPLICATE_ORGANIZATION_NAME"


class InvalidEmail(ValidationError):
    default_message = "Invalid email format"
    code = "INVALID_EMAIL"


class InvalidWebsite(ValidationError):
    default_message = "Invalid website format"
    code = "INVALID_WEBSITE"


class InvalidPhone(ValidationError):
    default_message = "Invalid phone format"
    code = "INVALID_PHONE"


class InsufficientPermissions(ForbiddenError):
    default_message = "Insufficient permissions"
    code = "INSUFFICIENT_PERMISSIONS"


class NotOrganizationMember(ForbiddenError):
    default_message = "User is not a member of this organization"
    code = "NOT_ORGANIZATION_MEMBER"


class AlreadyMember(ConflictError):
    default_message = "User is already a member of this organization"
    code = "ALREADY_MEMBER"


class InvitePending(ConflictError):
    default_message = "User already has a pending invite to this organization"
    code = "INVITE_PENDING"


class InviteNotFound(NotFoundError):
    default_message = "Invite not found"
    code = "INVITE_NOT_FOUND"


class InviteNotForUser(ForbiddenError):
    default_message = "Unauthorized to accept this invite"
    code = "INVITE_NOT_FOR_USER"


class InviteNotPending(ValidationError):
    default_message = "Invite is no longer pending"
    code = "INVITE_NOT_PENDING"


class InviteExpired(ValidationError):
    default_message = "Invite has expired"
    code = "INVITE_EXPIRED"


class MemberNotFound(NotFoundError):
    default_message = "Member not found"
    code = "MEMBER_NOT_FOUND"


class CannotRemoveOwner(ForbiddenError):
    default_message = "Cannot remove the organization owner"
    code = "CANNOT_REMOVE_OWNER"


class CannotModifyOwner(ForbiddenError):
    default_message = "Cannot change the role of the organization owner"
    code = "CANNOT_MODIFY_OWNER"


class CannotAssignOwnerRole(ValidationError):
    default_message = "The owner role cannot be assigned"
    code = "CANNOT_ASSIGN_OWNER_ROLE"


# --- Polls ---


class PollNotFound(NotFoundError):
    default_message = "Poll not found"
    code = "POLL_NOT_FOUND"


class PollForbidden(ForbiddenError):
    default_message = "Only the poll creator can perform this action"
    code = "POLL_FORBIDDEN"


class PollNotDraft(ValidationError):
    default_message = "Only draft polls can be modified"
    code = "POLL_NOT_DRAFT"


class PollNotActive(ValidationError):
    default_message = "Only active polls can be ended"
    code = "POLL_NOT_ACTIVE"


class PollAlreadyClosed(ValidationError):
    default_message = "Poll has already ended or been cancelled"
    code = "POLL_ALREADY_CLOSED"


class OrganizationRequired(ValidationError):
    default_message = "Organization ID is required for private polls"
    code = "ORGANIZATION_REQUIRED"


class VotingEndInPast(ValidationError):
    default_message = "Voting end time must be in the future"
    code = "VOTING_END_IN_PAST"


class ChoiceNotFound(NotFoundError):
    default_message = "Choice not found"
    code = "CHOICE_NOT_FOUND"


class MediaNotFound(NotFoundError):
    default_message = "Media not found"
    code = "MEDIA_NOT_FOUND"


class InvalidFile(ValidationError):
    default_message = "Invalid file"
    code = "INVALID_FILE"


class VotingNotActive(ValidationError):
    default_message = "Voting is not active for this poll"
    code = "VOTING_NOT_ACTIVE"


class AlreadyVoted(ConflictError):
    default_message = "User has already voted for this choice"
    code = "ALREADY_VOTED"


class MultipleChoicesNotAllowed(ConflictError):
    default_message = "This poll allows voting for a single choice only"
    code = "MULTIPLE_CHOICES_NOT_ALLOWED"


class ResultsNotAvailable(ForbiddenError):
    default_message = "Results are not available until voting has ended"
    code = "RESULTS_NOT_AVAILABLE"
