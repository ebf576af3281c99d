"""Login, refresh-token rotation, logout and token validation."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from vatofotsy_api.auth.passwords import verify_password
from vatofotsy_api.auth.tokens import (
    TokenExpiredError,
    TokenInvalidError,
    TokenManager,
    TokenPair,
    TokenPayload,
    get_token_manager,
)
from vatofotsy_api.errors import (
    AccountNotVerified,
    InvalidCredentials,
    InvalidRefreshToken,
    InvalidToken,
    TokenExpired,
)
from vatofotsy_api.models import User
from vatofotsy_api.models.base import as_utc, utc_now
from vatofotsy_api.services import refresh_tokens
from vatofotsy_api.services.events import AuthEvent, publish_auth_event
from vatofotsy_api.services.users import get_user_by_email

logger = logging.getLogger(__name__)


async def _issue_tokens(
    db: AsyncSession, user_id: str, token_manager: TokenManager
) -> TokenPair:
    pair = token_manager.create_token_pair(user_id)
    await refresh_tokens.set_refresh_token(
        db, user_id, pair.refresh_token, pair.refresh_expires_at
    )
    await db.commit()
    return pair


async def login(
    db: AsyncSession,
    email: str,
    password: str,
    token_manager: TokenManager | None = None,
) -> tuple[User, TokenPair]:
    """Authenticate with email and password.

    The verification flag is checked only once the password matched, so an
    unverified account does not reveal itself to a wrong password.

    Returns:
        The user and a fresh access/refresh token pair

    Raises:
        InvalidCredentials: Unknown email or wrong password
        AccountNotVerified: Correct credentials on an unverified account
    """
    token_manager = token_manager or get_token_manager()
    user = await get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        raise InvalidCredentials()
    if not user.is_verified:
        raise AccountNotVerified()

    pair = await _issue_tokens(db, user.id, token_manager)
    publish_auth_event(AuthEvent.USER_LOGGED_IN, user.id)
    return user, pair


async def refresh_token(
    db: AsyncSession,
    token: str,
    user_id: str,
    token_manager: TokenManager | None = None,
) -> TokenPair:
    """Exchange the stored refresh token for a new pair.

    The presented token must equal the one stored for the user and be
    unexpired. The new refresh token replaces it, so the old one stops working.

    Raises:
        InvalidRefreshToken: Token mismatch, expiry, or unknown/unverified user
    """
    token_manager = token_manager or get_token_manager()
    stored = await refresh_tokens.get_refresh_token(db, user_id)
    if stored is None or stored.token != token:
        raise InvalidRefreshToken()
    if as_utc(stored.expires_at) <= utc_now():
        await refresh_tokens.delete_refresh_token(db, user_id)
        await db.commit()
        raise InvalidRefreshToken()

    user = await db.get(User, user_id)
    if user is None or not user.is_verified:
        raise InvalidRefreshToken("User not found or not verified")

    return await _issue_tokens(db, user.id, token_manager)


async def logout(db: AsyncSession, user_id: str) -> None:
    """Revoke the user's refresh token. Safe to call repeatedly."""
    await refresh_tokens.delete_refresh_token(db, user_id)
    await db.commit()
    publish_auth_event(AuthEvent.USER_LOGGED_OUT, user_id)


def validate_token(token: str, token_manager: TokenManager | None = None) -> TokenPayload:
    """Validate an access token.

    Raises:
        TokenExpired: The token is well-formed but past its exp
        InvalidToken: Anything else wrong with the token
    """
    token_manager = token_manager or get_token_manager()
    try:
        return token_manager.validate_token(token)
    except TokenExpiredError as e:
        raise TokenExpired() from e
    except TokenInvalidError as e:
        logger.warning("Token validation failed: %s", e)
        raise InvalidToken() from e
