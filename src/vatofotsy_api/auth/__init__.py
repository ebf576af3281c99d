"""Authentication module for Vatofotsy API.

Token types:
- Access tokens: short-lived bearer JWTs sent on every request
- Refresh tokens: long-lived JWTs, one stored per user, rotated on use
"""

from vatofotsy_api.auth.dependencies import (
    get_current_user,
    get_current_user_optional,
    get_optional_token,
    get_token,
)
from vatofotsy_api.auth.passwords import hash_password, verify_password
from vatofotsy_api.auth.tokens import (
    TokenError,
    TokenExpiredError,
    TokenInvalidError,
    TokenManager,
    TokenPair,
    TokenPayload,
    get_token_manager,
)

__all__ = [
    # Dependencies
    "get_current_user",
    "get_current_user_optional",
    "get_optional_token",
    "get_token",
    # Passwords
    "hash_password",
    "verify_password",
    # Tokens
    "TokenError",
    "TokenExpiredError",
    "TokenInvalidError",
    "TokenManager",
    "TokenPair",
    "TokenPayload",
    "get_token_manager",
]
