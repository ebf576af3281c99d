"""JWT token management.

This module handles:
- Minting access and refresh tokens (HS256, shared secret)
- Validating tokens, telling expired tokens apart from invalid ones
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError

from vatofotsy_api.config import jwt_settings

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class TokenError(Exception):
    """Base exception for token operations."""

    pass


class TokenExpiredError(TokenError):
    """Token has expired."""

    pass


class TokenInvalidError(TokenError):
    """Token is invalid."""

    pass


@dataclass
class TokenPayload:
    """Decoded claims of a token minted by this service."""

    user_id: str
    sub: str  # Same as user_id
    token_type: str
    exp: int  # Expiration timestamp
    iat: int  # Issued at timestamp

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "TokenPayload":
        """Create TokenPayload from decoded JWT payload."""
        required = ["userId", "sub", "typ", "exp", "iat"]
        for claim in required:
            if claim not in payload:
                raise TokenInvalidError(f"Token missing required '{claim}' claim")

        return cls(
            user_id=payload["userId"],
            sub=payload["sub"],
            token_type=payload["typ"],
            exp=payload["exp"],
            iat=payload["iat"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "sub": self.sub,
            "typ": self.token_type,
            "exp": self.exp,
            "iat": self.iat,
        }


@dataclass
class IssuedToken:
    token: str
    expires_at: datetime


@dataclass
class TokenPair:
    """Access and refresh tokens issued together at login or refresh."""

    access_token: str
    refresh_token: str
    # Expiry of the access token, equal to its exp claim
    expires_at: datetime
    refresh_expires_at: datetime


class TokenManager:
    """Mints and validates HMAC-signed JWTs."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        access_token_ttl_minutes: int = 15,
        refresh_token_ttl_days: int = 7,
    ):
        self._secret = secret
        self.algorithm = algorithm
        self.access_token_ttl = timedelta(minutes=access_token_ttl_minutes)
        self.refresh_token_ttl = timedelta(days=refresh_token_ttl_days)

    def _issue(
        self,
        user_id: str,
        token_type: str,
        ttl: timedelta,
        now: datetime | None = None,
    ) -> IssuedToken:
        # Whole seconds, so expires_at and the exp claim are the same instant
        now = (now or datetime.now(timezone.utc)).replace(microsecond=0)
        expires_at = now + ttl
        payload = TokenPayload(
            user_id=user_id,
            sub=user_id,
            token_type=token_type,
            exp=int(expires_at.timestamp()),
            iat=int(now.timestamp()),
        ).to_dict()
        # Tokens minted within the same second must still differ
        payload["jti"] = uuid4().hex
        token = jwt.encode(payload, self._secret, algorithm=self.algorithm)
        return IssuedToken(token=token, expires_at=expires_at)

    def create_access_token(self, user_id: str) -> IssuedToken:
        return self._issue(user_id, ACCESS_TOKEN_TYPE, self.access_token_ttl)

    def create_refresh_token(self, user_id: str) -> IssuedToken:
        return self._issue(user_id, REFRESH_TOKEN_TYPE, self.refresh_token_ttl)

    def create_token_pair(self, user_id: str) -> TokenPair:
        now = datetime.now(timezone.utc)
        access = self._issue(user_id, ACCESS_TOKEN_TYPE, self.access_token_ttl, now)
        refresh = self._issue(user_id, REFRESH_TOKEN_TYPE, self.refresh_token_ttl, now)
        return TokenPair(
            access_token=access.token,
            refresh_token=refresh.token,
            expires_at=access.expires_at,
            refresh_expires_at=refresh.expires_at,
        )

    def validate_token(
        self, token: str, expected_type: str | None = ACCESS_TOKEN_TYPE
    ) -> TokenPayload:
        """Validate a token and return its payload.

        Args:
            token: JWT string to validate
            expected_type: Required "typ" claim, or None to accept any type

        Returns:
            TokenPayload with decoded claims

        Raises:
            TokenExpiredError: If token has expired
            TokenInvalidError: If token is invalid
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"verify_exp": True},
            )
        except ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except JWTClaimsError as e:
            raise TokenInvalidError(f"Invalid token claims: {e}") from e
        except JWTError as e:
            raise TokenInvalidError(f"Invalid token: {e}") from e

        result = TokenPayload.from_dict(payload)
        if expected_type is not None and result.token_type != expected_type:
            raise TokenInvalidError(f"Expected a {expected_type} token")
        return result


# Global token manager instance (created lazily)
_token_manager: TokenManager | None = None


def get_token_manager() -> TokenManager:
    """Get the global token manager instance."""
    global _token_manager
    if _token_manager is None:
        if jwt_settings.secret == "changeme":
            logger.warning("JWT_SECRET is not configured, using the insecure default")
        _token_manager = TokenManager(
            secret=jwt_settings.secret,
            algorithm=jwt_settings.algorithm,
            access_token_ttl_minutes=jwt_settings.access_token_ttl_minutes,
            refresh_token_ttl_days=jwt_settings.refresh_token_ttl_days,
        )
    return _token_manager
