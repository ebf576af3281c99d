"""FastAPI dependencies for authentication."""

import logging
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from vatofotsy_api.auth.tokens import TokenPayload
from vatofotsy_api.db import get_db
from vatofotsy_api.errors import AuthenticationError, InvalidToken
from vatofotsy_api.models import User
from vatofotsy_api.services import auth as auth_service

logger = logging.getLogger(__name__)

# HTTP Bearer token security scheme
# auto_error=False so a missing header yields our own 401 body
bearer_scheme = HTTPBearer(auto_error=False)


async def get_optional_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> TokenPayload | None:
    """Get and validate the bearer token if present.

    Returns None if no token provided, raises if the token is invalid.
    """
    if credentials is None:
        return None
    return auth_service.validate_token(credentials.credentials)


async def get_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> TokenPayload:
    """Get and validate the bearer token (required)."""
    if credentials is None:
        raise AuthenticationError("Not authenticated")
    return auth_service.validate_token(credentials.credentials)


async def get_current_user(
    token: Annotated[TokenPayload, Depends(get_token)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Get the authenticated user.

    A token whose user no longer exists or was deactivated is rejected.
    """
    user = await db.get(User, token.user_id)
    if user is None or not user.is_active:
        logger.warning("Token for unknown or inactive user %s", token.user_id)
        raise InvalidToken()
    return user


async def get_current_user_optional(
    token: Annotated[TokenPayload | None, Depends(get_optional_token)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User | None:
    """Get the current user if authenticated, None otherwise."""
    if token is None:
        return None
    return await get_current_user(token, db)
