"""Authentication routes: login, token refresh, logout, token validation."""

from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from vatofotsy_api.auth import get_current_user
from vatofotsy_api.auth.tokens import TokenPair
from vatofotsy_api.db import get_db
from vatofotsy_api.models import User
from vatofotsy_api.routes.users import UserResponse
from vatofotsy_api.services import auth as auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


# --- Schemas ---


class LoginRequest(BaseModel):
    email: str
    password: str = Field(min_length=1, max_length=72)


class RefreshRequest(BaseModel):
    refresh_token: str
    user_id: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    # Access token expiry, equal to its exp claim
    expires_at: datetime


class LoginResponse(TokenResponse):
    user: UserResponse


class ValidateRequest(BaseModel):
    token: str


class ValidateResponse(BaseModel):
    valid: bool
    user_id: str
    expires_at: datetime


def _token_response(pair: TokenPair) -> dict:
    return {
        "access_token": pair.access_token,
        "refresh_token": pair.refresh_token,
        "expires_at": pair.expires_at,
    }


# --- Endpoints ---


@router.post("/login", response_model=LoginResponse)
async def login(
    data: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Exchange email and password for an access/refresh token pair."""
    user, pair = await auth_service.login(db, data.email, data.password)
    return LoginResponse(
        **_token_response(pair), user=UserResponse.model_validate(user)
    )


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    data: RefreshRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Rotate the refresh token. The presented token stops working."""
    pair = await auth_service.refresh_token(db, data.refresh_token, data.user_id)
    return TokenResponse(**_token_response(pair))


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    await auth_service.logout(db, current_user.id)


@router.post("/validate", response_model=ValidateResponse)
async def validate(data: ValidateRequest):
    """Check an access token. Invalid or expired tokens get a 401."""
    payload = auth_service.validate_token(data.token)
    return ValidateResponse(
        valid=True,
        user_id=payload.user_id,
        expires_at=datetime.fromtimestamp(payload.exp, tz=timezone.utc),
    )
