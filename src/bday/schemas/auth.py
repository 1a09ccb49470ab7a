"""Pydantic schemas for authentication.

Learn: Request schemas do the shape checks (required fields, minimum
password length) so the auth service only sees well-formed input.
TokenPair is also what the service returns — routes pass it straight
through as the response body.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


# ─── Requests ───────────────────────────────────────────

class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=8)
    name: str = Field(default="", max_length=100)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class SocialLoginRequest(BaseModel):
    id_token: str = Field(..., min_length=1)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    avatar_url: Optional[str] = Field(None, max_length=500)


# ─── Responses ──────────────────────────────────────────

class TokenPair(BaseModel):
    """Issued after every successful sign-in or refresh."""

    access_token: str
    refresh_token: str
    expires_at: int  # access token expiry, epoch seconds


class UserRead(BaseModel):
    id: uuid.UUID
    email: Optional[str] = None
    name: str
    avatar_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CurrentUserRead(UserRead):
    """/auth/me — the profile plus which sign-in methods are linked."""

    providers: list[str] = []
