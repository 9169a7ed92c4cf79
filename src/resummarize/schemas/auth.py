"""
Auth Schemas

Request/response bodies for the identity provider gateway.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Credentials(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1)


class AuthUser(BaseModel):
    """Subset of the provider's user record the app relies on."""

    id: str
    email: str | None = None
    user_metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")


class AuthSession(BaseModel):
    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    token_type: str = "bearer"
    user: AuthUser | None = None

    model_config = ConfigDict(extra="ignore")


class AuthResponse(BaseModel):
    """Result of sign-up / sign-in. ``session`` is None until email confirmation."""

    user: AuthUser | None = None
    session: AuthSession | None = None


class ResetPasswordRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    redirect_to: str | None = None


class UpdatePasswordRequest(BaseModel):
    password: str = Field(..., min_length=6)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class OAuthRedirect(BaseModel):
    url: str
