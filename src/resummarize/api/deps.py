"""
API Dependencies

Authentication and per-user session resolution shared by all routers.

Tokens are accepted from an ``Authorization: Bearer`` header or from the
session cookie set at sign-in. Cookie sessions are refreshed transparently:
when the access token has expired but the refresh cookie is still valid,
the user is resolved from the new session and both cookies are reissued.
"""

from __future__ import annotations

from fastapi import Depends, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from resummarize.core.config import settings
from resummarize.core.exceptions import NotAuthenticated
from resummarize.schemas.auth import AuthSession, AuthUser
from resummarize.services.auth import AuthGateway
from resummarize.services.session import ClientSession, SessionRegistry

ACCESS_COOKIE = "sb-access-token"
REFRESH_COOKIE = "sb-refresh-token"
VERIFIER_COOKIE = "sb-code-verifier"

security = HTTPBearer(auto_error=False)


def set_session_cookies(response: Response, session: AuthSession) -> None:
    secure = settings.SITE_URL.startswith("https")
    response.set_cookie(
        ACCESS_COOKIE,
        session.access_token,
        max_age=session.expires_in,
        httponly=True,
        samesite="lax",
        secure=secure,
    )
    if session.refresh_token:
        response.set_cookie(
            REFRESH_COOKIE,
            session.refresh_token,
            httponly=True,
            samesite="lax",
            secure=secure,
        )


def clear_session_cookies(response: Response) -> None:
    response.delete_cookie(ACCESS_COOKIE)
    response.delete_cookie(REFRESH_COOKIE)


def get_auth_gateway(request: Request) -> AuthGateway:
    """FastAPI dependency: the identity provider client built at startup."""
    return request.app.state.auth


def get_registry(request: Request) -> SessionRegistry:
    """FastAPI dependency: the per-user session registry built at startup."""
    return request.app.state.sessions


def read_access_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None,
) -> str | None:
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(ACCESS_COOKIE)


async def get_optional_user(
    request: Request,
    response: Response,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    auth: AuthGateway = Depends(get_auth_gateway),
) -> AuthUser | None:
    """Signed-in user, or None (for routes that redirect instead of failing)."""
    access_token = read_access_token(request, credentials)
    refresh_token = request.cookies.get(REFRESH_COOKIE)
    if not refresh_token:
        return await auth.get_current_user(access_token)

    session = await auth.get_session(access_token, refresh_token)
    if session is None:
        return None
    if session.access_token != access_token:
        set_session_cookies(response, session)
    return session.user or await auth.get_current_user(session.access_token)


async def get_current_user(
    user: AuthUser | None = Depends(get_optional_user),
) -> AuthUser:
    if user is None:
        raise NotAuthenticated("Sign in required")
    return user


async def get_client_session(
    user: AuthUser = Depends(get_current_user),
    registry: SessionRegistry = Depends(get_registry),
) -> ClientSession:
    return await registry.get(user.id)
