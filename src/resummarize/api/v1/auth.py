"""
Auth API Router

Email/password and OAuth (PKCE) sign-in against the identity provider.
Successful sign-ins set the session cookies used by the HTML routes;
API clients may use the returned access token as a Bearer token instead.
"""

import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import RedirectResponse

from resummarize.api.deps import (
    VERIFIER_COOKIE,
    clear_session_cookies,
    get_auth_gateway,
    get_current_user,
    get_registry,
    read_access_token,
    security,
    set_session_cookies,
)
from resummarize.core.config import settings
from resummarize.core.exceptions import NotAuthenticated, ResummarizeError
from resummarize.schemas.auth import (
    AuthResponse,
    AuthSession,
    AuthUser,
    Credentials,
    RefreshRequest,
    ResetPasswordRequest,
    UpdatePasswordRequest,
)
from resummarize.services.auth import AuthGateway
from resummarize.services.session import SessionRegistry

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_NEXT = "/dashboard"
AUTH_ERROR_PATH = "/auth/auth-code-error"


def safe_next(next_path: str | None) -> str:
    """Only same-site absolute paths are accepted as post-login targets."""
    if (
        not next_path
        or not next_path.startswith("/")
        or next_path.startswith("//")
        or "\\" in next_path
    ):
        return DEFAULT_NEXT
    return next_path


def redirect_origin(request: Request) -> str:
    """
    Origin to redirect back to after the OAuth callback.

    Behind a load balancer the public host arrives in ``x-forwarded-host``;
    in local development the request origin is used as-is.
    """
    forwarded_host = request.headers.get("x-forwarded-host")
    if settings.ENVIRONMENT != "local" and forwarded_host:
        return f"https://{forwarded_host}"
    return str(request.base_url).rstrip("/")


@router.post("/signup", response_model=AuthResponse)
async def sign_up(
    credentials: Credentials,
    response: Response,
    auth: AuthGateway = Depends(get_auth_gateway),
):
    """Register; the session is null while email confirmation is pending."""
    result = await auth.sign_up(credentials.email, credentials.password)
    if result.session is not None:
        set_session_cookies(response, result.session)
    return result


@router.post("/signin", response_model=AuthResponse)
async def sign_in(
    credentials: Credentials,
    response: Response,
    auth: AuthGateway = Depends(get_auth_gateway),
):
    result = await auth.sign_in(credentials.email, credentials.password)
    if result.session is None:
        raise NotAuthenticated("Sign-in did not return a session")
    set_session_cookies(response, result.session)
    logger.info("User signed in: %s", result.user.id if result.user else "unknown")
    return result


@router.post("/signout", status_code=status.HTTP_204_NO_CONTENT)
async def sign_out(
    request: Request,
    credentials=Depends(security),
    auth: AuthGateway = Depends(get_auth_gateway),
    registry: SessionRegistry = Depends(get_registry),
):
    """Revoke the session, flush pending drafts and drop cached state."""
    token = read_access_token(request, credentials)
    user = await auth.get_current_user(token)
    if user is not None:
        await registry.discard(user.id)
    await auth.sign_out(token)
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    clear_session_cookies(response)
    return response


@router.get("/oauth/{provider}")
async def sign_in_with_oauth(
    provider: str,
    request: Request,
    next: str | None = None,
    auth: AuthGateway = Depends(get_auth_gateway),
):
    """Start the OAuth flow: redirect the browser to the provider."""
    callback = f"{redirect_origin(request)}/api/v1/auth/callback?" + urlencode(
        {"next": safe_next(next)}
    )
    start = auth.sign_in_with_oauth(provider, redirect_to=callback)
    response = RedirectResponse(start.url, status_code=status.HTTP_302_FOUND)
    response.set_cookie(
        VERIFIER_COOKIE, start.code_verifier, max_age=600, httponly=True, samesite="lax"
    )
    return response


@router.get("/callback")
async def oauth_callback(
    request: Request,
    code: str | None = None,
    next: str | None = None,
    auth: AuthGateway = Depends(get_auth_gateway),
):
    """
    Exchange the provider's code for a session and continue to ``next``.

    Any failure lands on the auth error page.
    """
    origin = redirect_origin(request)
    verifier = request.cookies.get(VERIFIER_COOKIE)
    if not code or not verifier:
        return RedirectResponse(f"{origin}{AUTH_ERROR_PATH}", status_code=status.HTTP_302_FOUND)

    try:
        session = await auth.exchange_code_for_session(code, verifier)
    except ResummarizeError as e:
        logger.warning("OAuth code exchange failed: %s", e)
        return RedirectResponse(f"{origin}{AUTH_ERROR_PATH}", status_code=status.HTTP_302_FOUND)

    response = RedirectResponse(f"{origin}{safe_next(next)}", status_code=status.HTTP_302_FOUND)
    set_session_cookies(response, session)
    response.delete_cookie(VERIFIER_COOKIE)
    return response


@router.post("/refresh", response_model=AuthSession)
async def refresh(
    body: RefreshRequest,
    response: Response,
    auth: AuthGateway = Depends(get_auth_gateway),
):
    session = await auth.refresh_session(body.refresh_token)
    if session is None:
        raise NotAuthenticated("Session expired, please sign in again")
    set_session_cookies(response, session)
    return session


@router.post("/reset-password", status_code=status.HTTP_204_NO_CONTENT)
async def reset_password(
    body: ResetPasswordRequest,
    auth: AuthGateway = Depends(get_auth_gateway),
):
    """Send a password reset email."""
    await auth.reset_password_for_email(body.email, body.redirect_to)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/update-password", response_model=AuthUser)
async def update_password(
    body: UpdatePasswordRequest,
    request: Request,
    credentials=Depends(security),
    auth: AuthGateway = Depends(get_auth_gateway),
):
    return await auth.update_password(read_access_token(request, credentials), body.password)


@router.get("/me", response_model=AuthUser)
async def read_me(user: AuthUser = Depends(get_current_user)):
    return user
