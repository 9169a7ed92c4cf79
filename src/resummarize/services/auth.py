"""
Auth Gateway

Async client for the identity provider's REST API (GoTrue-compatible,
as exposed by the BaaS under ``/auth/v1``).

Design:
    - Async HTTP calls via httpx (non-blocking).
    - Sign-up/sign-in failures raise; user/session lookups return None
      when the token is missing, expired or rejected.
    - OAuth uses PKCE: the verifier travels with the browser (cookie)
      and is presented again when the callback code is exchanged.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import secrets
from typing import Any, NamedTuple
from urllib.parse import urlencode

import httpx

from resummarize.core.config import settings
from resummarize.core.exceptions import NetworkError, NotAuthenticated, ValidationError
from resummarize.schemas.auth import AuthResponse, AuthSession, AuthUser

logger = logging.getLogger(__name__)


class OAuthStart(NamedTuple):
    """Authorize URL plus the PKCE verifier to keep for the callback."""

    url: str
    code_verifier: str


def create_code_verifier() -> str:
    return secrets.token_urlsafe(48)


def code_challenge_for(verifier: str) -> str:
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


class AuthGateway:
    """
    Identity provider client.

    Usage::

        auth = AuthGateway()
        result = await auth.sign_in("me@example.com", "hunter22")
        user = await auth.get_current_user(result.session.access_token)
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or settings.AUTH_URL).rstrip("/") + "/auth/v1"
        self._api_key = api_key if api_key is not None else settings.AUTH_ANON_KEY
        self._timeout = timeout or settings.AUTH_TIMEOUT
        self._transport = transport

    # ------------------------------------------------------------------
    # Email / password
    # ------------------------------------------------------------------

    async def sign_up(
        self,
        email: str,
        password: str,
        email_redirect_to: str | None = None,
    ) -> AuthResponse:
        """
        Register a user. ``session`` is None while email confirmation is pending.

        Raises:
            ValidationError: Missing email/password or rejected by the provider.
        """
        if not email or not password:
            raise ValidationError("Email and password are required")
        redirect = email_redirect_to or f"{settings.SITE_URL}/api/v1/auth/callback"
        data = await self._request(
            "POST",
            "/signup",
            json={"email": email, "password": password},
            params={"redirect_to": redirect},
        )
        return self._auth_response(data)

    async def sign_in(self, email: str, password: str) -> AuthResponse:
        """
        Password sign-in.

        Raises:
            ValidationError: Missing email/password.
            NotAuthenticated: Wrong credentials.
        """
        if not email or not password:
            raise ValidationError("Email and password are required")
        data = await self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        return self._auth_response(data)

    async def sign_out(self, access_token: str | None) -> None:
        """Revoke the session. Already-invalid tokens are ignored."""
        if not access_token:
            return
        try:
            await self._request("POST", "/logout", token=access_token)
        except NotAuthenticated:
            logger.info("Sign-out with an expired session")

    # ------------------------------------------------------------------
    # OAuth
    # ------------------------------------------------------------------

    def sign_in_with_oauth(
        self,
        provider: str = "google",
        redirect_to: str | None = None,
    ) -> OAuthStart:
        """Build the provider authorize URL (offline access, forced consent)."""
        verifier = create_code_verifier()
        params = {
            "provider": provider,
            "redirect_to": redirect_to or f"{settings.SITE_URL}/api/v1/auth/callback",
            "code_challenge": code_challenge_for(verifier),
            "code_challenge_method": "s256",
            "access_type": "offline",
            "prompt": "consent",
        }
        return OAuthStart(url=f"{self._base_url}/authorize?{urlencode(params)}", code_verifier=verifier)

    async def exchange_code_for_session(self, code: str, code_verifier: str) -> AuthSession:
        if not code:
            raise ValidationError("Authorization code is required")
        data = await self._request(
            "POST",
            "/token",
            params={"grant_type": "pkce"},
            json={"auth_code": code, "code_verifier": code_verifier},
        )
        return AuthSession.model_validate(data)

    # ------------------------------------------------------------------
    # Session / user
    # ------------------------------------------------------------------

    async def get_current_user(self, access_token: str | None) -> AuthUser | None:
        """User for ``access_token``, or None when missing/invalid/unreachable."""
        if not access_token:
            return None
        try:
            data = await self._request("GET", "/user", token=access_token)
        except (NotAuthenticated, ValidationError, NetworkError) as e:
            logger.debug("User lookup failed: %s", e)
            return None
        return AuthUser.model_validate(data)

    async def get_session(
        self,
        access_token: str | None,
        refresh_token: str | None = None,
    ) -> AuthSession | None:
        """
        Validate the token pair; transparently refresh an expired access token.
        """
        user = await self.get_current_user(access_token)
        if user is not None and access_token:
            return AuthSession(access_token=access_token, refresh_token=refresh_token, user=user)
        if refresh_token:
            return await self.refresh_session(refresh_token)
        return None

    async def refresh_session(self, refresh_token: str) -> AuthSession | None:
        try:
            data = await self._request(
                "POST",
                "/token",
                params={"grant_type": "refresh_token"},
                json={"refresh_token": refresh_token},
            )
        except (NotAuthenticated, ValidationError, NetworkError) as e:
            logger.info("Session refresh failed: %s", e)
            return None
        return AuthSession.model_validate(data)

    # ------------------------------------------------------------------
    # Passwords
    # ------------------------------------------------------------------

    async def reset_password_for_email(self, email: str, redirect_to: str | None = None) -> None:
        if not email:
            raise ValidationError("Email is required")
        await self._request(
            "POST",
            "/recover",
            params={"redirect_to": redirect_to or f"{settings.SITE_URL}/auth/reset-password"},
            json={"email": email},
        )

    async def update_password(self, access_token: str | None, password: str) -> AuthUser:
        if not access_token:
            raise NotAuthenticated("Sign in to change your password")
        if not password:
            raise ValidationError("Password is required")
        data = await self._request("PUT", "/user", token=access_token, json={"password": password})
        return AuthUser.model_validate(data)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        token: str | None = None,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        headers = {"apikey": self._api_key}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(
                    method, path, headers=headers, params=params, json=json
                )
                response.raise_for_status()
        except httpx.TransportError as e:
            logger.warning("Auth provider unreachable (%s): %s", type(e).__name__, e)
            raise NetworkError("Authentication service unreachable") from e
        except httpx.HTTPStatusError as e:
            message = self._error_message(e.response)
            status = e.response.status_code
            if status in (400, 401, 403):
                raise NotAuthenticated(message) from e
            if status == 422:
                raise ValidationError(message) from e
            logger.error("Auth provider error %d: %s", status, message)
            raise NetworkError(message) from e

        if not response.content:
            return {}
        return response.json()

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        return (
            body.get("error_description")
            or body.get("msg")
            or body.get("message")
            or body.get("error")
            or f"HTTP {response.status_code}"
        )

    @staticmethod
    def _auth_response(data: dict[str, Any]) -> AuthResponse:
        if "access_token" in data:
            session = AuthSession.model_validate(data)
            return AuthResponse(user=session.user, session=session)
        # sign-up awaiting confirmation returns the bare user
        user = AuthUser.model_validate(data) if data.get("id") else None
        return AuthResponse(user=user, session=None)
