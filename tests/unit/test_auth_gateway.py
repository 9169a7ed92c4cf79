"""
Auth Gateway Unit Tests

Identity provider calls served by httpx.MockTransport; no network.
"""

import json
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from resummarize.core.exceptions import NetworkError, NotAuthenticated, ValidationError
from resummarize.services.auth import AuthGateway, code_challenge_for

USER = {"id": "user-1", "email": "me@example.com", "aud": "authenticated"}
SESSION = {
    "access_token": "access-1",
    "refresh_token": "refresh-1",
    "expires_in": 3600,
    "token_type": "bearer",
    "user": USER,
}


def gateway_for(handler) -> AuthGateway:
    return AuthGateway(
        base_url="http://auth.test",
        api_key="anon-key",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_sign_in_returns_session_and_sends_api_key():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=SESSION)

    result = await gateway_for(handler).sign_in("me@example.com", "hunter22")

    assert result.session.access_token == "access-1"
    assert result.user.id == "user-1"
    request = seen[0]
    assert request.url.path == "/auth/v1/token"
    assert request.url.params["grant_type"] == "password"
    assert request.headers["apikey"] == "anon-key"
    assert json.loads(request.content) == {"email": "me@example.com", "password": "hunter22"}


@pytest.mark.asyncio
async def test_sign_up_pending_confirmation_has_no_session():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/auth/v1/signup"
        assert "redirect_to" in request.url.params
        return httpx.Response(200, json=USER)

    result = await gateway_for(handler).sign_up("me@example.com", "hunter22")

    assert result.user.email == "me@example.com"
    assert result.session is None


@pytest.mark.asyncio
async def test_missing_credentials_fail_before_any_request():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    gateway = gateway_for(handler)
    with pytest.raises(ValidationError):
        await gateway.sign_in("", "secret")
    with pytest.raises(ValidationError):
        await gateway.sign_up("me@example.com", "")


@pytest.mark.asyncio
async def test_bad_credentials_raise_not_authenticated():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400, json={"error": "invalid_grant", "error_description": "Invalid login credentials"}
        )

    with pytest.raises(NotAuthenticated) as exc_info:
        await gateway_for(handler).sign_in("me@example.com", "wrong")

    assert exc_info.value.message == "Invalid login credentials"


@pytest.mark.asyncio
async def test_unreachable_provider_raises_network_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NetworkError):
        await gateway_for(handler).sign_in("me@example.com", "hunter22")


@pytest.mark.asyncio
async def test_reset_connection_is_a_network_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadError("connection reset", request=request)

    gateway = gateway_for(handler)

    with pytest.raises(NetworkError):
        await gateway.sign_in("me@example.com", "hunter22")
    assert await gateway.get_current_user("tok") is None


@pytest.mark.asyncio
async def test_get_current_user_is_none_for_missing_or_rejected_token():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.headers.get("Authorization") == "Bearer good":
            return httpx.Response(200, json=USER)
        return httpx.Response(401, json={"msg": "invalid JWT"})

    gateway = gateway_for(handler)

    assert (await gateway.get_current_user("good")).id == "user-1"
    assert await gateway.get_current_user("expired") is None
    assert await gateway.get_current_user(None) is None


@pytest.mark.asyncio
async def test_get_session_refreshes_expired_access_token():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/auth/v1/user":
            return httpx.Response(401, json={"msg": "expired"})
        assert request.url.params["grant_type"] == "refresh_token"
        return httpx.Response(200, json={**SESSION, "access_token": "access-2"})

    session = await gateway_for(handler).get_session("stale", "refresh-1")

    assert session.access_token == "access-2"


def test_oauth_url_uses_pkce_offline_access_and_consent():
    gateway = gateway_for(lambda request: httpx.Response(500))

    start = gateway.sign_in_with_oauth("google", redirect_to="http://app.test/cb")

    url = urlparse(start.url)
    params = {k: v[0] for k, v in parse_qs(url.query).items()}
    assert url.path == "/auth/v1/authorize"
    assert params["provider"] == "google"
    assert params["redirect_to"] == "http://app.test/cb"
    assert params["access_type"] == "offline"
    assert params["prompt"] == "consent"
    assert params["code_challenge"] == code_challenge_for(start.code_verifier)


@pytest.mark.asyncio
async def test_exchange_code_posts_verifier():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["grant_type"] == "pkce"
        assert json.loads(request.content) == {"auth_code": "abc", "code_verifier": "v"}
        return httpx.Response(200, json=SESSION)

    session = await gateway_for(handler).exchange_code_for_session("abc", "v")

    assert session.user.id == "user-1"


@pytest.mark.asyncio
async def test_sign_out_ignores_expired_session():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"msg": "expired"})

    await gateway_for(handler).sign_out("expired")
