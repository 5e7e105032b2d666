import base64
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from assistant.models.pending_action import PENDING_GITHUB_OAUTH
from assistant.repositories.pending_action_repository import PendingActionRepository
from assistant.repositories.user_repository import UserRepository
from assistant.services.github_oauth import GithubOAuthService, OAuthError
from assistant.services.user_service import UserService

KEY = base64.b64encode(b"2" * 32).decode()
NOW = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


def _github(token_response: httpx.Response):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/login/oauth/access_token":
            return token_response
        if request.url.path == "/user":
            assert request.headers["Authorization"] == "Bearer gho_abc"
            return httpx.Response(200, json={"login": "octocat"})
        return httpx.Response(404)

    return httpx.MockTransport(handler)


def _service(session, transport=None, key=KEY):
    users = UserService(UserRepository(session), encryption_key=key)
    service = GithubOAuthService(
        PendingActionRepository(session),
        users,
        client_id="client-1",
        client_secret="secret-1",
        redirect_uri="https://bot.example/github/oauth/callback",
        transport=transport or _github(httpx.Response(200, json={"access_token": "gho_abc"})),
    )
    return service, users


def _state(url: str) -> str:
    return parse_qs(urlparse(url).query)["state"][0]


async def test_start_stores_state_and_builds_authorize_url(session) -> None:
    service, _ = _service(session)

    url = await service.start("u1", now=NOW)

    query = parse_qs(urlparse(url).query)
    assert url.startswith("https://github.com/login/oauth/authorize?")
    assert query["client_id"] == ["client-1"]
    assert query["scope"] == ["repo"]
    row = await PendingActionRepository(session).find_by_type_and_key(PENDING_GITHUB_OAUTH, _state(url))
    assert row is not None
    assert row.user_id == "u1"


async def test_complete_stores_token_and_username(session) -> None:
    service, users = _service(session)
    state = _state(await service.start("u1", now=NOW))

    user_id = await service.complete("the-code", state, now=NOW + timedelta(minutes=2))

    user = await users.get("u1")
    assert user_id == "u1"
    assert users.get_github_token(user) == "gho_abc"
    assert user.github_auth_type == "oauth"
    assert user.github_username == "octocat"
    assert await PendingActionRepository(session).find_by_type_and_key(PENDING_GITHUB_OAUTH, state) is None


async def test_expired_state_is_rejected_and_removed(session) -> None:
    service, _ = _service(session)
    state = _state(await service.start("u1", now=NOW))

    with pytest.raises(OAuthError, match="expired"):
        await service.complete("the-code", state, now=NOW + timedelta(hours=1))

    assert await PendingActionRepository(session).find_by_type_and_key(PENDING_GITHUB_OAUTH, state) is None


async def test_failed_exchange_still_consumes_state(session) -> None:
    transport = _github(httpx.Response(200, json={"error_description": "The code passed is incorrect"}))
    service, users = _service(session, transport=transport)
    state = _state(await service.start("u1", now=NOW))

    with pytest.raises(OAuthError, match="incorrect"):
        await service.complete("bad-code", state, now=NOW)

    assert await PendingActionRepository(session).find_by_type_and_key(PENDING_GITHUB_OAUTH, state) is None
    assert await users.get("u1") is None


async def test_unknown_state(session) -> None:
    service, _ = _service(session)

    with pytest.raises(OAuthError):
        await service.complete("the-code", "never-issued-state", now=NOW)


async def test_missing_encryption_key_surfaces_as_oauth_error(session) -> None:
    service, _ = _service(session, key="")
    state = _state(await service.start("u1", now=NOW))

    with pytest.raises(OAuthError, match="not configured"):
        await service.complete("the-code", state, now=NOW)


async def test_unconfigured_service_refuses_to_start(session) -> None:
    service = GithubOAuthService(
        PendingActionRepository(session),
        UserService(UserRepository(session), encryption_key=KEY),
        client_id=None,
        client_secret=None,
        redirect_uri=None,
    )

    assert service.configured is False
    with pytest.raises(OAuthError):
        await service.start("u1", now=NOW)
