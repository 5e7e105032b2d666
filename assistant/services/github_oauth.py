from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Protocol
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from assistant.core.crypto import SecretKeyError
from assistant.core.settings import get_settings
from assistant.models.pending_action import PENDING_GITHUB_OAUTH, PendingAction
from assistant.schemas.github_actions import OAuthStatePayload
from assistant.services.github_client import GithubAPIError, GithubTimeoutError, RestGithubClient
from assistant.services.github_service import is_expired
from assistant.services.user_service import UserService

logger = logging.getLogger(__name__)


class OAuthError(ValueError):
    pass


class OAuthStateStore(Protocol):
    async def create(
        self,
        *,
        user_id: str,
        type: str,
        payload: dict,
        expires_at: datetime | None = None,
        lookup_key: str | None = None,
    ) -> PendingAction: ...

    async def find_by_type_and_key(self, type: str, key: str) -> PendingAction | None: ...

    async def delete(self, action_id: int) -> None: ...


class GithubOAuthService:
    def __init__(
        self,
        store: OAuthStateStore,
        users: UserService,
        *,
        client_id: str | None = None,
        client_secret: str | None = None,
        redirect_uri: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._store = store
        self._users = users
        self._client_id = client_id or settings.github_oauth_client_id
        self._client_secret = client_secret or settings.github_oauth_client_secret
        self._redirect_uri = redirect_uri or settings.github_oauth_redirect_uri
        self._web_base_url = settings.github_web_base_url.rstrip("/")
        self._timeout = settings.github_timeout_seconds
        self._ttl = timedelta(minutes=settings.oauth_state_ttl_minutes)
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._client_id and self._client_secret and self._redirect_uri)

    async def start(self, user_id: str, now: datetime | None = None) -> str:
        if not self.configured:
            raise OAuthError("GitHub OAuth is not configured")
        now = now or datetime.now(timezone.utc)
        state = secrets.token_urlsafe(24)
        payload = OAuthStatePayload(state=state, user_id=user_id)
        await self._store.create(
            user_id=user_id,
            type=PENDING_GITHUB_OAUTH,
            payload=payload.model_dump(),
            expires_at=now + self._ttl,
            lookup_key=payload.state,
        )
        query = urlencode(
            {
                "client_id": self._client_id,
                "redirect_uri": self._redirect_uri,
                "state": state,
                "scope": "repo",
            }
        )
        logger.info("GitHub OAuth started: user_id=%s", user_id)
        return f"{self._web_base_url}/login/oauth/authorize?{query}"

    async def complete(self, code: str, state: str, now: datetime | None = None) -> str:
        """Finish the connect flow and return the user id the token was stored for."""
        if not self.configured:
            raise OAuthError("GitHub OAuth is not configured")
        now = now or datetime.now(timezone.utc)
        pending = await self._store.find_by_type_and_key(PENDING_GITHUB_OAUTH, state)
        if pending is None:
            raise OAuthError("Invalid or expired OAuth state")
        if is_expired(pending.expires_at, now):
            await self._store.delete(pending.id)
            raise OAuthError("OAuth state expired")
        try:
            payload = OAuthStatePayload.model_validate(pending.payload)
        except ValidationError as exc:
            await self._store.delete(pending.id)
            raise OAuthError("Invalid OAuth state") from exc

        try:
            token = await self._exchange_code(code)
        finally:
            await self._store.delete(pending.id)

        await self._users.get_or_create(payload.user_id)
        try:
            await self._users.set_github_token(payload.user_id, token, "oauth")
        except SecretKeyError as exc:
            logger.error("GitHub token encryption key is missing or invalid")
            raise OAuthError("Token storage is not configured on this server") from exc
        username = await self._lookup_username(token)
        if username:
            await self._users.set_github_username(payload.user_id, username)
        logger.info("GitHub OAuth completed: user_id=%s username=%s", payload.user_id, username)
        return payload.user_id

    async def _exchange_code(self, code: str) -> str:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self._web_base_url}/login/oauth/access_token",
                    headers={"Accept": "application/json"},
                    json={
                        "client_id": self._client_id,
                        "client_secret": self._client_secret,
                        "code": code,
                        "redirect_uri": self._redirect_uri,
                    },
                )
        except httpx.TimeoutException as exc:
            raise OAuthError("GitHub did not answer the token exchange in time") from exc
        if response.status_code >= 400:
            raise OAuthError(f"Token exchange failed with HTTP {response.status_code}")
        data = response.json()
        token = data.get("access_token")
        if not token:
            raise OAuthError(data.get("error_description") or "No access token returned")
        return token

    async def _lookup_username(self, token: str) -> str | None:
        client = RestGithubClient(token, transport=self._transport)
        try:
            return await client.get_username()
        except (GithubAPIError, GithubTimeoutError):
            logger.warning("Could not fetch GitHub username after OAuth")
            return None
