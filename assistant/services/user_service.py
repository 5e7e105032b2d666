from __future__ import annotations

import logging
from typing import Protocol

from cryptography.exceptions import InvalidTag

from assistant.core.crypto import SecretKeyError, decrypt_secret, encrypt_secret
from assistant.core.settings import get_settings
from assistant.core.timezones import is_valid_timezone
from assistant.models.user import User

logger = logging.getLogger(__name__)


class UserStore(Protocol):
    async def get(self, user_id: str) -> User | None: ...

    async def create(self, user_id: str, timezone_name: str) -> User: ...

    async def update(self, user_id: str, **values) -> int: ...


class UserService:
    def __init__(self, repository: UserStore, encryption_key: str | None = None) -> None:
        self._repository = repository
        self._encryption_key = encryption_key if encryption_key is not None else get_settings().github_token_encryption_key

    async def get(self, user_id: str) -> User | None:
        return await self._repository.get(user_id)

    async def get_or_create(self, user_id: str, timezone_name: str | None = None) -> User:
        existing = await self._repository.get(user_id)
        if existing is not None:
            if timezone_name and is_valid_timezone(timezone_name) and existing.timezone != timezone_name:
                await self._repository.update(user_id, timezone=timezone_name)
                existing.timezone = timezone_name
            return existing
        default_tz = get_settings().default_timezone
        tz = timezone_name if timezone_name and is_valid_timezone(timezone_name) else default_tz
        return await self._repository.create(user_id, tz)

    async def update_timezone(self, user_id: str, timezone_name: str) -> bool:
        if not is_valid_timezone(timezone_name):
            return False
        await self._repository.update(user_id, timezone=timezone_name)
        return True

    async def set_default_repo(self, user_id: str, repo: str) -> None:
        await self._repository.update(user_id, github_repo=repo)

    async def set_github_token(self, user_id: str, token: str, auth_type: str) -> None:
        sealed = encrypt_secret(token, self._encryption_key)
        await self._repository.update(user_id, github_token=sealed, github_auth_type=auth_type)

    async def clear_github_token(self, user_id: str) -> None:
        await self._repository.update(user_id, github_token=None, github_auth_type=None, github_username=None)

    async def set_github_username(self, user_id: str, username: str) -> None:
        await self._repository.update(user_id, github_username=username)

    def get_github_token(self, user: User) -> str | None:
        """Decrypted token, or None when the user never connected GitHub."""
        if not user.github_token:
            return None
        try:
            return decrypt_secret(user.github_token, self._encryption_key)
        except (InvalidTag, SecretKeyError, ValueError):
            logger.warning("Stored GitHub token could not be decrypted: user_id=%s", user.user_id)
            return None
