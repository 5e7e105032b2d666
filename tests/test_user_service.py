import base64

from assistant.core.crypto import decrypt_secret
from assistant.models.user import User
from assistant.services.user_service import UserService

KEY = base64.b64encode(b"3" * 32).decode()
OTHER_KEY = base64.b64encode(b"4" * 32).decode()


class FakeUserRepo:
    def __init__(self) -> None:
        self.users: dict[str, User] = {}

    async def get(self, user_id: str):
        return self.users.get(user_id)

    async def create(self, user_id: str, timezone_name: str) -> User:
        user = User(user_id=user_id, timezone=timezone_name)
        self.users[user_id] = user
        return user

    async def update(self, user_id: str, **values) -> int:
        user = self.users.get(user_id)
        if user is None:
            return 0
        for key, value in values.items():
            setattr(user, key, value)
        return 1


async def test_get_or_create_uses_valid_timezone_only() -> None:
    repo = FakeUserRepo()
    service = UserService(repo, encryption_key=KEY)

    created = await service.get_or_create("u1", "Not/AZone")
    created_timezone = created.timezone
    updated = await service.get_or_create("u1", "Europe/Berlin")

    assert created_timezone == "Asia/Kolkata"
    assert updated.timezone == "Europe/Berlin"
    assert await service.update_timezone("u1", "Mars/Base") is False
    assert repo.users["u1"].timezone == "Europe/Berlin"


async def test_token_is_stored_encrypted() -> None:
    repo = FakeUserRepo()
    service = UserService(repo, encryption_key=KEY)
    user = await service.get_or_create("u1")

    await service.set_github_token("u1", "ghp_plain", "pat")

    assert user.github_token != "ghp_plain"
    assert decrypt_secret(user.github_token, KEY) == "ghp_plain"
    assert user.github_auth_type == "pat"
    assert service.get_github_token(user) == "ghp_plain"


async def test_token_sealed_with_another_key_reads_as_missing() -> None:
    repo = FakeUserRepo()
    await UserService(repo, encryption_key=OTHER_KEY).get_or_create("u1")
    await UserService(repo, encryption_key=OTHER_KEY).set_github_token("u1", "ghp_plain", "pat")

    service = UserService(repo, encryption_key=KEY)

    assert service.get_github_token(repo.users["u1"]) is None


async def test_disconnect_clears_token_and_username() -> None:
    repo = FakeUserRepo()
    service = UserService(repo, encryption_key=KEY)
    user = await service.get_or_create("u1")
    await service.set_github_token("u1", "gho_x", "oauth")
    await service.set_github_username("u1", "octocat")

    await service.clear_github_token("u1")

    assert (user.github_token, user.github_auth_type, user.github_username) == (None, None, None)
    assert service.get_github_token(user) is None
