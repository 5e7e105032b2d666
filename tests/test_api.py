from datetime import datetime, timezone

from fastapi.testclient import TestClient

from assistant.api import routes
from assistant.main import create_app
from assistant.services.messaging import Reply


class StubGithubService:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str, int]] = []

    async def confirm(self, user_id: str, action_id: int, now=None) -> Reply:
        self.calls.append(("confirm", user_id, action_id))
        return Reply("✅ Issue #1 created: https://github.com/acme/widgets/issues/1")

    async def cancel(self, user_id: str, action_id: int) -> Reply:
        self.calls.append(("cancel", user_id, action_id))
        return Reply("Canceled.")


class StubReminder:
    remind_at = datetime(2026, 10, 19, 10, 0, tzinfo=timezone.utc)


class StubReminderService:
    def __init__(self, known_id: int) -> None:
        self.known_id = known_id

    async def snooze(self, user_id: str, reminder_id: int, minutes: int = 10, now=None):
        return StubReminder() if reminder_id == self.known_id else None

    async def mark_done(self, user_id: str, reminder_id: int) -> bool:
        return reminder_id == self.known_id


class StubOAuthService:
    configured = False


def test_healthcheck() -> None:
    app = create_app()
    with TestClient(app) as client:
        response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_webhook_requires_secret() -> None:
    app = create_app()
    with TestClient(app) as client:
        response = client.post(routes.settings.telegram_webhook_path, json={})

    assert response.status_code == 401


def test_webhook_without_bot_is_unavailable() -> None:
    app = create_app()
    with TestClient(app) as client:
        response = client.post(
            routes.settings.telegram_webhook_path,
            json={},
            headers={"X-Telegram-Bot-Api-Secret-Token": routes.settings.telegram_webhook_secret},
        )

    assert response.status_code == 503


def test_confirm_and_cancel_routes() -> None:
    app = create_app()
    service = StubGithubService()
    app.dependency_overrides[routes.get_github_service] = lambda: service
    with TestClient(app) as client:
        confirmed = client.post("/github/confirm", json={"user_id": "u1", "action_id": 5})
        canceled = client.post("/github/cancel", json={"user_id": "u1", "action_id": 6})
        invalid = client.post("/github/confirm", json={"user_id": "u1"})

    assert confirmed.json() == {"message": "✅ Issue #1 created: https://github.com/acme/widgets/issues/1"}
    assert canceled.json() == {"message": "Canceled."}
    assert invalid.status_code == 422
    assert service.calls == [("confirm", "u1", 5), ("cancel", "u1", 6)]


def test_reminder_routes() -> None:
    app = create_app()
    app.dependency_overrides[routes.get_reminder_service] = lambda: StubReminderService(known_id=3)
    with TestClient(app) as client:
        snoozed = client.post("/reminders/snooze", json={"user_id": "u1", "reminder_id": 3, "minutes": 60})
        missing = client.post("/reminders/snooze", json={"user_id": "u1", "reminder_id": 4})
        done = client.post("/reminders/done", json={"user_id": "u1", "reminder_id": 3})
        done_missing = client.post("/reminders/done", json={"user_id": "u1", "reminder_id": 4})

    assert snoozed.json() == {"ok": True, "remind_at": "2026-10-19T10:00:00+00:00"}
    assert missing.status_code == 404
    assert done.json() == {"ok": True}
    assert done_missing.status_code == 404


def test_oauth_routes_when_not_configured() -> None:
    app = create_app()
    app.dependency_overrides[routes.get_oauth_service] = lambda: StubOAuthService()
    with TestClient(app) as client:
        start = client.get("/github/oauth/start", params={"user_id": "u1"}, follow_redirects=False)
        callback = client.get("/github/oauth/callback", params={"code": "abc"})

    assert start.status_code == 503
    assert callback.status_code == 400
