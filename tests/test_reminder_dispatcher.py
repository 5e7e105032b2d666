from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

import pytest

from assistant.services.reminder_dispatcher import dispatch_due_with_repository

NOW = datetime(2026, 10, 19, 10, 40, tzinfo=timezone.utc)


@dataclass
class FakeReminder:
    id: int
    user_id: str
    message: str
    kind: str | None = "reminder"
    remind_at: datetime = NOW


@dataclass
class FakeUser:
    user_id: str
    timezone: str = "UTC"


class FakeRepo:
    def __init__(self, items, fail_mark_done_ids=()):
        self.items = items
        self.fail_mark_done_ids = set(fail_mark_done_ids)
        self.done_ids: list[int] = []
        self.rollbacks = 0

    async def list_due_pending(self, until_dt: datetime, limit: int = 100):
        return self.items[:limit]

    async def mark_done(self, reminder_id: int) -> int:
        if reminder_id in self.fail_mark_done_ids:
            raise RuntimeError("database is locked")
        self.done_ids.append(reminder_id)
        return 1

    async def rollback(self) -> None:
        self.rollbacks += 1


class FakeUsers:
    def __init__(self, *user_ids: str) -> None:
        self.users = {user_id: FakeUser(user_id) for user_id in user_ids}

    async def get(self, user_id: str):
        return self.users.get(user_id)


class FakeMessenger:
    def __init__(self, fail_user_id: str | None = None):
        self.fail_user_id = fail_user_id
        self.sent: list[tuple[str, str]] = []

    async def send_message(self, user_id: str, text: str, buttons=None):
        if user_id == self.fail_user_id:
            raise RuntimeError("send failed")
        self.sent.append((user_id, text))


@pytest.mark.asyncio
async def test_dispatch_due_sends_and_marks_done() -> None:
    repo = FakeRepo([FakeReminder(id=1, user_id="42", message="buy milk")])
    messenger = FakeMessenger()

    sent_count = await dispatch_due_with_repository(
        repository=repo, users=FakeUsers("42"), messenger=messenger, now=NOW
    )

    assert sent_count == 1
    assert repo.done_ids == [1]
    assert messenger.sent == [("42", "🔔 Reminder: buy milk")]


@pytest.mark.asyncio
async def test_dispatch_due_leaves_failed_send_pending() -> None:
    repo = FakeRepo([FakeReminder(id=1, user_id="1", message="a"), FakeReminder(id=2, user_id="2", message="b")])
    messenger = FakeMessenger(fail_user_id="1")

    sent_count = await dispatch_due_with_repository(
        repository=repo, users=FakeUsers("1", "2"), messenger=messenger, now=NOW
    )

    assert sent_count == 1
    assert repo.done_ids == [2]
    assert messenger.sent == [("2", "🔔 Reminder: b")]


@pytest.mark.asyncio
async def test_focus_timer_uses_its_own_wording() -> None:
    repo = FakeRepo([FakeReminder(id=3, user_id="7", message="write report", kind="focus_timer")])
    messenger = FakeMessenger()

    await dispatch_due_with_repository(repository=repo, users=FakeUsers("7"), messenger=messenger, now=NOW)

    assert messenger.sent == [("7", "⏳ Time's up! Focus session finished: write report")]


@pytest.mark.asyncio
async def test_missing_owner_is_skipped_without_marking_done() -> None:
    repo = FakeRepo([FakeReminder(id=4, user_id="gone", message="x")])
    messenger = FakeMessenger()

    sent_count = await dispatch_due_with_repository(repository=repo, users=FakeUsers(), messenger=messenger, now=NOW)

    assert sent_count == 0
    assert repo.done_ids == []
    assert messenger.sent == []


@pytest.mark.asyncio
async def test_failed_mark_done_rolls_back_and_batch_continues() -> None:
    repo = FakeRepo(
        [FakeReminder(id=5, user_id="1", message="a"), FakeReminder(id=6, user_id="2", message="b")],
        fail_mark_done_ids={5},
    )
    messenger = FakeMessenger()

    sent_count = await dispatch_due_with_repository(
        repository=repo, users=FakeUsers("1", "2"), messenger=messenger, now=NOW
    )

    assert sent_count == 1
    assert repo.rollbacks == 1
    assert repo.done_ids == [6]
    assert [user_id for user_id, _ in messenger.sent] == ["1", "2"]
