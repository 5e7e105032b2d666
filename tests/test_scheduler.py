from datetime import datetime, timedelta, timezone

from assistant.models.pending_action import PENDING_GITHUB
from assistant.models.user_automation import MORNING_JOB_DIGEST
from assistant.repositories.automation_repository import AutomationRepository
from assistant.repositories.pending_action_repository import PendingActionRepository
from assistant.repositories.reminder_repository import ReminderRepository
from assistant.repositories.user_repository import UserRepository
from assistant.services.scheduler import run_scheduler_tick


class FlakyMessenger:
    def __init__(self, failures: int = 0) -> None:
        self.failures = failures
        self.sent: list[tuple[str, str, list | None]] = []

    async def send_message(self, user_id: str, text: str, buttons=None) -> None:
        if self.failures:
            self.failures -= 1
            raise RuntimeError("telegram is down")
        self.sent.append((user_id, text, buttons))


async def test_failed_reminder_send_is_retried_on_next_tick(session_factory) -> None:
    now = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
    async with session_factory() as session:
        await UserRepository(session).create("100", "UTC")
        reminder = await ReminderRepository(session).create_one(
            user_id="100", message="call mom", remind_at=now - timedelta(seconds=5)
        )
    messenger = FlakyMessenger(failures=1)

    first = await run_scheduler_tick(messenger, now=now, session_factory=session_factory)
    assert first.reminders_sent == 0
    async with session_factory() as session:
        assert (await ReminderRepository(session).find_for_user("100", reminder.id)).is_done is False

    second = await run_scheduler_tick(messenger, now=now + timedelta(seconds=30), session_factory=session_factory)
    third = await run_scheduler_tick(messenger, now=now + timedelta(seconds=60), session_factory=session_factory)

    assert second.reminders_sent == 1
    assert third.reminders_sent == 0
    assert [text for _, text, _ in messenger.sent] == ["🔔 Reminder: call mom"]
    buttons = messenger.sent[0][2]
    assert [button.callback_data for row in buttons for button in row] == [
        f"snooze_{reminder.id}_10",
        f"snooze_{reminder.id}_60",
        f"done_{reminder.id}",
    ]
    async with session_factory() as session:
        assert (await ReminderRepository(session).find_for_user("100", reminder.id)).is_done is True


async def test_reminder_for_missing_user_does_not_block_others(session_factory) -> None:
    now = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
    async with session_factory() as session:
        await UserRepository(session).create("200", "UTC")
        reminders = ReminderRepository(session)
        orphan = await reminders.create_one(user_id="ghost", message="orphan", remind_at=now - timedelta(minutes=2))
        await reminders.create_one(user_id="200", message="water plants", remind_at=now - timedelta(minutes=1))
    messenger = FlakyMessenger()

    result = await run_scheduler_tick(messenger, now=now, session_factory=session_factory)

    assert result.reminders_sent == 1
    assert messenger.sent[0][:2] == ("200", "🔔 Reminder: water plants")
    async with session_factory() as session:
        assert (await ReminderRepository(session).find_for_user("ghost", orphan.id)).is_done is False


async def test_digest_is_sent_once_per_local_day(session_factory) -> None:
    # Asia/Kolkata is UTC+05:30, so 09:00 local is 03:30 UTC
    async with session_factory() as session:
        await UserRepository(session).create("300", "Asia/Kolkata")
        await AutomationRepository(session).upsert(
            "300", MORNING_JOB_DIGEST, {"time": "09:00", "handles": ["@alice", "@bob"]}, True
        )
    messenger = FlakyMessenger()
    day1 = datetime(2026, 10, 19, 3, 30, 5, tzinfo=timezone.utc)

    first = await run_scheduler_tick(messenger, now=day1, session_factory=session_factory)
    same_minute = await run_scheduler_tick(messenger, now=day1 + timedelta(seconds=30), session_factory=session_factory)
    next_day = await run_scheduler_tick(messenger, now=day1 + timedelta(days=1), session_factory=session_factory)

    assert (first.digests_sent, same_minute.digests_sent, next_day.digests_sent) == (1, 0, 1)
    assert len(messenger.sent) == 2
    assert "1. @alice\n2. @bob" in messenger.sent[0][1]
    async with session_factory() as session:
        row = await AutomationRepository(session).find("300", MORNING_JOB_DIGEST)
        assert row.last_sent_at.replace(tzinfo=timezone.utc) == day1 + timedelta(days=1)


async def test_digest_outside_configured_minute_is_not_sent(session_factory) -> None:
    async with session_factory() as session:
        await UserRepository(session).create("400", "UTC")
        await AutomationRepository(session).upsert("400", MORNING_JOB_DIGEST, {"time": "09:00", "handles": []}, True)
    messenger = FlakyMessenger()

    result = await run_scheduler_tick(
        messenger, now=datetime(2026, 10, 19, 9, 1, tzinfo=timezone.utc), session_factory=session_factory
    )

    assert result.digests_sent == 0
    assert messenger.sent == []


async def test_tick_sweeps_expired_pending_actions(session_factory) -> None:
    now = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
    async with session_factory() as session:
        pending = PendingActionRepository(session)
        stale = await pending.create(user_id="1", type=PENDING_GITHUB, payload={}, expires_at=now - timedelta(hours=1))
        fresh = await pending.create(user_id="1", type=PENDING_GITHUB, payload={}, expires_at=now + timedelta(hours=1))

    result = await run_scheduler_tick(FlakyMessenger(), now=now, session_factory=session_factory)

    assert result.pending_swept == 1
    async with session_factory() as session:
        pending = PendingActionRepository(session)
        assert await pending.get_by_id(stale.id) is None
        assert await pending.get_by_id(fresh.id) is not None
