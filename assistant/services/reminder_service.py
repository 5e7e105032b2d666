from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Protocol
from zoneinfo import ZoneInfo

from assistant.core.settings import get_settings
from assistant.core.timezones import ensure_utc, format_local, format_local_short, resolve_timezone
from assistant.models.reminder import Reminder, ReminderKind
from assistant.models.user import User

SNOOZE_CHOICES = (10, 60)


class ReminderError(ValueError):
    pass


def _user_timezone(name: str | None) -> ZoneInfo:
    return resolve_timezone(name, fallback=get_settings().default_timezone)


class ReminderStore(Protocol):
    async def create_one(
        self, *, user_id: str, message: str, remind_at: datetime, kind: ReminderKind | None = None
    ) -> Reminder: ...

    async def list_upcoming(self, user_id: str, now: datetime) -> list[Reminder]: ...

    async def find_active(self, user_id: str, reminder_id: int) -> Reminder | None: ...

    async def find_for_user(self, user_id: str, reminder_id: int) -> Reminder | None: ...

    async def mark_done(self, reminder_id: int) -> int: ...

    async def reschedule(self, reminder_id: int, remind_at: datetime) -> int: ...


@dataclass(slots=True)
class ReminderListItem:
    id: int
    message: str
    remind_at: datetime
    kind: str | None


class ReminderService:
    def __init__(self, repository: ReminderStore) -> None:
        self._repository = repository

    async def create(
        self,
        user: User,
        message: str,
        remind_at: datetime,
        now: datetime | None = None,
    ) -> Reminder:
        now = now or datetime.now(timezone.utc)
        if remind_at.tzinfo is None:
            # classifier times without an offset are wall-clock times in the user's zone
            remind_at = remind_at.replace(tzinfo=_user_timezone(user.timezone))
        remind_at_utc = remind_at.astimezone(timezone.utc)
        if remind_at_utc <= now:
            raise ReminderError("That time is already in the past.")
        text = message.strip()
        if not text:
            raise ReminderError("What should I remind you about?")
        return await self._repository.create_one(
            user_id=user.user_id,
            message=text,
            remind_at=remind_at_utc,
            kind=ReminderKind.reminder,
        )

    async def create_focus_timer(
        self,
        user: User,
        minutes: int,
        message: str = "Focus session",
        now: datetime | None = None,
    ) -> Reminder:
        if minutes < 1:
            raise ReminderError("A focus timer needs at least one minute.")
        now = now or datetime.now(timezone.utc)
        return await self._repository.create_one(
            user_id=user.user_id,
            message=message.strip() or "Focus session",
            remind_at=now + timedelta(minutes=minutes),
            kind=ReminderKind.focus_timer,
        )

    async def list_upcoming(self, user: User, now: datetime | None = None) -> list[ReminderListItem]:
        now = now or datetime.now(timezone.utc)
        rows = await self._repository.list_upcoming(user.user_id, now)
        return [
            ReminderListItem(id=row.id, message=row.message, remind_at=ensure_utc(row.remind_at), kind=row.kind)
            for row in rows
        ]

    async def cancel(self, user_id: str, reminder_id: int) -> bool:
        reminder = await self._repository.find_active(user_id, reminder_id)
        if reminder is None:
            return False
        await self._repository.mark_done(reminder.id)
        return True

    async def snooze(
        self,
        user_id: str,
        reminder_id: int,
        minutes: int = 10,
        now: datetime | None = None,
    ) -> Reminder | None:
        if minutes < 1:
            raise ReminderError("Snooze needs at least one minute.")
        reminder = await self._repository.find_for_user(user_id, reminder_id)
        if reminder is None:
            return None
        now = now or datetime.now(timezone.utc)
        remind_at = now + timedelta(minutes=minutes)
        await self._repository.reschedule(reminder.id, remind_at)
        reminder.remind_at = remind_at
        reminder.is_done = False
        return reminder

    async def mark_done(self, user_id: str, reminder_id: int) -> bool:
        reminder = await self._repository.find_for_user(user_id, reminder_id)
        if reminder is None:
            return False
        await self._repository.mark_done(reminder.id)
        return True


def format_created(reminder: Reminder, timezone_name: str | None) -> str:
    tz = _user_timezone(timezone_name)
    when = format_local(reminder.remind_at, tz)
    if reminder.kind == ReminderKind.focus_timer.value:
        return f"⏳ Focus timer started. I'll ping you at {when}. (#{reminder.id})"
    return f"⏰ Reminder set for {when}: {reminder.message} (#{reminder.id})"


def format_reminder_list(items: list[ReminderListItem], timezone_name: str | None) -> str:
    if not items:
        return "You have no upcoming reminders."
    tz = _user_timezone(timezone_name)
    lines = ["Upcoming reminders:"]
    for idx, item in enumerate(items, start=1):
        label = "⏳" if item.kind == ReminderKind.focus_timer.value else "⏰"
        lines.append(f"{idx}. {label} #{item.id} | {format_local_short(item.remind_at, tz)} | {item.message}")
    lines.append("\nUse /cancel <id> to cancel one.")
    return "\n".join(lines)


def format_delivery(reminder: Reminder) -> str:
    if reminder.kind == ReminderKind.focus_timer.value:
        return f"⏳ Time's up! Focus session finished: {reminder.message}"
    return f"🔔 Reminder: {reminder.message}"


def format_snoozed(reminder: Reminder, minutes: int, timezone_name: str | None) -> str:
    tz = _user_timezone(timezone_name)
    return f"😴 Snoozed for {minutes} min. Next ping at {format_local_short(reminder.remind_at, tz)}."
