"""Morning job digest: a per-user list of accounts sent once a day at a local time."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from assistant.models.user_automation import MORNING_JOB_DIGEST, UserAutomation

DEFAULT_TIME = "09:00"
_TIME_PATTERN = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*(am|pm)?$")


class DigestTimeError(ValueError):
    pass


class AutomationStore(Protocol):
    async def find(self, user_id: str, type: str) -> UserAutomation | None: ...

    async def upsert(self, user_id: str, type: str, config: dict, enabled: bool) -> UserAutomation: ...

    async def mark_sent(self, automation_id: int, sent_at: datetime) -> int: ...

    async def list_enabled(self, type: str) -> list[UserAutomation]: ...


@dataclass(slots=True)
class DigestConfig:
    time: str = DEFAULT_TIME
    handles: list[str] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: UserAutomation | None) -> DigestConfig:
        raw = (row.config if row is not None else None) or {}
        handles = raw.get("handles")
        return cls(
            time=raw.get("time") or DEFAULT_TIME,
            handles=[normalize_handle(h) for h in handles if normalize_handle(h)] if isinstance(handles, list) else [],
        )

    def to_dict(self) -> dict:
        return {"time": self.time, "handles": list(self.handles)}


def normalize_handle(value: str) -> str:
    trimmed = value.strip().lstrip("@").strip()
    return f"@{trimmed}" if trimmed else ""


def parse_digest_time(value: str) -> str:
    """Accept 9, 9am, 9:30pm, 09:00 and return 24h HH:MM."""
    match = _TIME_PATTERN.match(value.strip().lower())
    if not match:
        raise DigestTimeError("Use a time like 9am, 9:00, or 09:00.")
    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    meridiem = match.group(3)
    if meridiem and not 1 <= hour <= 12:
        raise DigestTimeError("That time doesn't look right. Try e.g. 9am or 09:00.")
    if meridiem == "pm" and hour < 12:
        hour += 12
    elif meridiem == "am" and hour == 12:
        hour = 0
    if hour > 23 or minute > 59:
        raise DigestTimeError("That time doesn't look right. Try e.g. 9am or 09:00.")
    return f"{hour:02d}:{minute:02d}"


def format_digest_message(handles: list[str]) -> str:
    if not handles:
        return (
            "☀️ Good morning!\n\n"
            "Your job list is empty. Add Twitter handles and I'll remind you to reach out every morning."
        )
    lines = "\n".join(f"{idx}. {handle}" for idx, handle in enumerate(handles, start=1))
    return f"☀️ Good morning! Here's your list of accounts to reach out to for jobs today:\n\n{lines}\n\nGo get 'em."


class DigestService:
    def __init__(self, repository: AutomationStore) -> None:
        self._repository = repository

    async def _load(self, user_id: str) -> tuple[UserAutomation | None, DigestConfig]:
        row = await self._repository.find(user_id, MORNING_JOB_DIGEST)
        return row, DigestConfig.from_row(row)

    async def get_state(self, user_id: str) -> str:
        row, config = await self._load(user_id)
        enabled = row.enabled if row is not None else False
        if not config.handles and not enabled:
            return (
                "You don't have a morning job list yet. Say something like:\n"
                '• "Add @recruiter to my morning job list"\n'
                '• "Send me my job list every day at 9am"'
            )
        status = f"on (I'll text you at {config.time})" if enabled else "off"
        handles = ", ".join(config.handles) or "-"
        return (
            f"Morning job list: {status}\nTime: {config.time}\nHandles: {handles}\n\n"
            'Add/remove handles or say "enable/disable morning job digest".'
        )

    async def add_item(self, user_id: str, item: str) -> str:
        handle = normalize_handle(item)
        if not handle:
            return "Give me a Twitter handle (e.g. @someone or someone)."
        row, config = await self._load(user_id)
        if handle.lower() in {h.lower() for h in config.handles}:
            return f"{handle} is already on your list."
        config.handles.append(handle)
        await self._repository.upsert(
            user_id, MORNING_JOB_DIGEST, config.to_dict(), row.enabled if row is not None else True
        )
        return (
            f"Added {handle} to your morning job list. You now have {len(config.handles)} account(s). "
            'Say "send my job list at 9am" to get it every day.'
        )

    async def remove_item(self, user_id: str, item: str) -> str:
        handle = normalize_handle(item)
        if not handle:
            return "Which handle should I remove? (e.g. @someone)"
        row, config = await self._load(user_id)
        if row is None:
            return "You don't have a morning job list yet."
        remaining = [h for h in config.handles if h.lower() != handle.lower()]
        if len(remaining) == len(config.handles):
            return f"{handle} wasn't on your list."
        config.handles = remaining
        await self._repository.upsert(user_id, MORNING_JOB_DIGEST, config.to_dict(), row.enabled)
        return f"Removed {handle}. You have {len(remaining)} account(s) left."

    async def set_time(self, user_id: str, value: str) -> str:
        try:
            time_value = parse_digest_time(value)
        except DigestTimeError as exc:
            return str(exc)
        _, config = await self._load(user_id)
        config.time = time_value
        # a time without the digest switched on would never fire
        await self._repository.upsert(user_id, MORNING_JOB_DIGEST, config.to_dict(), True)
        return f"I'll send your morning job list at {time_value} every day."

    async def set_enabled(self, user_id: str, enabled: bool) -> str:
        _, config = await self._load(user_id)
        await self._repository.upsert(user_id, MORNING_JOB_DIGEST, config.to_dict(), enabled)
        if enabled:
            return f"Morning job digest is on. I'll send your list at {config.time} every day."
        return 'Morning job digest is off. Say "enable morning job digest" to turn it back on.'
