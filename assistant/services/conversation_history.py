from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone


@dataclass(slots=True, frozen=True)
class Turn:
    role: str
    content: str
    at: datetime


class ConversationHistory:
    """Per-user ring buffer of recent turns; idle conversations expire as a whole."""

    def __init__(self, max_turns: int = 10, ttl_seconds: int = 3600) -> None:
        self._max_turns = max_turns
        self._ttl = timedelta(seconds=ttl_seconds)
        self._turns: dict[str, deque[Turn]] = {}

    def append(self, user_id: str, role: str, content: str, now: datetime | None = None) -> None:
        now = now or datetime.now(timezone.utc)
        self._purge(now)
        buffer = self._turns.setdefault(user_id, deque(maxlen=self._max_turns))
        buffer.append(Turn(role=role, content=content, at=now))

    def recent(self, user_id: str, now: datetime | None = None) -> list[Turn]:
        now = now or datetime.now(timezone.utc)
        self._expire(user_id, now)
        return list(self._turns.get(user_id, ()))

    def __len__(self) -> int:
        return len(self._turns)

    def clear(self, user_id: str) -> None:
        self._turns.pop(user_id, None)

    def _expire(self, user_id: str, now: datetime) -> None:
        buffer = self._turns.get(user_id)
        if buffer and now - buffer[-1].at > self._ttl:
            del self._turns[user_id]

    def _purge(self, now: datetime) -> None:
        stale = [
            user_id for user_id, buffer in self._turns.items() if not buffer or now - buffer[-1].at > self._ttl
        ]
        for user_id in stale:
            del self._turns[user_id]
