from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChatRateLimiter:
    """Sliding window of accepted messages per chat user."""

    def __init__(self, max_requests: int = 5, window_seconds: int = 60) -> None:
        self._max_requests = max_requests
        self._window = timedelta(seconds=window_seconds)
        self._accepted: dict[str, deque[datetime]] = {}

    def _trim(self, user_id: str, now: datetime) -> deque[datetime]:
        stamps = self._accepted.setdefault(user_id, deque())
        while stamps and stamps[0] <= now - self._window:
            stamps.popleft()
        return stamps

    def allow(self, user_id: str, now: datetime | None = None) -> bool:
        now = now or _utcnow()
        stamps = self._trim(user_id, now)
        if len(stamps) >= self._max_requests:
            return False
        stamps.append(now)
        return True

    def retry_after(self, user_id: str, now: datetime | None = None) -> int:
        """Whole seconds until the next message would be accepted; 0 when it already would."""
        now = now or _utcnow()
        stamps = self._trim(user_id, now)
        if len(stamps) < self._max_requests:
            return 0
        return max(1, math.ceil((stamps[0] + self._window - now).total_seconds()))


@dataclass(slots=True)
class CircuitState:
    failures: int = 0
    opened_until: datetime | None = None


class LLMCircuitBreaker:
    def __init__(self, failure_threshold: int = 3, open_seconds: int = 60) -> None:
        self._failure_threshold = failure_threshold
        self._open_for = timedelta(seconds=open_seconds)
        self._state = CircuitState()

    @property
    def failures(self) -> int:
        return self._state.failures

    def is_open(self, now: datetime | None = None) -> bool:
        until = self._state.opened_until
        if until is None:
            return False
        if (now or _utcnow()) >= until:
            # cool-down over; the next call is a trial and one more failure reopens
            self._state.opened_until = None
            self._state.failures = self._failure_threshold - 1
            return False
        return True

    def register_failure(self, now: datetime | None = None) -> None:
        self._state.failures += 1
        if self._state.failures >= self._failure_threshold:
            self._state.opened_until = (now or _utcnow()) + self._open_for

    def register_success(self) -> None:
        self._state = CircuitState()
