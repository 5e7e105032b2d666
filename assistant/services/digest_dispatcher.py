from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Protocol
from zoneinfo import ZoneInfo

from assistant.core.settings import get_settings
from assistant.core.timezones import local_date, local_hhmm, resolve_timezone
from assistant.models.user_automation import MORNING_JOB_DIGEST, UserAutomation
from assistant.services.digest_service import DigestConfig, format_digest_message
from assistant.services.messaging import Messenger
from assistant.services.reminder_dispatcher import UserLookup

logger = logging.getLogger(__name__)


class EnabledDigestRepository(Protocol):
    async def list_enabled(self, type: str) -> list[UserAutomation]: ...

    async def mark_sent(self, automation_id: int, sent_at: datetime) -> int: ...

    async def rollback(self) -> None: ...


def is_digest_due(configured_time: str, last_sent_at: datetime | None, now: datetime, tz: ZoneInfo) -> bool:
    """True only inside the configured local minute and not yet sent on this local date."""
    if local_hhmm(now, tz) != configured_time:
        return False
    if last_sent_at is not None and local_date(last_sent_at, tz) == local_date(now, tz):
        return False
    return True


async def dispatch_digests_with_repository(
    *,
    repository: EnabledDigestRepository,
    users: UserLookup,
    messenger: Messenger,
    now: datetime | None = None,
) -> int:
    now = now or datetime.now(timezone.utc)
    fallback_tz = get_settings().default_timezone
    rows = await repository.list_enabled(MORNING_JOB_DIGEST)

    batch = [(row.id, row.user_id, DigestConfig.from_row(row), row.last_sent_at) for row in rows]

    sent_count = 0
    for automation_id, user_id, config, last_sent_at in batch:
        try:
            user = await users.get(user_id)
            if user is None:
                logger.warning(
                    "Digest owner not found, skipped: automation_id=%s user_id=%s", automation_id, user_id
                )
                continue
            tz = resolve_timezone(user.timezone, fallback=fallback_tz)
            if not is_digest_due(config.time, last_sent_at, now, tz):
                continue
            await messenger.send_message(user_id, format_digest_message(config.handles))
            await repository.mark_sent(automation_id, now)
            sent_count += 1
        except Exception:
            logger.exception("Failed to deliver digest automation_id=%s user_id=%s", automation_id, user_id)
            await repository.rollback()
    return sent_count
