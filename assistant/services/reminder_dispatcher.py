from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Protocol

from assistant.models.reminder import Reminder
from assistant.models.user import User
from assistant.services.messaging import Messenger, reminder_buttons
from assistant.services.reminder_service import format_delivery

logger = logging.getLogger(__name__)


class DueReminderRepository(Protocol):
    async def list_due_pending(self, until_dt: datetime, limit: int = 100) -> list[Reminder]: ...

    async def mark_done(self, reminder_id: int) -> int: ...

    async def rollback(self) -> None: ...


class UserLookup(Protocol):
    async def get(self, user_id: str) -> User | None: ...


async def dispatch_due_with_repository(
    *,
    repository: DueReminderRepository,
    users: UserLookup,
    messenger: Messenger,
    now: datetime | None = None,
    batch_size: int = 100,
) -> int:
    now = now or datetime.now(timezone.utc)
    due_items = await repository.list_due_pending(until_dt=now, limit=batch_size)
    if not due_items:
        return 0

    # plain values up front: a rollback expires every row loaded by the session
    batch = [(item.id, item.user_id, format_delivery(item)) for item in due_items]

    sent_count = 0
    for reminder_id, user_id, text in batch:
        try:
            user = await users.get(user_id)
            if user is None:
                logger.warning("Reminder owner not found, skipped: id=%s user_id=%s", reminder_id, user_id)
                continue
            await messenger.send_message(user_id, text, reminder_buttons(reminder_id))
            # only after a successful send; a failed send stays due for the next tick
            await repository.mark_done(reminder_id)
            sent_count += 1
        except Exception:
            logger.exception("Failed to deliver reminder id=%s user_id=%s", reminder_id, user_id)
            # a failed statement leaves the shared session unusable for the rest of the batch
            await repository.rollback()
    return sent_count
