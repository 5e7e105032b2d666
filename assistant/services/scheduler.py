from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from assistant.core.settings import get_settings
from assistant.db.session import SessionLocal
from assistant.repositories.automation_repository import AutomationRepository
from assistant.repositories.pending_action_repository import PendingActionRepository
from assistant.repositories.reminder_repository import ReminderRepository
from assistant.repositories.user_repository import UserRepository
from assistant.services.digest_dispatcher import dispatch_digests_with_repository
from assistant.services.messaging import Messenger
from assistant.services.reminder_dispatcher import dispatch_due_with_repository

logger = logging.getLogger(__name__)

SCHEDULER_JOB_ID = "assistant-scheduler-tick"


@dataclass(slots=True)
class TickResult:
    reminders_sent: int = 0
    digests_sent: int = 0
    pending_swept: int = 0


async def run_scheduler_tick(messenger: Messenger, now: datetime | None = None, session_factory=None) -> TickResult:
    """One pass of the delivery loop; each phase fails on its own without stopping the others."""
    now = now or datetime.now(timezone.utc)
    session_factory = session_factory or SessionLocal
    batch_size = get_settings().scheduler_batch_size
    result = TickResult()

    try:
        async with session_factory() as session:
            result.reminders_sent = await dispatch_due_with_repository(
                repository=ReminderRepository(session),
                users=UserRepository(session),
                messenger=messenger,
                now=now,
                batch_size=batch_size,
            )
    except Exception:
        logger.exception("Reminder dispatch phase failed")

    try:
        async with session_factory() as session:
            result.digests_sent = await dispatch_digests_with_repository(
                repository=AutomationRepository(session),
                users=UserRepository(session),
                messenger=messenger,
                now=now,
            )
    except Exception:
        logger.exception("Digest dispatch phase failed")

    try:
        async with session_factory() as session:
            result.pending_swept = await PendingActionRepository(session).sweep_expired(now)
    except Exception:
        logger.exception("Pending action sweep failed")

    if result.reminders_sent or result.digests_sent or result.pending_swept:
        logger.info(
            "Scheduler tick: reminders_sent=%s digests_sent=%s pending_swept=%s",
            result.reminders_sent,
            result.digests_sent,
            result.pending_swept,
        )
    return result
