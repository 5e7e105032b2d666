from datetime import datetime

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from assistant.models.reminder import Reminder, ReminderKind


class ReminderRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_one(
        self,
        *,
        user_id: str,
        message: str,
        remind_at: datetime,
        kind: ReminderKind | None = None,
    ) -> Reminder:
        stmt = insert(Reminder).returning(Reminder)
        result = await self._session.execute(
            stmt,
            {
                "user_id": user_id,
                "message": message,
                "remind_at": remind_at,
                "is_done": False,
                "kind": kind.value if kind is not None else None,
            },
        )
        await self._session.commit()
        return result.scalar_one()

    async def list_upcoming(self, user_id: str, now: datetime) -> list[Reminder]:
        stmt = (
            select(Reminder)
            .where(Reminder.user_id == user_id, Reminder.is_done.is_(False), Reminder.remind_at >= now)
            .order_by(Reminder.remind_at.asc(), Reminder.id.asc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def find_active(self, user_id: str, reminder_id: int) -> Reminder | None:
        stmt = select(Reminder).where(
            Reminder.id == reminder_id,
            Reminder.user_id == user_id,
            Reminder.is_done.is_(False),
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_for_user(self, user_id: str, reminder_id: int) -> Reminder | None:
        stmt = select(Reminder).where(Reminder.id == reminder_id, Reminder.user_id == user_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_due_pending(self, until_dt: datetime, limit: int = 100) -> list[Reminder]:
        stmt = (
            select(Reminder)
            .where(Reminder.is_done.is_(False), Reminder.remind_at <= until_dt)
            .order_by(Reminder.remind_at.asc(), Reminder.id.asc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def mark_done(self, reminder_id: int) -> int:
        stmt = update(Reminder).where(Reminder.id == reminder_id).values(is_done=True)
        result = await self._session.execute(stmt)
        await self._session.commit()
        return result.rowcount or 0

    async def reschedule(self, reminder_id: int, remind_at: datetime) -> int:
        stmt = update(Reminder).where(Reminder.id == reminder_id).values(remind_at=remind_at, is_done=False)
        result = await self._session.execute(stmt)
        await self._session.commit()
        return result.rowcount or 0

    async def rollback(self) -> None:
        await self._session.rollback()
