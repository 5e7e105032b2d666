from datetime import datetime, timezone

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from assistant.models.user_automation import UserAutomation


class AutomationRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find(self, user_id: str, type: str) -> UserAutomation | None:
        stmt = (
            select(UserAutomation)
            .where(UserAutomation.user_id == user_id, UserAutomation.type == type)
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert(self, user_id: str, type: str, config: dict, enabled: bool) -> UserAutomation:
        existing = await self.find(user_id, type)
        now = datetime.now(timezone.utc)
        if existing is not None:
            stmt = (
                update(UserAutomation)
                .where(UserAutomation.id == existing.id)
                .values(config=config, enabled=enabled, updated_at=now)
                .returning(UserAutomation)
            )
            result = await self._session.execute(stmt)
        else:
            stmt = insert(UserAutomation).returning(UserAutomation)
            result = await self._session.execute(
                stmt,
                {
                    "user_id": user_id,
                    "type": type,
                    "config": config,
                    "enabled": enabled,
                    "updated_at": now,
                },
            )
        await self._session.commit()
        return result.scalar_one()

    async def mark_sent(self, automation_id: int, sent_at: datetime) -> int:
        stmt = (
            update(UserAutomation)
            .where(UserAutomation.id == automation_id)
            .values(last_sent_at=sent_at, updated_at=datetime.now(timezone.utc))
        )
        result = await self._session.execute(stmt)
        await self._session.commit()
        return result.rowcount or 0

    async def list_enabled(self, type: str) -> list[UserAutomation]:
        stmt = (
            select(UserAutomation)
            .where(UserAutomation.type == type, UserAutomation.enabled.is_(True))
            .order_by(UserAutomation.id.asc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def rollback(self) -> None:
        await self._session.rollback()
