from datetime import datetime

from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from assistant.models.pending_action import PendingAction


class PendingActionRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        user_id: str,
        type: str,
        payload: dict,
        expires_at: datetime | None = None,
        lookup_key: str | None = None,
    ) -> PendingAction:
        stmt = insert(PendingAction).returning(PendingAction)
        result = await self._session.execute(
            stmt,
            {
                "user_id": user_id,
                "type": type,
                "payload": payload,
                "lookup_key": lookup_key,
                "expires_at": expires_at,
            },
        )
        await self._session.commit()
        return result.scalar_one()

    async def get_by_id(self, action_id: int) -> PendingAction | None:
        result = await self._session.execute(select(PendingAction).where(PendingAction.id == action_id))
        return result.scalar_one_or_none()

    async def find_by_type_and_key(self, type: str, key: str) -> PendingAction | None:
        stmt = (
            select(PendingAction)
            .where(PendingAction.type == type, PendingAction.lookup_key == key)
            .order_by(PendingAction.id.desc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def delete(self, action_id: int) -> None:
        await self._session.execute(delete(PendingAction).where(PendingAction.id == action_id))
        await self._session.commit()

    async def claim(self, action_id: int, user_id: str) -> bool:
        """Delete the row if it still exists for this user; True only for the single caller that removed it."""
        stmt = delete(PendingAction).where(PendingAction.id == action_id, PendingAction.user_id == user_id)
        result = await self._session.execute(stmt)
        await self._session.commit()
        return (result.rowcount or 0) == 1

    async def sweep_expired(self, now: datetime) -> int:
        stmt = (
            delete(PendingAction)
            .where(PendingAction.expires_at.is_not(None), PendingAction.expires_at < now)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        await self._session.commit()
        return result.rowcount or 0
