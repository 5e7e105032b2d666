from datetime import datetime, timezone

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from assistant.models.user import User


class UserRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: str) -> User | None:
        result = await self._session.execute(select(User).where(User.user_id == user_id).limit(1))
        return result.scalar_one_or_none()

    async def create(self, user_id: str, timezone_name: str) -> User:
        stmt = insert(User).returning(User)
        result = await self._session.execute(stmt, {"user_id": user_id, "timezone": timezone_name})
        await self._session.commit()
        return result.scalar_one()

    async def update(self, user_id: str, **values) -> int:
        values["updated_at"] = datetime.now(timezone.utc)
        stmt = update(User).where(User.user_id == user_id).values(**values)
        result = await self._session.execute(stmt)
        await self._session.commit()
        return result.rowcount or 0
