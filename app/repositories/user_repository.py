from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import Role
from app.models.domain import User


class UserRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_external_id(self, external_id: str) -> User | None:
        res = await self.db.execute(select(User).where(User.external_id == external_id))
        return res.scalar_one_or_none()

    async def get_by_id(self, user_id: UUID) -> User | None:
        res = await self.db.execute(select(User).where(User.id == user_id))
        return res.scalar_one_or_none()

    async def get_many(self, user_ids: list[UUID]) -> list[User]:
        if not user_ids:
            return []
        res = await self.db.execute(select(User).where(User.id.in_(user_ids)))
        return list(res.scalars().all())

    async def list_by_role(self, role: Role | None = None) -> list[User]:
        query = select(User).order_by(User.created_at, User.id)
        if role is not None:
            query = query.where(User.role == role)
        res = await self.db.execute(query)
        return list(res.scalars().all())

    async def create(self, user: User) -> User:
        self.db.add(user)
        await self.db.flush()
        return user
