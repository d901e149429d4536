from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.domain import Challenge, Competition


class CompetitionRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_all(self, active_only: bool = False) -> list[Competition]:
        query = select(Competition).order_by(Competition.start_deadline.desc(), Competition.id.desc())
        if active_only:
            query = query.where(Competition.is_active.is_(True))
        res = await self.db.execute(query)
        return list(res.scalars().all())

    async def get(self, competition_id: int) -> Competition | None:
        res = await self.db.execute(select(Competition).where(Competition.id == competition_id))
        return res.scalar_one_or_none()

    async def get_or_404(self, competition_id: int) -> Competition:
        row = await self.get(competition_id)
        if not row:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Competition not found")
        return row

    async def add(self, row: Competition) -> Competition:
        self.db.add(row)
        await self.db.flush()
        return row

    async def delete(self, row: Competition) -> None:
        await self.db.delete(row)

    async def list_challenges(self, competition_id: int) -> list[Challenge]:
        res = await self.db.execute(
            select(Challenge)
            .where(Challenge.competition_id == competition_id)
            .order_by(Challenge.sort_order, Challenge.id)
        )
        return list(res.scalars().all())

    async def get_challenge(self, competition_id: int, challenge_id: int) -> Challenge | None:
        res = await self.db.execute(
            select(Challenge).where(Challenge.id == challenge_id, Challenge.competition_id == competition_id)
        )
        return res.scalar_one_or_none()

    async def get_challenge_or_404(self, competition_id: int, challenge_id: int) -> Challenge:
        row = await self.get_challenge(competition_id, challenge_id)
        if not row:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Challenge not found")
        return row

    async def add_challenge(self, row: Challenge) -> Challenge:
        self.db.add(row)
        await self.db.flush()
        return row

    async def challenge_counts_bulk(self, competition_ids: list[int]) -> dict[int, int]:
        if not competition_ids:
            return {}
        res = await self.db.execute(
            select(Challenge.competition_id, func.count(Challenge.id))
            .where(Challenge.competition_id.in_(competition_ids))
            .group_by(Challenge.competition_id)
        )
        return {int(competition_id): int(count) for competition_id, count in res.all()}
