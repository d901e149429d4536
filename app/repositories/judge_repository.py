from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.domain import JudgeAssignment


class JudgeRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, competition_id: int, judge_id: UUID) -> JudgeAssignment | None:
        res = await self.db.execute(
            select(JudgeAssignment).where(
                JudgeAssignment.competition_id == competition_id,
                JudgeAssignment.judge_id == judge_id,
            )
        )
        return res.scalar_one_or_none()

    async def list_for_judge(self, judge_id: UUID) -> list[JudgeAssignment]:
        res = await self.db.execute(
            select(JudgeAssignment)
            .where(JudgeAssignment.judge_id == judge_id)
            .order_by(JudgeAssignment.updated_at.desc())
        )
        return list(res.scalars().all())

    async def list_for_competition(self, competition_id: int) -> list[JudgeAssignment]:
        res = await self.db.execute(
            select(JudgeAssignment)
            .where(JudgeAssignment.competition_id == competition_id)
            .order_by(JudgeAssignment.judge_id)
        )
        return list(res.scalars().all())

    async def replace_for_competition(self, competition_id: int, rows: list[JudgeAssignment]) -> None:
        # delete then insert inside the caller's transaction
        await self.db.execute(delete(JudgeAssignment).where(JudgeAssignment.competition_id == competition_id))
        self.db.add_all(rows)
        await self.db.flush()
