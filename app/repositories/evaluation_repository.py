from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.domain import EvaluationProgress


class EvaluationRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_progress(self, competition_id: int, for_update: bool = False) -> EvaluationProgress | None:
        query = select(EvaluationProgress).where(EvaluationProgress.competition_id == competition_id)
        if for_update:
            query = query.with_for_update()
        res = await self.db.execute(query)
        return res.scalar_one_or_none()

    async def add_progress(self, row: EvaluationProgress) -> EvaluationProgress:
        self.db.add(row)
        await self.db.flush()
        return row
