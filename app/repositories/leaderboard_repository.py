from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import LeaderboardBoard
from app.models.domain import LeaderboardEntry, Submission, User


class LeaderboardRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def scored_submissions(self, competition_id: int) -> list[tuple]:
        res = await self.db.execute(
            select(
                Submission.participant_id,
                Submission.automated_score,
                Submission.judge_score,
                Submission.submitted_at,
                User.full_name,
            )
            .join(User, User.id == Submission.participant_id)
            .where(Submission.competition_id == competition_id)
        )
        return list(res.all())

    async def replace_board(
        self, competition_id: int, board: LeaderboardBoard, rows: list[LeaderboardEntry]
    ) -> None:
        await self.db.execute(
            delete(LeaderboardEntry).where(
                LeaderboardEntry.competition_id == competition_id,
                LeaderboardEntry.board == board,
            )
        )
        self.db.add_all(rows)
        await self.db.flush()

    async def page(
        self,
        competition_id: int,
        board: LeaderboardBoard,
        limit: int,
        after: tuple[int, UUID] | None = None,
    ) -> list[LeaderboardEntry]:
        query = select(LeaderboardEntry).where(
            LeaderboardEntry.competition_id == competition_id,
            LeaderboardEntry.board == board,
        )
        if after:
            # positions are unique per board; the participant id only identifies the cursor row
            position, _participant_id = after
            query = query.where(LeaderboardEntry.position > position)
        res = await self.db.execute(query.order_by(LeaderboardEntry.position).limit(limit))
        return list(res.scalars().all())

    async def top_participants(self, competition_id: int, top_n: int) -> list[UUID]:
        res = await self.db.execute(
            select(LeaderboardEntry.participant_id)
            .where(
                LeaderboardEntry.competition_id == competition_id,
                LeaderboardEntry.board == LeaderboardBoard.AUTOMATED,
            )
            .order_by(LeaderboardEntry.position)
            .limit(top_n)
        )
        return list(res.scalars().all())
