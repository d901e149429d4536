from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.constants import SubmissionStatus
from app.models.domain import CompetitionParticipant, Submission


class SubmissionRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, submission_id: str) -> Submission | None:
        res = await self.db.execute(
            select(Submission).where(Submission.id == submission_id).options(selectinload(Submission.participant))
        )
        return res.scalar_one_or_none()

    async def add(self, row: Submission) -> Submission:
        self.db.add(row)
        await self.db.flush()
        return row

    async def list_for_participant(self, participant_id: UUID, competition_id: int | None = None) -> list[Submission]:
        query = select(Submission).where(Submission.participant_id == participant_id)
        if competition_id is not None:
            query = query.where(Submission.competition_id == competition_id)
        res = await self.db.execute(query.order_by(Submission.submitted_at.desc()))
        return list(res.scalars().all())

    async def list_for_competition(
        self,
        competition_id: int,
        participant_ids: list[UUID] | None = None,
        statuses: list[SubmissionStatus] | None = None,
    ) -> list[Submission]:
        query = select(Submission).where(Submission.competition_id == competition_id)
        if participant_ids is not None:
            query = query.where(Submission.participant_id.in_(participant_ids))
        if statuses:
            query = query.where(Submission.status.in_(statuses))
        res = await self.db.execute(query.order_by(Submission.id))
        return list(res.scalars().all())

    async def list_by_ids(self, submission_ids: list[str]) -> list[Submission]:
        if not submission_ids:
            return []
        res = await self.db.execute(
            select(Submission).where(Submission.id.in_(submission_ids)).order_by(Submission.id)
        )
        return list(res.scalars().all())

    async def page_for_competition(
        self,
        competition_id: int,
        limit: int,
        after_id: str | None = None,
        status: SubmissionStatus | None = None,
    ) -> list[Submission]:
        query = (
            select(Submission)
            .where(Submission.competition_id == competition_id)
            .options(selectinload(Submission.participant))
        )
        if after_id:
            query = query.where(Submission.id > after_id)
        if status:
            query = query.where(Submission.status == status)
        res = await self.db.execute(query.order_by(Submission.id).limit(limit))
        return list(res.scalars().all())

    async def count_for_competition(self, competition_id: int) -> int:
        res = await self.db.execute(
            select(func.count(Submission.id)).where(Submission.competition_id == competition_id)
        )
        return int(res.scalar() or 0)

    async def get_participant(self, competition_id: int, user_id: UUID) -> CompetitionParticipant | None:
        res = await self.db.execute(
            select(CompetitionParticipant).where(
                CompetitionParticipant.competition_id == competition_id,
                CompetitionParticipant.user_id == user_id,
            )
        )
        return res.scalar_one_or_none()

    async def add_participant(self, row: CompetitionParticipant) -> CompetitionParticipant:
        self.db.add(row)
        await self.db.flush()
        return row

    async def list_participants(self, competition_id: int | None = None) -> list[CompetitionParticipant]:
        query = select(CompetitionParticipant).options(selectinload(CompetitionParticipant.user))
        if competition_id is not None:
            query = query.where(CompetitionParticipant.competition_id == competition_id)
        res = await self.db.execute(query.order_by(CompetitionParticipant.joined_at, CompetitionParticipant.id))
        return list(res.scalars().all())
