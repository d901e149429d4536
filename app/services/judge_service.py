from datetime import UTC, datetime
from uuid import UUID

import structlog
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import EVENT_JUDGE_SCORE_SUBMITTED, SubmissionStatus
from app.events.outbox import push_event
from app.models.domain import JudgeAssignment
from app.repositories.competition_repository import CompetitionRepository
from app.repositories.judge_repository import JudgeRepository
from app.repositories.submission_repository import SubmissionRepository
from app.services.scoring_service import bound_criterion_scores, compute_weighted_total, judge_average
from app.services.submission_service import SubmissionService

logger = structlog.get_logger(__name__)


class JudgeService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = JudgeRepository(db)
        self.submissions = SubmissionRepository(db)
        self.competitions = CompetitionRepository(db)
        self.submission_service = SubmissionService(db)

    async def list_assignments(self, judge_id: UUID) -> list[dict]:
        rows = await self.repo.list_for_judge(judge_id)
        return [self.serialize_assignment(r) for r in rows]

    async def get_assignment(self, judge_id: UUID, competition_id: int) -> dict:
        row = await self._assignment_or_404(judge_id, competition_id)
        submissions = await self.submissions.list_by_ids(sorted(row.submission_ids))
        by_id = {s.id: s for s in submissions}
        grouped: dict[str, list[dict]] = {}
        for challenge_id, ids in (row.submissions_by_challenge or {}).items():
            grouped[challenge_id] = [
                self.submission_service.serialize_submission(by_id[sid]) for sid in ids if sid in by_id
            ]
        data = self.serialize_assignment(row)
        data["submissionsByChallenge"] = grouped
        return data

    async def submit_score(
        self,
        judge_id: UUID,
        competition_id: int,
        submission_id: str,
        rubric_scores: dict[str, float],
        feedback: str,
    ) -> dict:
        assignment = await self._assignment_or_404(judge_id, competition_id)
        if submission_id not in assignment.submission_ids:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Submission is not assigned to this judge",
            )
        submission = await self.submissions.get(submission_id)
        if not submission or submission.competition_id != competition_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Submission not found")
        challenge = await self.competitions.get_challenge_or_404(competition_id, submission.challenge_id)

        bounded = bound_criterion_scores(rubric_scores, challenge.rubric)
        total = compute_weighted_total(bounded, challenge.rubric)
        now = datetime.now(UTC)

        judges = dict(submission.judges or {})
        judges[str(judge_id)] = {
            "scores": bounded,
            "totalScore": total,
            "feedback": feedback,
            "updatedAt": now.isoformat(),
        }
        submission.judges = judges
        submission.judge_score = judge_average(judges)
        submission.status = SubmissionStatus.SCORED

        await self.db.flush()
        assignment.reviewed_count = await self._reviewed_count(assignment)
        assignment.updated_at = now

        competition = await self.competitions.get_or_404(competition_id)
        competition.leaderboard_stale = True
        await push_event(
            self.db,
            EVENT_JUDGE_SCORE_SUBMITTED,
            {
                "competition_id": competition_id,
                "submission_id": submission_id,
                "judge_id": str(judge_id),
                "total_score": total,
            },
        )
        await self.db.commit()
        logger.info(
            "judge_score_submitted",
            competition_id=competition_id,
            submission_id=submission_id,
            judge_id=str(judge_id),
            total_score=total,
        )
        return {
            "submissionId": submission_id,
            "judgeId": judge_id,
            "scores": bounded,
            "totalScore": total,
            "feedback": feedback,
            "updatedAt": now,
            "judgeScore": submission.judge_score,
        }

    async def get_score(self, judge_id: UUID, competition_id: int, submission_id: str) -> dict | None:
        submission = await self.submissions.get(submission_id)
        if not submission or submission.competition_id != competition_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Submission not found")
        entry = (submission.judges or {}).get(str(judge_id))
        if not entry:
            return None
        return {
            "submissionId": submission_id,
            "judgeId": judge_id,
            "scores": entry.get("scores", {}),
            "totalScore": entry.get("totalScore", 0.0),
            "feedback": entry.get("feedback", ""),
            "updatedAt": entry.get("updatedAt"),
            "judgeScore": submission.judge_score,
        }

    async def _assignment_or_404(self, judge_id: UUID, competition_id: int) -> JudgeAssignment:
        row = await self.repo.get(competition_id, judge_id)
        if not row:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No assignment for this competition")
        return row

    async def _reviewed_count(self, assignment: JudgeAssignment) -> int:
        rows = await self.submissions.list_by_ids(sorted(assignment.submission_ids))
        judge_key = str(assignment.judge_id)
        return sum(1 for r in rows if judge_key in (r.judges or {}))

    def serialize_assignment(self, row: JudgeAssignment) -> dict:
        return {
            "competitionId": row.competition_id,
            "competitionTitle": row.competition_title,
            "assignedCountTotal": row.assigned_count_total,
            "assignedCountsByChallenge": row.assigned_counts_by_challenge or {},
            "reviewedCount": row.reviewed_count,
            "updatedAt": row.updated_at,
        }
