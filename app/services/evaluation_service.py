from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from uuid import UUID

import structlog
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.constants import EVENT_EVALUATION_COMPLETED, EvaluationStatus, SubmissionStatus
from app.events.outbox import push_event
from app.integrations.llm.base import LLMUpstreamError, ModelJudge
from app.integrations.llm.factory import get_model_judges, run_judges
from app.models.domain import Challenge, EvaluationProgress, Submission
from app.repositories.competition_repository import CompetitionRepository
from app.repositories.evaluation_repository import EvaluationRepository
from app.repositories.submission_repository import SubmissionRepository
from app.services.rubric_service import is_valid_rubric
from app.services.submission_service import SubmissionService

logger = structlog.get_logger(__name__)

PENDING_STATUSES = [SubmissionStatus.PENDING, SubmissionStatus.FAILED]


def is_stale(progress: EvaluationProgress, max_age_seconds: int, now: datetime | None = None) -> bool:
    now = now or datetime.now(UTC)
    return now - progress.last_update_at > timedelta(seconds=max_age_seconds)


class EvaluationService:
    def __init__(self, db: AsyncSession, judges: Sequence[ModelJudge] | None = None):
        self.db = db
        self.settings = get_settings()
        self.judges = list(judges) if judges is not None else get_model_judges()
        self.repo = EvaluationRepository(db)
        self.submissions = SubmissionRepository(db)
        self.competitions = CompetitionRepository(db)
        self.submission_service = SubmissionService(db)

    async def evaluate_one(self, competition_id: int, submission_id: str) -> dict:
        competition = await self.competitions.get_or_404(competition_id)
        submission = await self.submissions.get(submission_id)
        if not submission or submission.competition_id != competition_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Submission not found")
        challenge = await self.competitions.get_challenge_or_404(competition_id, submission.challenge_id)

        valid_models = await self._score(submission, challenge)
        competition.leaderboard_stale = True
        await self.db.commit()
        return {
            "submission": self.submission_service.serialize_submission(submission),
            "validModels": valid_models,
            "average": submission.automated_score,
        }

    async def start(self, competition_id: int, started_by: UUID) -> dict:
        await self.competitions.get_or_404(competition_id)
        progress = await self.repo.get_progress(competition_id, for_update=True)
        if (
            progress
            and progress.status == EvaluationStatus.RUNNING
            and not is_stale(progress, self.settings.evaluation_stale_lock_seconds)
        ):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Evaluation already running")

        pending = await self.submissions.list_for_competition(competition_id, statuses=PENDING_STATUSES)
        now = datetime.now(UTC)
        if progress is None:
            progress = EvaluationProgress(competition_id=competition_id, status=EvaluationStatus.RUNNING)
            await self.repo.add_progress(progress)
        elif progress.status == EvaluationStatus.RUNNING:
            logger.warning("evaluation_stale_lock_taken_over", competition_id=competition_id)
        progress.status = EvaluationStatus.RUNNING
        progress.total_submissions = len(pending)
        progress.evaluated_submissions = 0
        progress.skipped_submissions = 0
        progress.started_by = started_by
        progress.started_at = now
        progress.last_update_at = now
        progress.pause_reason = None
        await self.db.commit()
        logger.info("evaluation_started", competition_id=competition_id, total=len(pending))
        return self.serialize_progress(progress)

    async def pause(self, competition_id: int, reason: str = "") -> dict:
        progress = await self.repo.get_progress(competition_id, for_update=True)
        if not progress:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No evaluation for this competition")
        if progress.status != EvaluationStatus.RUNNING:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Evaluation is not running")
        progress.status = EvaluationStatus.PAUSED
        progress.pause_reason = reason or "Paused by admin"
        progress.last_update_at = datetime.now(UTC)
        await self.db.commit()
        logger.info("evaluation_paused", competition_id=competition_id)
        return self.serialize_progress(progress)

    async def progress(self, competition_id: int) -> dict:
        progress = await self.repo.get_progress(competition_id)
        if not progress:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No evaluation for this competition")
        return self.serialize_progress(progress)

    async def run_batch(self, competition_id: int) -> dict:
        """Score every pending submission, checking for a pause between batches."""
        progress = await self.repo.get_progress(competition_id)
        if not progress or progress.status != EvaluationStatus.RUNNING:
            return {"competition_id": competition_id, "status": "not_running"}

        pending = await self.submissions.list_for_competition(competition_id, statuses=PENDING_STATUSES)
        challenges = {c.id: c for c in await self.competitions.list_challenges(competition_id)}
        batch_size = max(1, self.settings.evaluation_batch_size)

        for start in range(0, len(pending), batch_size):
            await self.db.refresh(progress)
            if progress.status != EvaluationStatus.RUNNING:
                logger.info("evaluation_halted", competition_id=competition_id, status=progress.status.value)
                return self.serialize_progress(progress)
            for submission in pending[start : start + batch_size]:
                challenge = challenges.get(submission.challenge_id)
                valid_models = await self._score(submission, challenge) if challenge else 0
                if valid_models:
                    progress.evaluated_submissions += 1
                else:
                    progress.skipped_submissions += 1
            progress.last_update_at = datetime.now(UTC)
            await self.db.commit()

        progress.status = EvaluationStatus.COMPLETED
        progress.last_update_at = datetime.now(UTC)
        competition = await self.competitions.get_or_404(competition_id)
        competition.leaderboard_stale = True
        await push_event(
            self.db,
            EVENT_EVALUATION_COMPLETED,
            {
                "competition_id": competition_id,
                "evaluated": progress.evaluated_submissions,
                "skipped": progress.skipped_submissions,
            },
        )
        await self.db.commit()
        logger.info(
            "evaluation_completed",
            competition_id=competition_id,
            evaluated=progress.evaluated_submissions,
            skipped=progress.skipped_submissions,
        )
        return self.serialize_progress(progress)

    async def _score(self, submission: Submission, challenge: Challenge) -> int:
        now = datetime.now(UTC)
        if not is_valid_rubric(challenge.rubric):
            self._fail(submission, "Challenge rubric is invalid", now)
            return 0
        try:
            result = await run_judges(
                self.judges, submission.prompt_text, challenge.rubric, challenge.problem_statement
            )
        except LLMUpstreamError as exc:
            logger.error("evaluation_upstream_failed", submission_id=submission.id, error=str(exc))
            self._fail(submission, str(exc), now)
            return 0
        if not result.models:
            self._fail(submission, "No model produced a valid evaluation", now)
            return 0
        submission.model_scores = result.as_model_scores()
        submission.automated_score = result.average
        submission.status = SubmissionStatus.EVALUATED
        submission.error = None
        submission.evaluated_at = now
        logger.info(
            "submission_evaluated",
            submission_id=submission.id,
            models=len(result.models),
            automated_score=result.average,
        )
        return len(result.models)

    def _fail(self, submission: Submission, error: str, now: datetime) -> None:
        submission.status = SubmissionStatus.FAILED
        submission.error = error
        submission.evaluated_at = now
        logger.warning("submission_evaluation_failed", submission_id=submission.id, error=error)

    def serialize_progress(self, row: EvaluationProgress) -> dict:
        return {
            "competitionId": row.competition_id,
            "status": EvaluationStatus(row.status).value,
            "totalSubmissions": row.total_submissions,
            "evaluatedSubmissions": row.evaluated_submissions,
            "skippedSubmissions": row.skipped_submissions,
            "startedAt": row.started_at,
            "lastUpdateAt": row.last_update_at,
            "pauseReason": row.pause_reason,
        }
