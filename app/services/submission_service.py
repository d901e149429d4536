import base64
import binascii
from datetime import UTC, datetime
from uuid import UUID

import structlog
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.constants import SubmissionStatus
from app.models.domain import Competition, CompetitionParticipant, Submission
from app.repositories.competition_repository import CompetitionRepository
from app.repositories.submission_repository import SubmissionRepository

logger = structlog.get_logger(__name__)


def submission_key(participant_id: UUID | str, challenge_id: int | str) -> str:
    return f"{participant_id}_{challenge_id}"


def ensure_open(competition: Competition, now: datetime | None = None) -> None:
    now = now or datetime.now(UTC)
    if not competition.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Competition is not active")
    if competition.is_locked:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Competition is locked")
    if now < competition.start_deadline:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Competition has not started")
    if now >= competition.end_deadline:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Submission deadline has passed")


def check_prompt_size(prompt_text: str, max_bytes: int) -> int:
    if not prompt_text or not prompt_text.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="promptText is required")
    size = len(prompt_text.encode("utf-8"))
    if size > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Prompt exceeds {max_bytes} bytes",
        )
    return size


def mark_challenge_completed(participant: CompetitionParticipant, challenge_id: int | str) -> bool:
    """Append to the completed set; returns False when already there."""
    completed = [str(c) for c in participant.completed_challenges or []]
    if str(challenge_id) in completed:
        return False
    participant.completed_challenges = [*completed, str(challenge_id)]
    participant.challenges_completed = len(participant.completed_challenges)
    return True


def encode_page_cursor(submission_id: str) -> str:
    return base64.urlsafe_b64encode(submission_id.encode()).decode().rstrip("=")


def decode_page_cursor(cursor: str) -> str:
    try:
        return base64.urlsafe_b64decode((cursor + "=" * (-len(cursor) % 4)).encode()).decode()
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid cursor") from exc


class SubmissionService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.settings = get_settings()
        self.repo = SubmissionRepository(db)
        self.competitions = CompetitionRepository(db)

    async def submit(self, participant_id: UUID, competition_id: int, challenge_id: int, prompt_text: str) -> dict:
        competition = await self.competitions.get_or_404(competition_id)
        await self.competitions.get_challenge_or_404(competition_id, challenge_id)
        now = datetime.now(UTC)
        ensure_open(competition, now)
        size = check_prompt_size(prompt_text, self.settings.submission_max_bytes)

        key = submission_key(participant_id, challenge_id)
        row = await self.repo.get(key)
        if row is None:
            row = Submission(
                id=key,
                competition_id=competition_id,
                challenge_id=challenge_id,
                participant_id=participant_id,
                prompt_text=prompt_text,
                byte_size=size,
                status=SubmissionStatus.PENDING,
                model_scores={},
                judges={},
                submitted_at=now,
            )
            await self.repo.add(row)
        else:
            # resubmission replaces the prompt and discards stale automated scores
            row.prompt_text = prompt_text
            row.byte_size = size
            row.status = SubmissionStatus.PENDING
            row.model_scores = {}
            row.automated_score = None
            row.error = None
            row.evaluated_at = None
            row.submitted_at = now

        participant = await self.repo.get_participant(competition_id, participant_id)
        if participant is None:
            participant = CompetitionParticipant(
                competition_id=competition_id,
                user_id=participant_id,
                completed_challenges=[],
                challenges_completed=0,
                joined_at=now,
            )
            await self.repo.add_participant(participant)
        mark_challenge_completed(participant, challenge_id)
        participant.last_submission_at = now
        competition.leaderboard_stale = True

        await self.db.commit()
        logger.info(
            "submission_received",
            submission_id=key,
            competition_id=competition_id,
            byte_size=size,
        )
        return self.serialize_submission(row)

    async def list_my(self, participant_id: UUID, competition_id: int | None = None) -> list[dict]:
        rows = await self.repo.list_for_participant(participant_id, competition_id)
        return [self.serialize_submission(r) for r in rows]

    async def check(self, participant_id: UUID, competition_id: int, challenge_id: int) -> dict:
        row = await self.repo.get(submission_key(participant_id, challenge_id))
        if row is None or row.competition_id != competition_id:
            return {"submitted": False, "submission": None}
        return {"submitted": True, "submission": self.serialize_submission(row)}

    async def list_for_competition(
        self,
        competition_id: int,
        page_size: int,
        cursor: str | None = None,
        status_filter: SubmissionStatus | None = None,
    ) -> dict:
        await self.competitions.get_or_404(competition_id)
        after_id = decode_page_cursor(cursor) if cursor else None
        rows = await self.repo.page_for_competition(competition_id, page_size + 1, after_id, status_filter)
        has_more = len(rows) > page_size
        rows = rows[:page_size]
        return {
            "items": [self.serialize_admin(r) for r in rows],
            "nextCursor": encode_page_cursor(rows[-1].id) if has_more and rows else None,
            "total": await self.repo.count_for_competition(competition_id),
        }

    async def review(self, submission_id: str, score: float, notes: str) -> dict:
        row = await self.repo.get(submission_id)
        if not row:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Submission not found")
        row.manual_review_score = round(float(score), 2)
        row.manual_review_notes = notes
        row.status = SubmissionStatus.SELECTED_FOR_MANUAL_REVIEW
        await self.db.commit()
        logger.info("submission_reviewed", submission_id=submission_id)
        return self.serialize_admin(row)

    def serialize_submission(self, row: Submission) -> dict:
        return {
            "id": row.id,
            "competitionId": row.competition_id,
            "challengeId": row.challenge_id,
            "participantId": row.participant_id,
            "promptText": row.prompt_text,
            "byteSize": row.byte_size,
            "status": SubmissionStatus(row.status).value,
            "modelScores": row.model_scores or {},
            "automatedScore": row.automated_score,
            "judgeScore": row.judge_score,
            "manualReviewScore": row.manual_review_score,
            "manualReviewNotes": row.manual_review_notes,
            "error": row.error,
            "submittedAt": row.submitted_at,
            "evaluatedAt": row.evaluated_at,
        }

    def serialize_admin(self, row: Submission) -> dict:
        data = self.serialize_submission(row)
        participant = row.participant
        data["participantName"] = participant.full_name if participant else ""
        data["participantEmail"] = participant.email if participant else ""
        data["judges"] = row.judges or {}
        return data
