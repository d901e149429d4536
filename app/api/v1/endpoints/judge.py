from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import db_session, require_judge
from app.core.constants import Role
from app.core.security import authorize
from app.schemas.judging import AssignmentDetailOut, AssignmentSummaryOut, ScoreOut, ScoreSubmitRequest
from app.services.judge_service import JudgeService

router = APIRouter(prefix="/judge", tags=["judge"])


def _ensure_self_or_admin(user, judge_id: UUID) -> None:
    if user.id != judge_id and not authorize(user, [Role.ADMIN]):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")


@router.get("/{judge_id}/assignments", response_model=list[AssignmentSummaryOut])
async def list_assignments(judge_id: UUID, user=Depends(require_judge), db: AsyncSession = Depends(db_session)):
    _ensure_self_or_admin(user, judge_id)
    service = JudgeService(db)
    return await service.list_assignments(judge_id)


@router.get("/{judge_id}/assignments/{competition_id}", response_model=AssignmentDetailOut)
async def get_assignment(
    judge_id: UUID, competition_id: int, user=Depends(require_judge), db: AsyncSession = Depends(db_session)
):
    _ensure_self_or_admin(user, judge_id)
    service = JudgeService(db)
    return await service.get_assignment(judge_id, competition_id)


@router.post("/score/{competition_id}/{submission_id}", response_model=ScoreOut)
async def submit_score(
    competition_id: int,
    submission_id: str,
    payload: ScoreSubmitRequest,
    user=Depends(require_judge),
    db: AsyncSession = Depends(db_session),
):
    service = JudgeService(db)
    return await service.submit_score(
        judge_id=user.id,
        competition_id=competition_id,
        submission_id=submission_id,
        rubric_scores=payload.rubricScores,
        feedback=payload.feedback,
    )


@router.get("/score/{competition_id}/{submission_id}", response_model=ScoreOut | None)
async def get_score(
    competition_id: int, submission_id: str, user=Depends(require_judge), db: AsyncSession = Depends(db_session)
):
    service = JudgeService(db)
    return await service.get_score(user.id, competition_id, submission_id)
