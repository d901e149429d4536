from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import db_session, get_current_user, require_participant
from app.core.config import get_settings
from app.core.ratelimit import rate_limit
from app.schemas.submissions import SubmissionCheckOut, SubmissionCreateRequest, SubmissionOut
from app.services.submission_service import SubmissionService

router = APIRouter(prefix="/submissions", tags=["submissions"])


@router.post("", response_model=SubmissionOut)
async def create_submission(
    payload: SubmissionCreateRequest,
    user=Depends(require_participant),
    db: AsyncSession = Depends(db_session),
):
    settings = get_settings()
    rate_limit(
        key=f"submit:{user.id}",
        limit=settings.submission_rate_limit,
        window_seconds=settings.submission_rate_window_seconds,
    )
    service = SubmissionService(db)
    return await service.submit(
        participant_id=user.id,
        competition_id=payload.competitionId,
        challenge_id=payload.challengeId,
        prompt_text=payload.promptText,
    )


@router.get("/my", response_model=list[SubmissionOut])
async def my_submissions(
    competition_id: int | None = None,
    user=Depends(get_current_user),
    db: AsyncSession = Depends(db_session),
):
    service = SubmissionService(db)
    return await service.list_my(user.id, competition_id)


@router.get("/check/{competition_id}/{challenge_id}", response_model=SubmissionCheckOut)
async def check_submission(
    competition_id: int,
    challenge_id: int,
    user=Depends(get_current_user),
    db: AsyncSession = Depends(db_session),
):
    service = SubmissionService(db)
    return await service.check(user.id, competition_id, challenge_id)
