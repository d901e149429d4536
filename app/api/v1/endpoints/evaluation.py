from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import db_session, require_admin
from app.schemas.evaluation import EvaluateOut, EvaluateRequest
from app.services.evaluation_service import EvaluationService

router = APIRouter(tags=["evaluation"])


@router.post("/evaluate", response_model=EvaluateOut)
async def evaluate_submission(
    payload: EvaluateRequest,
    _=Depends(require_admin),
    db: AsyncSession = Depends(db_session),
):
    service = EvaluationService(db)
    return await service.evaluate_one(payload.competitionId, payload.submissionId)
