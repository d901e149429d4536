from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import db_session, require_admin
from app.core.constants import SubmissionStatus
from app.schemas.common import APIMessage
from app.schemas.competitions import (
    ActiveRequest,
    ChallengeCreateRequest,
    ChallengeOut,
    ChallengePatchRequest,
    CompetitionCreateRequest,
    CompetitionOut,
    CompetitionPatchRequest,
    JudgingCompleteRequest,
    LockRequest,
    MaxScoreOut,
    TopNRequest,
)
from app.schemas.evaluation import EvaluationProgressOut, PauseRequest
from app.schemas.judging import AssignmentMatrixOut, DistributeRequest, DistributionOut, ManualDistributeRequest
from app.schemas.leaderboard import LeaderboardEntryOut, LeaderboardTaskOut
from app.schemas.submissions import AdminSubmissionOut, ReviewRequest, SubmissionPageOut
from app.services.competition_service import CompetitionService
from app.services.distribution_service import DistributionService
from app.services.evaluation_service import EvaluationService
from app.services.export_service import ExportService
from app.services.leaderboard_service import LeaderboardService
from app.services.submission_service import SubmissionService
from app.tasks.tasks import evaluate_competition, rebuild_leaderboard

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/competitions", response_model=CompetitionOut)
async def create_competition(
    payload: CompetitionCreateRequest, user=Depends(require_admin), db: AsyncSession = Depends(db_session)
):
    service = CompetitionService(db)
    return await service.create_competition(user.id, payload.model_dump())


@router.patch("/competitions/{competition_id}", response_model=CompetitionOut)
async def patch_competition(
    competition_id: int,
    payload: CompetitionPatchRequest,
    _=Depends(require_admin),
    db: AsyncSession = Depends(db_session),
):
    service = CompetitionService(db)
    return await service.patch_competition(competition_id, payload.model_dump(exclude_none=True))


@router.delete("/competitions/{competition_id}", response_model=APIMessage)
async def delete_competition(competition_id: int, _=Depends(require_admin), db: AsyncSession = Depends(db_session)):
    service = CompetitionService(db)
    await service.delete_competition(competition_id)
    return APIMessage(message="Competition deleted")


@router.post("/competitions/{competition_id}/lock", response_model=CompetitionOut)
async def lock_competition(
    competition_id: int, payload: LockRequest, _=Depends(require_admin), db: AsyncSession = Depends(db_session)
):
    service = CompetitionService(db)
    return await service.set_locked(competition_id, payload.locked)


@router.post("/competitions/{competition_id}/active", response_model=CompetitionOut)
async def activate_competition(
    competition_id: int, payload: ActiveRequest, _=Depends(require_admin), db: AsyncSession = Depends(db_session)
):
    service = CompetitionService(db)
    return await service.set_active(competition_id, payload.active)


@router.post("/competitions/{competition_id}/top-n", response_model=CompetitionOut)
async def set_top_n(
    competition_id: int, payload: TopNRequest, _=Depends(require_admin), db: AsyncSession = Depends(db_session)
):
    service = CompetitionService(db)
    return await service.set_top_n(competition_id, payload.topN)


@router.post("/competitions/{competition_id}/judging-complete", response_model=CompetitionOut)
async def judging_complete(
    competition_id: int,
    payload: JudgingCompleteRequest,
    _=Depends(require_admin),
    db: AsyncSession = Depends(db_session),
):
    service = CompetitionService(db)
    return await service.set_judging_complete(competition_id, payload.complete)


@router.post("/competitions/{competition_id}/challenges", response_model=ChallengeOut)
async def create_challenge(
    competition_id: int,
    payload: ChallengeCreateRequest,
    _=Depends(require_admin),
    db: AsyncSession = Depends(db_session),
):
    service = CompetitionService(db)
    return await service.create_challenge(competition_id, payload.model_dump())


@router.patch("/competitions/{competition_id}/challenges/{challenge_id}", response_model=ChallengeOut)
async def patch_challenge(
    competition_id: int,
    challenge_id: int,
    payload: ChallengePatchRequest,
    _=Depends(require_admin),
    db: AsyncSession = Depends(db_session),
):
    service = CompetitionService(db)
    return await service.patch_challenge(competition_id, challenge_id, payload.model_dump(exclude_none=True))


@router.post("/competitions/{competition_id}/max-score", response_model=MaxScoreOut)
async def recompute_max_score(competition_id: int, _=Depends(require_admin), db: AsyncSession = Depends(db_session)):
    service = CompetitionService(db)
    return await service.recompute_max_score(competition_id)


@router.get("/competitions/{competition_id}/submissions", response_model=SubmissionPageOut)
async def list_competition_submissions(
    competition_id: int,
    page_size: int = Query(default=50, ge=1, le=500),
    cursor: str | None = None,
    status: SubmissionStatus | None = None,
    _=Depends(require_admin),
    db: AsyncSession = Depends(db_session),
):
    service = SubmissionService(db)
    return await service.list_for_competition(competition_id, page_size, cursor, status)


@router.patch("/submissions/{submission_id}/review", response_model=AdminSubmissionOut)
async def review_submission(
    submission_id: str, payload: ReviewRequest, _=Depends(require_admin), db: AsyncSession = Depends(db_session)
):
    service = SubmissionService(db)
    return await service.review(submission_id, payload.score, payload.notes)


@router.post("/competitions/{competition_id}/evaluation/start", response_model=EvaluationProgressOut)
async def start_evaluation(competition_id: int, user=Depends(require_admin), db: AsyncSession = Depends(db_session)):
    service = EvaluationService(db)
    progress = await service.start(competition_id, user.id)
    task = evaluate_competition.delay(competition_id)
    return {**progress, "taskId": task.id}


@router.post("/competitions/{competition_id}/evaluation/pause", response_model=EvaluationProgressOut)
async def pause_evaluation(
    competition_id: int, payload: PauseRequest, _=Depends(require_admin), db: AsyncSession = Depends(db_session)
):
    service = EvaluationService(db)
    return await service.pause(competition_id, payload.reason)


@router.get("/competitions/{competition_id}/evaluation/progress", response_model=EvaluationProgressOut)
async def evaluation_progress(competition_id: int, _=Depends(require_admin), db: AsyncSession = Depends(db_session)):
    service = EvaluationService(db)
    return await service.progress(competition_id)


@router.post("/competitions/{competition_id}/distribute", response_model=DistributionOut)
async def distribute(
    competition_id: int,
    payload: DistributeRequest,
    _=Depends(require_admin),
    db: AsyncSession = Depends(db_session),
):
    service = DistributionService(db)
    return await service.distribute(
        competition_id,
        judge_ids=payload.judgeIds,
        top_n=payload.topN,
        max_per_challenge=payload.maxPerChallenge,
    )


@router.post("/competitions/{competition_id}/distribute/manual", response_model=DistributionOut)
async def distribute_manual(
    competition_id: int,
    payload: ManualDistributeRequest,
    _=Depends(require_admin),
    db: AsyncSession = Depends(db_session),
):
    service = DistributionService(db)
    return await service.distribute_manual(competition_id, payload.matrix, top_n=payload.topN)


@router.get("/competitions/{competition_id}/assignments", response_model=AssignmentMatrixOut)
async def assignments(competition_id: int, _=Depends(require_admin), db: AsyncSession = Depends(db_session)):
    service = DistributionService(db)
    return await service.current_assignments(competition_id)


@router.post("/competitions/{competition_id}/leaderboard", response_model=list[LeaderboardEntryOut])
async def rebuild_leaderboard_now(
    competition_id: int, _=Depends(require_admin), db: AsyncSession = Depends(db_session)
):
    service = LeaderboardService(db)
    return await service.build(competition_id)


@router.post("/competitions/{competition_id}/leaderboard/async", response_model=LeaderboardTaskOut)
async def rebuild_leaderboard_async(
    competition_id: int, _=Depends(require_admin), db: AsyncSession = Depends(db_session)
):
    service = CompetitionService(db)
    await service.get_or_404(competition_id)
    task = rebuild_leaderboard.delay(competition_id)
    return {"competitionId": competition_id, "taskId": task.id}


@router.get("/export/participants")
async def export_participants(
    competition_id: int | None = None, _=Depends(require_admin), db: AsyncSession = Depends(db_session)
):
    service = ExportService(db)
    body = await service.participants_csv(competition_id)
    filename = f"participants-{competition_id}.csv" if competition_id else "participants.csv"
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/export/submissions")
async def export_submissions(competition_id: int, _=Depends(require_admin), db: AsyncSession = Depends(db_session)):
    service = ExportService(db)
    body = await service.submissions_csv(competition_id)
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=submissions-{competition_id}.csv"},
    )
