from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import db_session, get_current_user
from app.core.constants import LeaderboardBoard
from app.schemas.competitions import ChallengeOut, CompetitionOut
from app.schemas.leaderboard import LeaderboardPageOut
from app.services.competition_service import CompetitionService
from app.services.leaderboard_service import LeaderboardService

router = APIRouter(prefix="/competitions", tags=["competitions"])


@router.get("", response_model=list[CompetitionOut])
async def list_competitions(
    active: bool = False, _=Depends(get_current_user), db: AsyncSession = Depends(db_session)
):
    service = CompetitionService(db)
    return await service.list_competitions(active_only=active)


@router.get("/{competition_id}", response_model=CompetitionOut)
async def get_competition(competition_id: int, _=Depends(get_current_user), db: AsyncSession = Depends(db_session)):
    service = CompetitionService(db)
    return await service.get_competition(competition_id)


@router.get("/{competition_id}/challenges", response_model=list[ChallengeOut])
async def list_challenges(competition_id: int, _=Depends(get_current_user), db: AsyncSession = Depends(db_session)):
    service = CompetitionService(db)
    return await service.list_challenges(competition_id)


@router.get("/{competition_id}/leaderboard", response_model=LeaderboardPageOut)
async def get_leaderboard(
    competition_id: int,
    page_size: int = Query(default=50, ge=1, le=500),
    cursor: str | None = None,
    board: LeaderboardBoard = LeaderboardBoard.AUTOMATED,
    _=Depends(get_current_user),
    db: AsyncSession = Depends(db_session),
):
    service = LeaderboardService(db)
    return await service.get_page(competition_id, page_size=page_size, cursor=cursor, board=board)
