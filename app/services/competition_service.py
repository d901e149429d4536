from uuid import UUID

import structlog
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.domain import Challenge, Competition
from app.repositories.competition_repository import CompetitionRepository
from app.services.rubric_service import RubricError, validate_rubric
from app.services.scoring_service import challenge_max_score, competition_max_score

logger = structlog.get_logger(__name__)

_PATCH_FIELDS = {
    "title": "title",
    "description": "description",
    "systemPrompt": "system_prompt",
    "startDeadline": "start_deadline",
    "endDeadline": "end_deadline",
    "isActive": "is_active",
    "isLocked": "is_locked",
    "topN": "top_n",
}


class CompetitionService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = CompetitionRepository(db)

    async def get_or_404(self, competition_id: int) -> Competition:
        return await self.repo.get_or_404(competition_id)

    async def list_competitions(self, active_only: bool = False) -> list[dict]:
        rows = await self.repo.list_all(active_only=active_only)
        counts = await self.repo.challenge_counts_bulk([r.id for r in rows])
        return [self.serialize_competition(r, counts.get(r.id, 0)) for r in rows]

    async def get_competition(self, competition_id: int) -> dict:
        row = await self.repo.get_or_404(competition_id)
        challenges = await self.repo.list_challenges(competition_id)
        return self.serialize_competition(row, len(challenges))

    async def create_competition(self, creator_id: UUID, payload: dict) -> dict:
        row = Competition(
            title=payload["title"].strip(),
            description=payload.get("description", ""),
            system_prompt=payload.get("systemPrompt", ""),
            start_deadline=payload["startDeadline"],
            end_deadline=payload["endDeadline"],
            is_active=payload.get("isActive", True),
            top_n=payload.get("topN", 0),
            created_by=creator_id,
        )
        await self.repo.add(row)
        await self.db.commit()
        logger.info("competition_created", competition_id=row.id, created_by=str(creator_id))
        return self.serialize_competition(row, 0)

    async def patch_competition(self, competition_id: int, payload: dict) -> dict:
        row = await self.repo.get_or_404(competition_id)
        for key, attr in _PATCH_FIELDS.items():
            if key in payload and payload[key] is not None:
                setattr(row, attr, payload[key])
        if row.end_deadline <= row.start_deadline:
            raise HTTPException(status_code=400, detail="endDeadline must be after startDeadline")
        if "topN" in payload and payload["topN"] is not None:
            row.leaderboard_stale = True
        await self.db.commit()
        return await self.get_competition(competition_id)

    async def delete_competition(self, competition_id: int) -> None:
        row = await self.repo.get_or_404(competition_id)
        if row.is_locked:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Competition is locked")
        await self.repo.delete(row)
        await self.db.commit()
        logger.info("competition_deleted", competition_id=competition_id)

    async def set_locked(self, competition_id: int, locked: bool) -> dict:
        return await self.patch_competition(competition_id, {"isLocked": locked})

    async def set_active(self, competition_id: int, active: bool) -> dict:
        return await self.patch_competition(competition_id, {"isActive": active})

    async def set_top_n(self, competition_id: int, top_n: int) -> dict:
        return await self.patch_competition(competition_id, {"topN": top_n})

    async def set_judging_complete(self, competition_id: int, complete: bool) -> dict:
        row = await self.repo.get_or_404(competition_id)
        row.judging_complete = complete
        row.leaderboard_stale = True
        if not complete:
            row.has_final_leaderboard = False
        await self.db.commit()
        logger.info("judging_complete_changed", competition_id=competition_id, complete=complete)
        return await self.get_competition(competition_id)

    async def list_challenges(self, competition_id: int) -> list[dict]:
        await self.repo.get_or_404(competition_id)
        rows = await self.repo.list_challenges(competition_id)
        return [self.serialize_challenge(r) for r in rows]

    async def create_challenge(self, competition_id: int, payload: dict) -> dict:
        await self.repo.get_or_404(competition_id)
        rubric = self._validated_rubric(payload.get("rubric"))
        row = Challenge(
            competition_id=competition_id,
            title=payload["title"].strip(),
            problem_statement=payload.get("problemStatement", ""),
            rubric=rubric,
            max_score=challenge_max_score(rubric),
            sort_order=payload.get("sortOrder", 0),
        )
        await self.repo.add_challenge(row)
        await self._refresh_max_score(competition_id)
        await self.db.commit()
        return self.serialize_challenge(row)

    async def patch_challenge(self, competition_id: int, challenge_id: int, payload: dict) -> dict:
        row = await self.repo.get_challenge_or_404(competition_id, challenge_id)
        if payload.get("rubric") is not None:
            rubric = self._validated_rubric(payload["rubric"])
            row.rubric = rubric
            row.max_score = challenge_max_score(rubric)
        if payload.get("title") is not None:
            row.title = payload["title"].strip()
        if payload.get("problemStatement") is not None:
            row.problem_statement = payload["problemStatement"]
        if payload.get("sortOrder") is not None:
            row.sort_order = payload["sortOrder"]
        await self.db.flush()
        await self._refresh_max_score(competition_id)
        await self.db.commit()
        return self.serialize_challenge(row)

    async def recompute_max_score(self, competition_id: int) -> dict:
        await self.repo.get_or_404(competition_id)
        per_challenge = await self._refresh_max_score(competition_id)
        await self.db.commit()
        competition = await self.repo.get_or_404(competition_id)
        logger.info("max_score_recomputed", competition_id=competition_id, max_score=competition.max_score)
        return {"competitionId": competition_id, "maxScore": competition.max_score, "challenges": per_challenge}

    async def _refresh_max_score(self, competition_id: int) -> dict[str, float]:
        competition = await self.repo.get_or_404(competition_id)
        challenges = await self.repo.list_challenges(competition_id)
        per_challenge = {str(c.id): challenge_max_score(c.rubric) for c in challenges}
        competition.max_score = competition_max_score(c.rubric for c in challenges)
        return per_challenge

    def _validated_rubric(self, items) -> list[dict]:
        try:
            return validate_rubric(items)
        except RubricError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    def serialize_competition(self, row: Competition, challenge_count: int) -> dict:
        return {
            "id": row.id,
            "title": row.title,
            "description": row.description,
            "systemPrompt": row.system_prompt,
            "startDeadline": row.start_deadline,
            "endDeadline": row.end_deadline,
            "isActive": row.is_active,
            "isLocked": row.is_locked,
            "topN": row.top_n,
            "maxScore": row.max_score,
            "judgingComplete": row.judging_complete,
            "hasFinalLeaderboard": row.has_final_leaderboard,
            "leaderboardStale": row.leaderboard_stale,
            "leaderboardGeneratedAt": row.leaderboard_generated_at,
            "distributionMode": row.distribution_mode,
            "distributedAt": row.distributed_at,
            "challengeCount": challenge_count,
            "createdAt": row.created_at,
        }

    def serialize_challenge(self, row: Challenge) -> dict:
        return {
            "id": row.id,
            "competitionId": row.competition_id,
            "title": row.title,
            "problemStatement": row.problem_statement,
            "rubric": row.rubric,
            "maxScore": row.max_score,
            "sortOrder": row.sort_order,
            "createdAt": row.created_at,
        }
