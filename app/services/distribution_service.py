from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID

import structlog
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.constants import DistributionMode, Role
from app.models.domain import Competition, JudgeAssignment, Submission
from app.repositories.competition_repository import CompetitionRepository
from app.repositories.judge_repository import JudgeRepository
from app.repositories.leaderboard_repository import LeaderboardRepository
from app.repositories.submission_repository import SubmissionRepository
from app.repositories.user_repository import UserRepository

logger = structlog.get_logger(__name__)


@dataclass
class AssignmentRecord:
    judge_id: str
    competition_id: str
    submissions_by_challenge: dict[str, list[str]] = field(default_factory=dict)

    @property
    def assigned_counts_by_challenge(self) -> dict[str, int]:
        return {cid: len(ids) for cid, ids in self.submissions_by_challenge.items()}

    @property
    def assigned_count_total(self) -> int:
        return sum(len(ids) for ids in self.submissions_by_challenge.values())

    @property
    def submission_ids(self) -> list[str]:
        return [sid for ids in self.submissions_by_challenge.values() for sid in ids]

    def add(self, challenge_id: str, submission_id: str) -> None:
        self.submissions_by_challenge.setdefault(challenge_id, []).append(submission_id)


@dataclass
class DistributionResult:
    competition_id: str
    assignments: dict[str, AssignmentRecord]
    unassigned_challenges: list[str] = field(default_factory=list)
    # submissions left over because every judge hit the per-challenge cap
    unassigned_submissions: dict[str, list[str]] = field(default_factory=dict)

    @property
    def total_distributed(self) -> int:
        return sum(r.assigned_count_total for r in self.assignments.values())


def _unique(values: Sequence[str]) -> list[str]:
    return list(dict.fromkeys(str(v) for v in values))


def distribute(
    competition_id: str,
    challenges: Sequence[str],
    judges: Sequence[str],
    submissions_per_challenge: Mapping[str, Sequence[str]],
    max_per_challenge: int | None = None,
) -> DistributionResult:
    """Spread every challenge's submissions over the judges.

    Each submission goes to the judge with the fewest assignments so far
    (ties by judge id), which walks the judges round-robin inside a challenge
    while keeping totals within one of each other across challenges. Pure
    function of its inputs: the same inputs give the same records.
    """
    challenge_ids = _unique(challenges)
    judge_ids = sorted(_unique(judges))
    cap = max_per_challenge if max_per_challenge and max_per_challenge > 0 else None

    if not judge_ids:
        return DistributionResult(
            competition_id=str(competition_id),
            assignments={},
            unassigned_challenges=challenge_ids,
        )

    records = {jid: AssignmentRecord(judge_id=jid, competition_id=str(competition_id)) for jid in judge_ids}
    totals = dict.fromkeys(judge_ids, 0)
    overflow: dict[str, list[str]] = {}

    for challenge_id in challenge_ids:
        submission_ids = sorted(_unique(submissions_per_challenge.get(challenge_id, [])))
        per_challenge = dict.fromkeys(judge_ids, 0)
        for submission_id in submission_ids:
            eligible = [jid for jid in judge_ids if cap is None or per_challenge[jid] < cap]
            if not eligible:
                overflow.setdefault(challenge_id, []).append(submission_id)
                continue
            judge_id = min(eligible, key=lambda jid: (totals[jid], jid))
            records[judge_id].add(challenge_id, submission_id)
            totals[judge_id] += 1
            per_challenge[judge_id] += 1

    return DistributionResult(
        competition_id=str(competition_id),
        assignments=records,
        unassigned_submissions=overflow,
    )


def slice_by_matrix(
    competition_id: str,
    matrix: Mapping[str, Mapping[str, int]],
    buckets: Mapping[str, Sequence[str]],
) -> DistributionResult:
    """Hand out consecutive slices of each challenge's sorted pool by explicit counts."""
    records: dict[str, AssignmentRecord] = {}
    leftovers: dict[str, list[str]] = {}
    for challenge_id, per_judge in matrix.items():
        pool = sorted(_unique(buckets.get(str(challenge_id), [])))
        cursor = 0
        for judge_id in sorted(per_judge):
            count = int(per_judge[judge_id] or 0)
            if count <= 0:
                continue
            record = records.setdefault(
                str(judge_id), AssignmentRecord(judge_id=str(judge_id), competition_id=str(competition_id))
            )
            for submission_id in pool[cursor : cursor + count]:
                record.add(str(challenge_id), submission_id)
            cursor += count
        if cursor < len(pool):
            leftovers[str(challenge_id)] = pool[cursor:]
    return DistributionResult(
        competition_id=str(competition_id),
        assignments=records,
        unassigned_submissions=leftovers,
    )


def assignment_matrix(records: Sequence[JudgeAssignment]) -> dict[str, dict[str, int]]:
    matrix: dict[str, dict[str, int]] = {}
    for row in records:
        for challenge_id, ids in (row.submissions_by_challenge or {}).items():
            matrix.setdefault(challenge_id, {})[str(row.judge_id)] = len(ids)
    return matrix


class DistributionService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.settings = get_settings()
        self.competitions = CompetitionRepository(db)
        self.submissions = SubmissionRepository(db)
        self.judges = JudgeRepository(db)
        self.leaderboard = LeaderboardRepository(db)
        self.users = UserRepository(db)

    async def distribute(
        self,
        competition_id: int,
        judge_ids: list[UUID] | None = None,
        top_n: int | None = None,
        max_per_challenge: int | None = None,
    ) -> dict:
        competition = await self.competitions.get_or_404(competition_id)
        effective_top_n = competition.top_n if top_n is None else top_n
        judges = await self._resolve_judges(judge_ids)
        challenges = await self.competitions.list_challenges(competition_id)
        pool = await self._candidate_submissions(competition_id, effective_top_n)

        buckets: dict[str, list[str]] = {}
        for row in pool:
            buckets.setdefault(str(row.challenge_id), []).append(row.id)

        cap = max_per_challenge if max_per_challenge is not None else self.settings.distribution_max_per_challenge
        result = distribute(
            competition_id=str(competition_id),
            challenges=[str(c.id) for c in challenges],
            judges=[str(j) for j in judges],
            submissions_per_challenge=buckets,
            max_per_challenge=cap,
        )
        if not judges:
            logger.warning(
                "distribution_without_judges",
                competition_id=competition_id,
                unassigned_challenges=result.unassigned_challenges,
            )
        # replace semantics hold with no judges too: earlier records are cleared
        await self._persist(competition, result, pool, DistributionMode.AUTO, effective_top_n)
        return self.serialize_result(result, DistributionMode.AUTO, written=True)

    async def distribute_manual(
        self, competition_id: int, matrix: dict[str, dict[str, int]], top_n: int | None = None
    ) -> dict:
        competition = await self.competitions.get_or_404(competition_id)
        effective_top_n = competition.top_n if top_n is None else top_n
        try:
            judge_ids = {UUID(jid) for per_judge in matrix.values() for jid in per_judge}
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid judge id in matrix") from exc
        await self._resolve_judges(sorted(judge_ids))
        pool = await self._candidate_submissions(competition_id, effective_top_n)

        buckets: dict[str, list[str]] = {}
        for row in pool:
            buckets.setdefault(str(row.challenge_id), []).append(row.id)

        result = slice_by_matrix(str(competition_id), matrix, buckets)
        await self._persist(competition, result, pool, DistributionMode.MANUAL, effective_top_n)
        return self.serialize_result(result, DistributionMode.MANUAL, written=True)

    async def current_assignments(self, competition_id: int) -> dict:
        await self.competitions.get_or_404(competition_id)
        rows = await self.judges.list_for_competition(competition_id)
        return {
            "competitionId": competition_id,
            "assignmentMatrix": assignment_matrix(rows),
            "judges": [
                {
                    "judgeId": row.judge_id,
                    "assignedCountTotal": row.assigned_count_total,
                    "reviewedCount": row.reviewed_count,
                    "updatedAt": row.updated_at,
                }
                for row in rows
            ],
        }

    async def _resolve_judges(self, judge_ids: list[UUID] | None) -> list[UUID]:
        if judge_ids is None:
            users = await self.users.list_by_role(Role.JUDGE)
            return [u.id for u in users if u.is_active]
        users = await self.users.get_many(judge_ids)
        found = {u.id for u in users if u.is_active and u.role == Role.JUDGE}
        missing = [str(j) for j in judge_ids if j not in found]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Not active judges: {', '.join(missing)}",
            )
        return list(judge_ids)

    async def _candidate_submissions(self, competition_id: int, top_n: int) -> list[Submission]:
        if top_n and top_n > 0:
            participant_ids = await self.leaderboard.top_participants(competition_id, top_n)
            if not participant_ids:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Generate the automated leaderboard before distributing top-N submissions",
                )
            return await self.submissions.list_for_competition(competition_id, participant_ids=participant_ids)
        return await self.submissions.list_for_competition(competition_id)

    async def _persist(
        self,
        competition: Competition,
        result: DistributionResult,
        pool: list[Submission],
        mode: DistributionMode,
        top_n: int,
    ) -> None:
        judged_by = {row.id: set((row.judges or {}).keys()) for row in pool}
        rows = []
        for judge_id, record in result.assignments.items():
            if record.assigned_count_total == 0:
                continue
            rows.append(
                JudgeAssignment(
                    competition_id=competition.id,
                    judge_id=UUID(judge_id),
                    competition_title=competition.title,
                    assigned_count_total=record.assigned_count_total,
                    assigned_counts_by_challenge=record.assigned_counts_by_challenge,
                    submissions_by_challenge=dict(record.submissions_by_challenge),
                    reviewed_count=sum(1 for sid in record.submission_ids if judge_id in judged_by.get(sid, set())),
                )
            )
        await self.judges.replace_for_competition(competition.id, rows)
        competition.distribution_mode = mode.value
        competition.distributed_at = datetime.now(UTC)
        competition.top_n = top_n
        await self.db.commit()
        logger.info(
            "distribution_completed",
            competition_id=competition.id,
            mode=mode.value,
            judges=len(rows),
            total_distributed=result.total_distributed,
            overflow=sum(len(v) for v in result.unassigned_submissions.values()),
        )

    def serialize_result(self, result: DistributionResult, mode: DistributionMode, written: bool) -> dict:
        return {
            "competitionId": result.competition_id,
            "mode": mode.value,
            "written": written,
            "totalDistributed": result.total_distributed,
            "unassignedChallenges": result.unassigned_challenges,
            "unassignedSubmissions": result.unassigned_submissions,
            "assignments": [
                {
                    "judgeId": record.judge_id,
                    "assignedCountTotal": record.assigned_count_total,
                    "assignedCountsByChallenge": record.assigned_counts_by_challenge,
                    "submissionsByChallenge": record.submissions_by_challenge,
                }
                for record in result.assignments.values()
                if record.assigned_count_total > 0
            ],
        }
