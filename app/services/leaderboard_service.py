import base64
import binascii
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

import structlog
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import LeaderboardBoard
from app.models.domain import LeaderboardEntry
from app.repositories.competition_repository import CompetitionRepository
from app.repositories.leaderboard_repository import LeaderboardRepository

logger = structlog.get_logger(__name__)

_LATEST = datetime.max.replace(tzinfo=UTC)


@dataclass
class ScoredSubmission:
    participant_id: str
    automated_score: float | None
    judge_score: float | None
    submitted_at: datetime | None
    full_name: str = ""


@dataclass
class ParticipantTotals:
    participant_id: str
    automated_score: float
    judge_score: float | None
    first_submitted_at: datetime | None
    full_name: str = ""


@dataclass
class RankedEntry:
    participant_id: str
    rank: int
    automated_score: float
    judge_score: float | None
    final_score: float
    first_submitted_at: datetime | None
    full_name: str = ""


def aggregate_participants(rows: Iterable[ScoredSubmission]) -> list[ParticipantTotals]:
    """Sum automated and judge scores per participant.

    Only participants with at least one scored submission are kept. The judge
    score stays None until some submission of the participant is judged.
    """
    totals: dict[str, ParticipantTotals] = {}
    for row in rows:
        if row.automated_score is None and row.judge_score is None:
            continue
        current = totals.get(row.participant_id)
        if current is None:
            current = ParticipantTotals(
                participant_id=row.participant_id,
                automated_score=0.0,
                judge_score=None,
                first_submitted_at=row.submitted_at,
                full_name=row.full_name,
            )
            totals[row.participant_id] = current
        if row.automated_score is not None:
            current.automated_score = round(current.automated_score + float(row.automated_score), 2)
        if row.judge_score is not None:
            current.judge_score = round((current.judge_score or 0.0) + float(row.judge_score), 2)
        if row.submitted_at is not None and (
            current.first_submitted_at is None or row.submitted_at < current.first_submitted_at
        ):
            current.first_submitted_at = row.submitted_at
    return list(totals.values())


def _tie_key(item: ParticipantTotals) -> tuple[datetime, str]:
    first = item.first_submitted_at
    if first is not None and first.tzinfo is None:
        first = first.replace(tzinfo=UTC)
    return (first or _LATEST, item.participant_id)


def final_score(item: ParticipantTotals) -> float:
    # unjudged participants keep their automated score
    return round(item.automated_score + (item.judge_score or 0.0), 2)


def dense_rank(items: list[tuple[ParticipantTotals, float]]) -> list[RankedEntry]:
    """Assign 1-based dense ranks to (totals, score) pairs already sorted by score."""
    ranked: list[RankedEntry] = []
    rank = 0
    previous = None
    for totals, score in items:
        if previous is None or score != previous:
            rank += 1
            previous = score
        ranked.append(
            RankedEntry(
                participant_id=totals.participant_id,
                rank=rank,
                automated_score=totals.automated_score,
                judge_score=totals.judge_score,
                final_score=score,
                first_submitted_at=totals.first_submitted_at,
                full_name=totals.full_name,
            )
        )
    return ranked


def rank_automated(totals: list[ParticipantTotals]) -> list[RankedEntry]:
    ordered = sorted(totals, key=lambda t: (-t.automated_score, *_tie_key(t)))
    return dense_rank([(t, t.automated_score) for t in ordered])


def rank_final(totals: list[ParticipantTotals]) -> list[RankedEntry]:
    """Final board: automated score plus judge score, unjudged judge scores counting as 0."""
    ordered = sorted(totals, key=lambda t: (-final_score(t), *_tie_key(t)))
    return dense_rank([(t, final_score(t)) for t in ordered])


def judging_is_complete(automated_board: list[RankedEntry], top_n: int) -> bool:
    """True once every participant in the automated top-N holds a judge score."""
    if not top_n or top_n <= 0:
        return False
    top = automated_board[:top_n]
    return bool(top) and all(e.judge_score is not None for e in top)


def encode_cursor(position: int, participant_id: str) -> str:
    raw = f"{position}:{participant_id}".encode()
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


def decode_cursor(cursor: str) -> tuple[int, str]:
    try:
        padded = cursor + "=" * (-len(cursor) % 4)
        position, participant_id = base64.urlsafe_b64decode(padded.encode()).decode().split(":", 1)
        return int(position), participant_id
    except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
        raise ValueError("Malformed cursor") from exc


class LeaderboardService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.competitions = CompetitionRepository(db)
        self.repo = LeaderboardRepository(db)

    async def build(self, competition_id: int) -> list[dict]:
        competition = await self.competitions.get_or_404(competition_id)
        rows = await self.repo.scored_submissions(competition_id)
        totals = aggregate_participants(
            ScoredSubmission(
                participant_id=str(participant_id),
                automated_score=automated,
                judge_score=judge,
                submitted_at=submitted_at,
                full_name=full_name or "",
            )
            for participant_id, automated, judge, submitted_at, full_name in rows
        )
        now = datetime.now(UTC)

        automated_board = rank_automated(totals)
        await self.repo.replace_board(
            competition_id,
            LeaderboardBoard.AUTOMATED,
            self._to_rows(competition_id, LeaderboardBoard.AUTOMATED, automated_board, now),
        )
        result = automated_board
        complete = competition.judging_complete or judging_is_complete(automated_board, competition.top_n)
        if complete:
            final_board = rank_final(totals)
            await self.repo.replace_board(
                competition_id,
                LeaderboardBoard.FINAL,
                self._to_rows(competition_id, LeaderboardBoard.FINAL, final_board, now),
            )
            competition.has_final_leaderboard = True
            result = final_board

        competition.leaderboard_stale = False
        competition.leaderboard_generated_at = now
        await self.db.commit()
        logger.info(
            "leaderboard_built",
            competition_id=competition_id,
            participants=len(totals),
            final=complete,
        )
        return [self.serialize_entry(e) for e in result]

    async def get_page(
        self,
        competition_id: int,
        page_size: int,
        cursor: str | None = None,
        board: LeaderboardBoard = LeaderboardBoard.AUTOMATED,
    ) -> dict:
        competition = await self.competitions.get_or_404(competition_id)
        if board == LeaderboardBoard.FINAL and not competition.has_final_leaderboard:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Final leaderboard is available once judging is complete",
            )
        after: tuple[int, UUID] | None = None
        if cursor:
            try:
                position, participant_id = decode_cursor(cursor)
                after = (position, UUID(participant_id))
            except ValueError as exc:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid cursor") from exc

        rows = await self.repo.page(competition_id, board, page_size + 1, after)
        has_more = len(rows) > page_size
        rows = rows[:page_size]
        next_cursor = encode_cursor(rows[-1].position, str(rows[-1].participant_id)) if has_more and rows else None
        return {
            "competitionId": competition_id,
            "board": board.value,
            "generatedAt": competition.leaderboard_generated_at,
            "stale": competition.leaderboard_stale,
            "entries": [self.serialize_entry(r) for r in rows],
            "nextCursor": next_cursor,
        }

    def _to_rows(
        self, competition_id: int, board: LeaderboardBoard, entries: list[RankedEntry], now: datetime
    ) -> list[LeaderboardEntry]:
        # position keeps the built order, tie-breaks included, for paging
        return [
            LeaderboardEntry(
                competition_id=competition_id,
                board=board,
                participant_id=UUID(e.participant_id),
                position=position,
                rank=e.rank,
                automated_score=e.automated_score,
                judge_score=e.judge_score,
                final_score=e.final_score,
                first_submitted_at=e.first_submitted_at,
                full_name=e.full_name,
                generated_at=now,
            )
            for position, e in enumerate(entries, start=1)
        ]

    def serialize_entry(self, entry: RankedEntry | LeaderboardEntry) -> dict:
        return {
            "rank": entry.rank,
            "participantId": str(entry.participant_id),
            "fullName": entry.full_name,
            "automatedScore": entry.automated_score,
            "judgeScore": entry.judge_score,
            "finalScore": entry.final_score,
            "firstSubmittedAt": entry.first_submitted_at,
        }
