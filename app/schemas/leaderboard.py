from datetime import datetime

from pydantic import BaseModel


class LeaderboardEntryOut(BaseModel):
    rank: int
    participantId: str
    fullName: str
    automatedScore: float
    judgeScore: float | None
    finalScore: float
    firstSubmittedAt: datetime | None


class LeaderboardPageOut(BaseModel):
    competitionId: int
    board: str
    generatedAt: datetime | None
    stale: bool
    entries: list[LeaderboardEntryOut]
    nextCursor: str | None


class LeaderboardTaskOut(BaseModel):
    competitionId: int
    taskId: str
