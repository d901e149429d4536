from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator


class CompetitionCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=10000)
    systemPrompt: str = ""
    startDeadline: datetime
    endDeadline: datetime
    isActive: bool = True
    topN: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_window(self):
        if self.endDeadline <= self.startDeadline:
            raise ValueError("endDeadline must be after startDeadline")
        return self


class CompetitionPatchRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=10000)
    systemPrompt: str | None = None
    startDeadline: datetime | None = None
    endDeadline: datetime | None = None
    isActive: bool | None = None
    isLocked: bool | None = None
    topN: int | None = Field(default=None, ge=0)


class LockRequest(BaseModel):
    locked: bool


class ActiveRequest(BaseModel):
    active: bool


class TopNRequest(BaseModel):
    topN: int = Field(ge=0)


class JudgingCompleteRequest(BaseModel):
    complete: bool = True


class CompetitionOut(BaseModel):
    id: int
    title: str
    description: str
    systemPrompt: str
    startDeadline: datetime
    endDeadline: datetime
    isActive: bool
    isLocked: bool
    topN: int
    maxScore: float
    judgingComplete: bool
    hasFinalLeaderboard: bool
    leaderboardStale: bool
    leaderboardGeneratedAt: datetime | None
    distributionMode: str | None
    distributedAt: datetime | None
    challengeCount: int
    createdAt: datetime


class ChallengeCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    problemStatement: str = ""
    # validated as a whole by the rubric validator
    rubric: list[Any]
    sortOrder: int = 0


class ChallengePatchRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    problemStatement: str | None = None
    rubric: list[Any] | None = None
    sortOrder: int | None = None


class RubricCriterionOut(BaseModel):
    name: str
    description: str
    weight: float


class ChallengeOut(BaseModel):
    id: int
    competitionId: int
    title: str
    problemStatement: str
    rubric: list[RubricCriterionOut]
    maxScore: float
    sortOrder: int
    createdAt: datetime


class MaxScoreOut(BaseModel):
    competitionId: int
    maxScore: float
    challenges: dict[str, float]
