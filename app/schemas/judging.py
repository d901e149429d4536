from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.submissions import SubmissionOut


class AssignmentSummaryOut(BaseModel):
    competitionId: int
    competitionTitle: str
    assignedCountTotal: int
    assignedCountsByChallenge: dict[str, int]
    reviewedCount: int
    updatedAt: datetime


class AssignmentDetailOut(AssignmentSummaryOut):
    submissionsByChallenge: dict[str, list[SubmissionOut]]


class ScoreSubmitRequest(BaseModel):
    rubricScores: dict[str, float]
    feedback: str = Field(default="", max_length=5000)


class ScoreOut(BaseModel):
    submissionId: str
    judgeId: UUID
    scores: dict[str, float]
    totalScore: float
    feedback: str
    updatedAt: datetime | None
    judgeScore: float | None = None


class DistributeRequest(BaseModel):
    judgeIds: list[UUID] | None = None
    topN: int | None = Field(default=None, ge=0)
    maxPerChallenge: int | None = Field(default=None, ge=0)


class ManualDistributeRequest(BaseModel):
    # challenge id -> judge id -> number of submissions
    matrix: dict[str, dict[str, int]]
    topN: int | None = Field(default=None, ge=0)


class DistributedAssignmentOut(BaseModel):
    judgeId: str
    assignedCountTotal: int
    assignedCountsByChallenge: dict[str, int]
    submissionsByChallenge: dict[str, list[str]]


class DistributionOut(BaseModel):
    competitionId: str
    mode: str
    written: bool
    totalDistributed: int
    unassignedChallenges: list[str]
    unassignedSubmissions: dict[str, list[str]]
    assignments: list[DistributedAssignmentOut]


class JudgeProgressOut(BaseModel):
    judgeId: UUID
    assignedCountTotal: int
    reviewedCount: int
    updatedAt: datetime


class AssignmentMatrixOut(BaseModel):
    competitionId: int
    assignmentMatrix: dict[str, dict[str, int]]
    judges: list[JudgeProgressOut]
