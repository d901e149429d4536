from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class SubmissionCreateRequest(BaseModel):
    competitionId: int
    challengeId: int
    promptText: str


class ModelScoreOut(BaseModel):
    scores: dict[str, float]
    finalScore: float
    description: str = ""


class JudgeScoreOut(BaseModel):
    scores: dict[str, float]
    totalScore: float
    feedback: str = ""
    updatedAt: datetime | None = None


class SubmissionOut(BaseModel):
    id: str
    competitionId: int
    challengeId: int
    participantId: UUID
    promptText: str
    byteSize: int
    status: str
    modelScores: dict[str, ModelScoreOut]
    automatedScore: float | None
    judgeScore: float | None
    manualReviewScore: float | None
    manualReviewNotes: str | None
    error: str | None
    submittedAt: datetime
    evaluatedAt: datetime | None


class AdminSubmissionOut(SubmissionOut):
    participantName: str
    participantEmail: str
    judges: dict[str, JudgeScoreOut]


class SubmissionCheckOut(BaseModel):
    submitted: bool
    submission: SubmissionOut | None = None


class SubmissionPageOut(BaseModel):
    items: list[AdminSubmissionOut]
    nextCursor: str | None
    total: int


class ReviewRequest(BaseModel):
    score: float = Field(ge=0, le=100)
    notes: str = Field(default="", max_length=5000)
