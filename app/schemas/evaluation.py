from datetime import datetime

from pydantic import BaseModel, Field

from app.schemas.submissions import SubmissionOut


class EvaluateRequest(BaseModel):
    submissionId: str = Field(min_length=1)
    competitionId: int


class EvaluateOut(BaseModel):
    submission: SubmissionOut
    validModels: int
    average: float | None


class PauseRequest(BaseModel):
    reason: str = Field(default="", max_length=255)


class EvaluationProgressOut(BaseModel):
    competitionId: int
    status: str
    totalSubmissions: int
    evaluatedSubmissions: int
    skippedSubmissions: int
    startedAt: datetime | None
    lastUpdateAt: datetime | None
    pauseReason: str | None = None
    taskId: str | None = None
