from enum import StrEnum


class Role(StrEnum):
    PARTICIPANT = "participant"
    JUDGE = "judge"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class SubmissionStatus(StrEnum):
    PENDING = "pending"
    SCORED = "scored"
    EVALUATED = "evaluated"
    SELECTED_FOR_MANUAL_REVIEW = "selected_for_manual_review"
    FAILED = "failed"


class EvaluationStatus(StrEnum):
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


class LeaderboardBoard(StrEnum):
    AUTOMATED = "automated"
    FINAL = "final"


class DistributionMode(StrEnum):
    AUTO = "auto"
    MANUAL = "manual"


RUBRIC_WEIGHT_TOLERANCE = 0.001
DEFAULT_CHALLENGE_MAX_SCORE = 100.0
CRITERION_SCORE_MIN = 0
CRITERION_SCORE_MAX = 100

EVENT_JUDGE_SCORE_SUBMITTED = "judge_score.submitted"
EVENT_EVALUATION_COMPLETED = "evaluation.completed"
