from datetime import UTC, datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.constants import (
    DEFAULT_CHALLENGE_MAX_SCORE,
    EvaluationStatus,
    LeaderboardBoard,
    Role,
    SubmissionStatus,
)
from app.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=func.now(),
        nullable=False,
    )


class User(Base, TimestampMixin):
    __tablename__ = "users"
    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    external_id: Mapped[str] = mapped_column(String(128), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False, default="", index=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    role: Mapped[Role] = mapped_column(Enum(Role), default=Role.PARTICIPANT, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class Competition(Base, TimestampMixin):
    __tablename__ = "competitions"
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    system_prompt: Mapped[str] = mapped_column(Text, default="", nullable=False)
    start_deadline: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_deadline: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_locked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    top_n: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    max_score: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    judging_complete: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    leaderboard_stale: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    has_final_leaderboard: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    leaderboard_generated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    distribution_mode: Mapped[str | None] = mapped_column(String(16), nullable=True)
    distributed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[UUID | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    challenges: Mapped[list["Challenge"]] = relationship(
        back_populates="competition", cascade="all, delete-orphan", order_by="Challenge.sort_order"
    )
    submissions: Mapped[list["Submission"]] = relationship(
        back_populates="competition", cascade="all, delete-orphan"
    )


class Challenge(Base):
    __tablename__ = "challenges"
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    competition_id: Mapped[int] = mapped_column(ForeignKey("competitions.id", ondelete="CASCADE"), index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    problem_statement: Mapped[str] = mapped_column(Text, default="", nullable=False)
    # ordered list of {"name", "description", "weight"}
    rubric: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    max_score: Mapped[float] = mapped_column(Float, default=DEFAULT_CHALLENGE_MAX_SCORE, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    competition: Mapped["Competition"] = relationship(back_populates="challenges")


class Submission(Base):
    __tablename__ = "submissions"
    # "{participant_id}_{challenge_id}"
    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    competition_id: Mapped[int] = mapped_column(ForeignKey("competitions.id", ondelete="CASCADE"), index=True)
    challenge_id: Mapped[int] = mapped_column(ForeignKey("challenges.id", ondelete="CASCADE"), index=True)
    participant_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    prompt_text: Mapped[str] = mapped_column(Text, nullable=False)
    byte_size: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[SubmissionStatus] = mapped_column(
        Enum(SubmissionStatus), default=SubmissionStatus.PENDING, nullable=False, index=True
    )
    # model name -> {"scores", "finalScore", "description"}
    model_scores: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    automated_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    # judge id -> {"scores", "totalScore", "feedback", "updatedAt"}
    judges: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    judge_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    manual_review_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    manual_review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, index=True)
    evaluated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    competition: Mapped["Competition"] = relationship(back_populates="submissions")
    participant: Mapped["User"] = relationship()

    __table_args__ = (UniqueConstraint("participant_id", "challenge_id"),)


class JudgeAssignment(Base):
    __tablename__ = "judge_assignments"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    competition_id: Mapped[int] = mapped_column(ForeignKey("competitions.id", ondelete="CASCADE"), index=True)
    judge_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    competition_title: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    assigned_count_total: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    assigned_counts_by_challenge: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    submissions_by_challenge: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    reviewed_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    judge: Mapped["User"] = relationship()

    __table_args__ = (UniqueConstraint("competition_id", "judge_id"),)

    @property
    def submission_ids(self) -> set[str]:
        return {sid for ids in self.submissions_by_challenge.values() for sid in ids}


class CompetitionParticipant(Base):
    __tablename__ = "competition_participants"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    competition_id: Mapped[int] = mapped_column(ForeignKey("competitions.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    completed_challenges: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    challenges_completed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    last_submission_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    user: Mapped["User"] = relationship()

    __table_args__ = (UniqueConstraint("competition_id", "user_id"),)


class LeaderboardEntry(Base):
    __tablename__ = "leaderboard_entries"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    competition_id: Mapped[int] = mapped_column(ForeignKey("competitions.id", ondelete="CASCADE"))
    board: Mapped[LeaderboardBoard] = mapped_column(Enum(LeaderboardBoard), nullable=False)
    participant_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    # 1-based order of the built board, tie-breaks included
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    rank: Mapped[int] = mapped_column(Integer, nullable=False)
    automated_score: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    judge_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    final_score: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    first_submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    full_name: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("competition_id", "board", "participant_id"),
        UniqueConstraint("competition_id", "board", "position", name="uq_leaderboard_position"),
    )


class EvaluationProgress(Base):
    __tablename__ = "evaluation_progress"
    competition_id: Mapped[int] = mapped_column(
        ForeignKey("competitions.id", ondelete="CASCADE"), primary_key=True
    )
    status: Mapped[EvaluationStatus] = mapped_column(Enum(EvaluationStatus), nullable=False)
    total_submissions: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    evaluated_submissions: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    skipped_submissions: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    started_by: Mapped[UUID | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    last_update_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    pause_reason: Mapped[str | None] = mapped_column(String(255), nullable=True)


class OutboxEvent(Base):
    __tablename__ = "outbox_events"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    event_type: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    payload_json: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    status: Mapped[str] = mapped_column(String(32), default="pending", nullable=False, index=True)
    retry_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    next_retry_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
