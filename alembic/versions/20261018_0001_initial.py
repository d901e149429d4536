"""initial schema

Revision ID: 20261018_0001
Revises: None
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


role_enum = sa.Enum("PARTICIPANT", "JUDGE", "ADMIN", "SUPERADMIN", name="role")
submission_status_enum = sa.Enum(
    "PENDING", "SCORED", "EVALUATED", "SELECTED_FOR_MANUAL_REVIEW", "FAILED", name="submissionstatus"
)
evaluation_status_enum = sa.Enum("RUNNING", "PAUSED", "COMPLETED", name="evaluationstatus")
board_enum = sa.Enum("AUTOMATED", "FINAL", name="leaderboardboard")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("external_id", sa.String(length=128), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=False),
        sa.Column("role", role_enum, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_users_external_id", "users", ["external_id"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=False)

    op.create_table(
        "competitions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("system_prompt", sa.Text(), nullable=False),
        sa.Column("start_deadline", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_deadline", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_locked", sa.Boolean(), nullable=False),
        sa.Column("top_n", sa.Integer(), nullable=False),
        sa.Column("max_score", sa.Float(), nullable=False),
        sa.Column("judging_complete", sa.Boolean(), nullable=False),
        sa.Column("leaderboard_stale", sa.Boolean(), nullable=False),
        sa.Column("has_final_leaderboard", sa.Boolean(), nullable=False),
        sa.Column("leaderboard_generated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("distribution_mode", sa.String(length=16), nullable=True),
        sa.Column("distributed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.UUID(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "challenges",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "competition_id", sa.BigInteger(), sa.ForeignKey("competitions.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("problem_statement", sa.Text(), nullable=False),
        sa.Column("rubric", sa.JSON(), nullable=False),
        sa.Column("max_score", sa.Float(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_challenges_competition_id", "challenges", ["competition_id"], unique=False)

    op.create_table(
        "submissions",
        sa.Column("id", sa.String(length=128), primary_key=True),
        sa.Column(
            "competition_id", sa.BigInteger(), sa.ForeignKey("competitions.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "challenge_id", sa.BigInteger(), sa.ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("participant_id", sa.UUID(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("prompt_text", sa.Text(), nullable=False),
        sa.Column("byte_size", sa.Integer(), nullable=False),
        sa.Column("status", submission_status_enum, nullable=False),
        sa.Column("model_scores", sa.JSON(), nullable=False),
        sa.Column("automated_score", sa.Float(), nullable=True),
        sa.Column("judges", sa.JSON(), nullable=False),
        sa.Column("judge_score", sa.Float(), nullable=True),
        sa.Column("manual_review_score", sa.Float(), nullable=True),
        sa.Column("manual_review_notes", sa.Text(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("evaluated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("participant_id", "challenge_id"),
    )
    op.create_index("ix_submissions_competition_id", "submissions", ["competition_id"], unique=False)
    op.create_index("ix_submissions_challenge_id", "submissions", ["challenge_id"], unique=False)
    op.create_index("ix_submissions_participant_id", "submissions", ["participant_id"], unique=False)
    op.create_index("ix_submissions_status", "submissions", ["status"], unique=False)
    op.create_index("ix_submissions_submitted_at", "submissions", ["submitted_at"], unique=False)

    op.create_table(
        "judge_assignments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "competition_id", sa.BigInteger(), sa.ForeignKey("competitions.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("judge_id", sa.UUID(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("competition_title", sa.String(length=200), nullable=False),
        sa.Column("assigned_count_total", sa.Integer(), nullable=False),
        sa.Column("assigned_counts_by_challenge", sa.JSON(), nullable=False),
        sa.Column("submissions_by_challenge", sa.JSON(), nullable=False),
        sa.Column("reviewed_count", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("competition_id", "judge_id"),
    )
    op.create_index("ix_judge_assignments_competition_id", "judge_assignments", ["competition_id"], unique=False)
    op.create_index("ix_judge_assignments_judge_id", "judge_assignments", ["judge_id"], unique=False)

    op.create_table(
        "competition_participants",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "competition_id", sa.BigInteger(), sa.ForeignKey("competitions.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("user_id", sa.UUID(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("completed_challenges", sa.JSON(), nullable=False),
        sa.Column("challenges_completed", sa.Integer(), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_submission_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("competition_id", "user_id"),
    )
    op.create_index(
        "ix_competition_participants_competition_id", "competition_participants", ["competition_id"], unique=False
    )
    op.create_index("ix_competition_participants_user_id", "competition_participants", ["user_id"], unique=False)

    op.create_table(
        "leaderboard_entries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "competition_id", sa.BigInteger(), sa.ForeignKey("competitions.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("board", board_enum, nullable=False),
        sa.Column("participant_id", sa.UUID(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("rank", sa.Integer(), nullable=False),
        sa.Column("automated_score", sa.Float(), nullable=False),
        sa.Column("judge_score", sa.Float(), nullable=True),
        sa.Column("final_score", sa.Float(), nullable=False),
        sa.Column("first_submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("full_name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("generated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("competition_id", "board", "participant_id"),
    )
    op.create_index(
        "ix_leaderboard_page", "leaderboard_entries", ["competition_id", "board", "rank", "participant_id"]
    )

    op.create_table(
        "evaluation_progress",
        sa.Column(
            "competition_id",
            sa.BigInteger(),
            sa.ForeignKey("competitions.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("status", evaluation_status_enum, nullable=False),
        sa.Column("total_submissions", sa.Integer(), nullable=False),
        sa.Column("evaluated_submissions", sa.Integer(), nullable=False),
        sa.Column("skipped_submissions", sa.Integer(), nullable=False),
        sa.Column("started_by", sa.UUID(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_update_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("pause_reason", sa.String(length=255), nullable=True),
    )

    op.create_table(
        "outbox_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_type", sa.String(length=120), nullable=False),
        sa.Column("payload_json", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("retry_count", sa.Integer(), nullable=False),
        sa.Column("next_retry_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_outbox_events_event_type", "outbox_events", ["event_type"], unique=False)
    op.create_index("ix_outbox_events_status", "outbox_events", ["status"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_outbox_events_status", table_name="outbox_events")
    op.drop_index("ix_outbox_events_event_type", table_name="outbox_events")
    op.drop_table("outbox_events")
    op.drop_table("evaluation_progress")
    op.drop_index("ix_leaderboard_page", table_name="leaderboard_entries")
    op.drop_table("leaderboard_entries")
    op.drop_table("competition_participants")
    op.drop_table("judge_assignments")
    op.drop_table("submissions")
    op.drop_table("challenges")
    op.drop_table("competitions")
    op.drop_table("users")

    board_enum.drop(op.get_bind(), checkfirst=True)
    evaluation_status_enum.drop(op.get_bind(), checkfirst=True)
    submission_status_enum.drop(op.get_bind(), checkfirst=True)
    role_enum.drop(op.get_bind(), checkfirst=True)
