"""leaderboard entry position, drop leaderboard email

Revision ID: 20261018_0002
Revises: 20261018_0001
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


revision = "20261018_0002"
down_revision = "20261018_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    # boards are derived; rebuilding repopulates them
    op.execute("DELETE FROM leaderboard_entries")
    op.add_column("leaderboard_entries", sa.Column("position", sa.Integer(), nullable=False))
    op.drop_column("leaderboard_entries", "email")
    op.drop_index("ix_leaderboard_page", table_name="leaderboard_entries")
    op.create_unique_constraint(
        "uq_leaderboard_position", "leaderboard_entries", ["competition_id", "board", "position"]
    )
    op.execute("UPDATE competitions SET leaderboard_stale = true, has_final_leaderboard = false")


def downgrade() -> None:
    op.execute("DELETE FROM leaderboard_entries")
    op.drop_constraint("uq_leaderboard_position", "leaderboard_entries", type_="unique")
    op.create_index(
        "ix_leaderboard_page", "leaderboard_entries", ["competition_id", "board", "rank", "participant_id"]
    )
    op.add_column(
        "leaderboard_entries",
        sa.Column("email", sa.String(length=320), nullable=False, server_default=""),
    )
    op.drop_column("leaderboard_entries", "position")
