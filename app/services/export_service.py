import csv
import io
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import Role
from app.repositories.submission_repository import SubmissionRepository
from app.repositories.user_repository import UserRepository

PARTICIPANT_HEADER = ["ID", "Name", "Email", "Competition ID", "Challenges Completed", "Registration Date"]
SUBMISSION_HEADER = [
    "Submission ID",
    "User ID",
    "Competition ID",
    "Challenge ID",
    "Status",
    "Automated Score",
    "Judge Score",
    "Manual Score",
    "Submitted At",
    "Prompt Preview",
]
PREVIEW_CHARS = 100


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def to_csv(header: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    """Header line, then rows with text quoted (inner quotes doubled) and numbers bare."""
    buffer = io.StringIO()
    buffer.write(",".join(header) + "\n")
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    for row in rows:
        writer.writerow([_cell(v) for v in row])
    return buffer.getvalue()


def preview(text: str, limit: int = PREVIEW_CHARS) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


class ExportService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.submissions = SubmissionRepository(db)
        self.users = UserRepository(db)

    async def participants_csv(self, competition_id: int | None = None) -> str:
        if competition_id is None:
            users = await self.users.list_by_role(Role.PARTICIPANT)
            return to_csv(
                PARTICIPANT_HEADER,
                ([str(u.id), u.full_name, u.email, None, None, u.created_at] for u in users),
            )
        rows = await self.submissions.list_participants(competition_id)
        return to_csv(
            PARTICIPANT_HEADER,
            (
                [
                    str(r.user_id),
                    r.user.full_name if r.user else "",
                    r.user.email if r.user else "",
                    r.competition_id,
                    r.challenges_completed,
                    r.joined_at,
                ]
                for r in rows
            ),
        )

    async def submissions_csv(self, competition_id: int) -> str:
        rows = await self.submissions.list_for_competition(competition_id)
        return to_csv(
            SUBMISSION_HEADER,
            (
                [
                    r.id,
                    str(r.participant_id),
                    r.competition_id,
                    r.challenge_id,
                    r.status.value,
                    r.automated_score,
                    r.judge_score,
                    r.manual_review_score,
                    r.submitted_at,
                    preview(r.prompt_text),
                ]
                for r in rows
            ),
        )
