from datetime import UTC, datetime, timedelta

import pytest
from fastapi import HTTPException

from app.core.constants import EvaluationStatus
from app.models.domain import Competition, CompetitionParticipant, EvaluationProgress
from app.services.evaluation_service import is_stale
from app.services.submission_service import (
    check_prompt_size,
    decode_page_cursor,
    encode_page_cursor,
    ensure_open,
    mark_challenge_completed,
    submission_key,
)

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=UTC)


def make_competition(**overrides) -> Competition:
    values = {
        "title": "Round 1",
        "start_deadline": NOW - timedelta(days=1),
        "end_deadline": NOW + timedelta(days=1),
        "is_active": True,
        "is_locked": False,
    }
    values.update(overrides)
    return Competition(**values)


def test_submission_key_is_participant_then_challenge():
    assert submission_key("user-1", 42) == "user-1_42"


def test_open_competition_accepts():
    ensure_open(make_competition(), NOW)


@pytest.mark.parametrize(
    "overrides",
    [
        {"is_active": False},
        {"is_locked": True},
        {"start_deadline": NOW + timedelta(hours=1)},
        {"end_deadline": NOW},
    ],
)
def test_closed_competition_rejects(overrides):
    with pytest.raises(HTTPException) as exc:
        ensure_open(make_competition(**overrides), NOW)
    assert exc.value.status_code == 403


def test_prompt_size_cap():
    assert check_prompt_size("héllo", 16) == 6
    with pytest.raises(HTTPException) as exc:
        check_prompt_size("x" * 17, 16)
    assert exc.value.status_code == 400


def test_empty_prompt_rejected():
    with pytest.raises(HTTPException) as exc:
        check_prompt_size("   ", 16)
    assert exc.value.status_code == 400


def test_completed_challenges_are_append_only():
    participant = CompetitionParticipant(completed_challenges=[], challenges_completed=0)
    assert mark_challenge_completed(participant, 3)
    assert mark_challenge_completed(participant, 5)
    assert not mark_challenge_completed(participant, 3)
    assert participant.completed_challenges == ["3", "5"]
    assert participant.challenges_completed == 2


def test_page_cursor_round_trip():
    assert decode_page_cursor(encode_page_cursor("user-1_42")) == "user-1_42"


def test_stale_evaluation_lock():
    progress = EvaluationProgress(status=EvaluationStatus.RUNNING, last_update_at=NOW - timedelta(hours=2))
    assert is_stale(progress, 3600, NOW)
    progress.last_update_at = NOW - timedelta(minutes=5)
    assert not is_stale(progress, 3600, NOW)
