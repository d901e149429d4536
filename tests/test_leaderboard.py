from datetime import UTC, datetime, timedelta

import pytest

from app.services.leaderboard_service import (
    ParticipantTotals,
    ScoredSubmission,
    aggregate_participants,
    decode_cursor,
    encode_cursor,
    judging_is_complete,
    rank_automated,
    rank_final,
)

T0 = datetime(2026, 10, 1, 12, 0, tzinfo=UTC)


def make_totals(pid: str, automated: float, judge: float | None = None, minutes: int = 0) -> ParticipantTotals:
    return ParticipantTotals(
        participant_id=pid,
        automated_score=automated,
        judge_score=judge,
        first_submitted_at=T0 + timedelta(minutes=minutes),
    )


def test_aggregate_sums_scores_per_participant():
    rows = [
        ScoredSubmission("p1", 40.0, None, T0 + timedelta(minutes=5)),
        ScoredSubmission("p1", 48.0, None, T0),
        ScoredSubmission("p2", 70.0, 80.0, T0),
        ScoredSubmission("p2", 10.0, None, T0),
        ScoredSubmission("p3", None, None, T0),
    ]
    totals = {t.participant_id: t for t in aggregate_participants(rows)}
    assert set(totals) == {"p1", "p2"}
    assert totals["p1"].automated_score == 88.0
    assert totals["p1"].first_submitted_at == T0
    assert totals["p2"].automated_score == 80.0
    assert totals["p2"].judge_score == 80.0


def test_unjudged_participant_keeps_null_judge_score():
    totals = aggregate_participants([ScoredSubmission("p1", 88.0, None, T0)])
    board = rank_automated(totals)
    assert board[0].automated_score == 88.0
    assert board[0].judge_score is None


def test_dense_ranks_without_gaps():
    totals = [
        make_totals("a", 90),
        make_totals("b", 90, minutes=1),
        make_totals("c", 80),
        make_totals("d", 70),
        make_totals("e", 70, minutes=2),
    ]
    board = rank_automated(totals)
    assert [e.participant_id for e in board] == ["a", "b", "c", "d", "e"]
    assert [e.rank for e in board] == [1, 1, 2, 3, 3]
    assert sorted(set(e.rank for e in board)) == list(range(1, 4))


def test_ties_ordered_by_earliest_submission_then_id():
    totals = [make_totals("z", 50, minutes=0), make_totals("b", 50, minutes=3), make_totals("a", 50, minutes=3)]
    board = rank_automated(totals)
    assert [e.participant_id for e in board] == ["z", "a", "b"]


def test_final_board_adds_judge_score_to_automated():
    totals = [
        make_totals("p1", 95),
        make_totals("p2", 60, judge=100),
        make_totals("p3", 70, judge=50),
        make_totals("p4", 80, judge=90),
    ]
    board = rank_final(totals)
    assert [e.participant_id for e in board] == ["p4", "p2", "p3", "p1"]
    assert [e.final_score for e in board] == [170.0, 160.0, 120.0, 95.0]
    assert [e.rank for e in board] == [1, 2, 3, 4]
    assert board[3].judge_score is None


def test_final_board_ties_share_a_dense_rank():
    totals = [make_totals("a", 100, minutes=4), make_totals("b", 40, judge=60), make_totals("c", 30)]
    board = rank_final(totals)
    assert [e.participant_id for e in board] == ["b", "a", "c"]
    assert [e.rank for e in board] == [1, 1, 2]


def test_judging_complete_once_every_top_n_participant_is_judged():
    totals = [make_totals("p1", 90, judge=70), make_totals("p2", 80), make_totals("p3", 70)]
    board = rank_automated(totals)
    assert judging_is_complete(board, top_n=1)
    assert not judging_is_complete(board, top_n=2)
    assert not judging_is_complete(board, top_n=0)
    assert not judging_is_complete([], top_n=3)


def test_cursor_round_trip_and_rejects_garbage():
    cursor = encode_cursor(7, "0b7e7b44-2d5f-4d3c-9a3b-6f1d1c2e3a4b")
    assert decode_cursor(cursor) == (7, "0b7e7b44-2d5f-4d3c-9a3b-6f1d1c2e3a4b")
    with pytest.raises(ValueError):
        decode_cursor("not-a-cursor!")
