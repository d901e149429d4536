from app.models.domain import JudgeAssignment
from app.services.distribution_service import assignment_matrix, distribute, slice_by_matrix

JUDGES = ["j1", "j2", "j3", "j4", "j5"]


def make_submissions(challenge_id: str, count: int) -> list[str]:
    return [f"p{i:03d}_{challenge_id}" for i in range(count)]


def test_23_submissions_over_5_judges():
    result = distribute("1", ["c1"], JUDGES, {"c1": make_submissions("c1", 23)})
    counts = sorted(r.assigned_count_total for r in result.assignments.values())
    assert counts == [4, 4, 5, 5, 5]
    assert result.total_distributed == 23
    assert result.unassigned_challenges == []


def test_every_submission_assigned_exactly_once():
    buckets = {"c1": make_submissions("c1", 7), "c2": make_submissions("c2", 11)}
    result = distribute("1", ["c1", "c2"], JUDGES, buckets)
    assigned = [sid for r in result.assignments.values() for sid in r.submission_ids]
    assert sorted(assigned) == sorted(buckets["c1"] + buckets["c2"])


def test_balance_across_heterogeneous_challenges():
    buckets = {"c1": make_submissions("c1", 3), "c2": make_submissions("c2", 8), "c3": make_submissions("c3", 1)}
    result = distribute("1", ["c1", "c2", "c3"], JUDGES, buckets)
    totals = [r.assigned_count_total for r in result.assignments.values()]
    assert max(totals) - min(totals) <= 1
    per_challenge = [r.assigned_counts_by_challenge.get("c2", 0) for r in result.assignments.values()]
    assert max(per_challenge) - min(per_challenge) <= 1


def test_distribution_is_idempotent():
    buckets = {"c1": make_submissions("c1", 13), "c2": make_submissions("c2", 4)}
    first = distribute("1", ["c1", "c2"], JUDGES, buckets)
    second = distribute("1", ["c1", "c2"], list(reversed(JUDGES)), {k: list(reversed(v)) for k, v in buckets.items()})
    assert {j: r.submissions_by_challenge for j, r in first.assignments.items()} == {
        j: r.submissions_by_challenge for j, r in second.assignments.items()
    }


def test_no_judges_reports_all_challenges_unassigned():
    result = distribute("1", ["c1", "c2"], [], {"c1": make_submissions("c1", 3)})
    assert result.assignments == {}
    assert result.unassigned_challenges == ["c1", "c2"]
    assert result.total_distributed == 0


def test_per_challenge_cap_reports_overflow():
    result = distribute("1", ["c1"], ["j1", "j2"], {"c1": make_submissions("c1", 5)}, max_per_challenge=2)
    assert result.total_distributed == 4
    assert all(r.assigned_counts_by_challenge["c1"] <= 2 for r in result.assignments.values())
    assert result.unassigned_submissions == {"c1": ["p004_c1"]}


def test_least_loaded_judge_starts_next_challenge():
    result = distribute("1", ["c1", "c2"], ["j1", "j2", "j3"], {"c1": ["a", "b"], "c2": ["c"]})
    assert result.assignments["j1"].submissions_by_challenge == {"c1": ["a"]}
    assert result.assignments["j2"].submissions_by_challenge == {"c1": ["b"]}
    assert result.assignments["j3"].submissions_by_challenge == {"c2": ["c"]}


def test_slice_by_matrix_hands_out_consecutive_slices():
    buckets = {"c1": ["s3", "s1", "s2", "s4", "s5"]}
    result = slice_by_matrix("1", {"c1": {"j2": 2, "j1": 2}}, buckets)
    assert result.assignments["j1"].submissions_by_challenge == {"c1": ["s1", "s2"]}
    assert result.assignments["j2"].submissions_by_challenge == {"c1": ["s3", "s4"]}
    assert result.unassigned_submissions == {"c1": ["s5"]}


def test_assignment_matrix_from_records():
    rows = [
        JudgeAssignment(judge_id="j1", submissions_by_challenge={"c1": ["a", "b"], "c2": ["c"]}),
        JudgeAssignment(judge_id="j2", submissions_by_challenge={"c1": ["d"]}),
    ]
    assert assignment_matrix(rows) == {"c1": {"j1": 2, "j2": 1}, "c2": {"j1": 1}}
