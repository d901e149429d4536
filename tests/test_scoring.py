from app.services.scoring_service import (
    bound_criterion_scores,
    challenge_max_score,
    competition_max_score,
    compute_weighted_total,
    judge_average,
    model_average,
)

RUBRIC = [
    {"name": "Clarity", "description": "", "weight": 0.6},
    {"name": "Creativity", "description": "", "weight": 0.4},
]


def test_weighted_total_example():
    assert compute_weighted_total({"Clarity": 80, "Creativity": 90}, RUBRIC) == 84.0


def test_missing_criterion_counts_as_zero():
    assert compute_weighted_total({"Clarity": 80}, RUBRIC) == 48.0


def test_empty_rubric_yields_zero():
    assert compute_weighted_total({"Clarity": 80}, []) == 0.0
    assert compute_weighted_total({"Clarity": 80}, None) == 0.0
    assert compute_weighted_total(None, RUBRIC) == 0.0


def test_unnormalized_weights_stay_bounded():
    rubric = [{"name": "A", "weight": 0.9}, {"name": "B", "weight": 0.9}]
    total = compute_weighted_total({"A": 100, "B": 100}, rubric)
    assert total == 100.0
    assert compute_weighted_total({"A": 50, "B": 0}, rubric) == 25.0


def test_weighted_total_in_range_and_reproducible():
    rubric = [{"name": "A", "weight": 0.2}, {"name": "B", "weight": 0.3}, {"name": "C", "weight": 0.5}]
    for scores in ({"A": 0, "B": 0, "C": 0}, {"A": 100, "B": 100, "C": 100}, {"A": 33, "B": 67, "C": 99}):
        first = compute_weighted_total(scores, rubric)
        assert 0 <= first <= 100
        assert compute_weighted_total(scores, rubric) == first


def test_rounds_to_two_decimals():
    rubric = [{"name": "A", "weight": 1 / 3}, {"name": "B", "weight": 2 / 3}]
    assert compute_weighted_total({"A": 10, "B": 11}, rubric) == 10.67


def test_challenge_max_score_is_100_for_normalized_rubric():
    assert challenge_max_score(RUBRIC) == 100
    assert challenge_max_score([]) == 0


def test_competition_max_score_sums_challenges():
    assert competition_max_score([RUBRIC, RUBRIC, []]) == 200


def test_bound_criterion_scores_clamps_and_drops_unknown():
    bounded = bound_criterion_scores({"Clarity": 140, "Creativity": -5, "Other": 50}, RUBRIC)
    assert bounded == {"Clarity": 100.0, "Creativity": 0.0}


def test_judge_average_is_none_when_unjudged():
    assert judge_average({}) is None
    assert judge_average(None) is None
    assert judge_average({"j1": {"totalScore": 80}, "j2": {"totalScore": 70}}) == 75.0


def test_model_average_skips_entries_without_final():
    scores = {"m1": {"finalScore": 60}, "m2": {"finalScore": 90}, "m3": {"scores": {}}}
    assert model_average(scores) == 75.0
    assert model_average({}) is None
