from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from app.core.constants import CRITERION_SCORE_MAX, CRITERION_SCORE_MIN


def _weight(criterion: Mapping[str, Any]) -> float:
    try:
        value = float(criterion.get("weight") or 0)
    except (TypeError, ValueError):
        return 0.0
    return value if value > 0 else 0.0


def compute_weighted_total(
    rubric_scores: Mapping[str, float] | None, rubric: Sequence[Mapping[str, Any]] | None
) -> float:
    """Weighted judge total for one submission, rounded to 2 decimals.

    Weights are divided by their sum so a rubric that drifted from 1.0 still
    yields a bounded score. Criteria without a score count as 0.
    """
    if not rubric:
        return 0.0
    scores = rubric_scores or {}
    total_weight = sum(_weight(c) for c in rubric)
    if total_weight <= 0:
        return 0.0
    weighted = 0.0
    for criterion in rubric:
        raw = scores.get(str(criterion.get("name", "")), 0) or 0
        weighted += float(raw) * (_weight(criterion) / total_weight)
    return round(weighted, 2)


def challenge_max_score(rubric: Sequence[Mapping[str, Any]] | None) -> float:
    # weights are validated to sum to 1 on write
    if not rubric:
        return 0.0
    return round(sum(CRITERION_SCORE_MAX * _weight(c) for c in rubric), 4)


def competition_max_score(rubrics: Iterable[Sequence[Mapping[str, Any]] | None]) -> float:
    return round(sum(challenge_max_score(r) for r in rubrics), 4)


def bound_criterion_scores(
    rubric_scores: Mapping[str, float], rubric: Sequence[Mapping[str, Any]]
) -> dict[str, float]:
    """Keep only rubric criteria and clamp each score into the criterion range."""
    names = [str(c.get("name", "")) for c in rubric]
    bounded: dict[str, float] = {}
    for name in names:
        if name not in rubric_scores:
            continue
        value = float(rubric_scores[name])
        bounded[name] = max(float(CRITERION_SCORE_MIN), min(float(CRITERION_SCORE_MAX), value))
    return bounded


def judge_average(judges: Mapping[str, Mapping[str, Any]] | None) -> float | None:
    """Mean of the per-judge totals stored on a submission, None when unjudged."""
    totals = [
        float(entry["totalScore"])
        for entry in (judges or {}).values()
        if isinstance(entry, Mapping) and entry.get("totalScore") is not None
    ]
    if not totals:
        return None
    return round(sum(totals) / len(totals), 2)


def model_average(model_scores: Mapping[str, Mapping[str, Any]] | None) -> float | None:
    finals = [
        float(entry["finalScore"])
        for entry in (model_scores or {}).values()
        if isinstance(entry, Mapping) and entry.get("finalScore") is not None
    ]
    if not finals:
        return None
    return round(sum(finals) / len(finals), 2)
