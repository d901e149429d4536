import math
import re
from collections.abc import Sequence
from typing import Any

from app.core.constants import RUBRIC_WEIGHT_TOLERANCE

# straight, typographic and backtick quotes pasted around criterion names
_EDGE_QUOTES = "\"'`“”„‘’´"
_LEADING = re.compile(rf"^[\s{_EDGE_QUOTES}]+")
_TRAILING = re.compile(rf"[\s{_EDGE_QUOTES}]+$")


class RubricError(ValueError):
    pass


def clean_criterion_name(value: Any) -> str:
    text = str(value if value is not None else "").strip()
    text = _LEADING.sub("", text)
    text = _TRAILING.sub("", text)
    return text.strip()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_rubric(items: Sequence[Any] | None) -> list[dict]:
    """Clean and validate a rubric as a whole.

    Returns the cleaned criteria or raises RubricError; a rubric is never
    partially accepted.
    """
    if not isinstance(items, Sequence) or isinstance(items, (str, bytes)) or not items:
        raise RubricError("Rubric must be a non-empty list of criteria")

    cleaned: list[dict] = []
    seen: set[str] = set()
    total_weight = 0.0
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise RubricError(f"Criterion #{index + 1} must be an object")
        name = clean_criterion_name(item.get("name"))
        if not name:
            raise RubricError(f"Criterion #{index + 1} has an empty name")
        if name.lower() in seen:
            raise RubricError(f"Duplicate criterion name: {name}")
        weight = item.get("weight")
        if not _is_number(weight) or not math.isfinite(weight):
            raise RubricError(f"Criterion '{name}' weight must be a number")
        if weight <= 0 or weight > 1:
            raise RubricError(f"Criterion '{name}' weight must be in (0, 1]")
        description = item.get("description", "")
        if not isinstance(description, str):
            raise RubricError(f"Criterion '{name}' description must be text")

        seen.add(name.lower())
        total_weight += float(weight)
        cleaned.append({"name": name, "description": description.strip(), "weight": float(weight)})

    if not math.isclose(total_weight, 1.0, rel_tol=0.0, abs_tol=RUBRIC_WEIGHT_TOLERANCE):
        raise RubricError(f"Rubric weights sum to {round(total_weight, 4)}, expected 1.0")
    return cleaned


def is_valid_rubric(items: Sequence[Any] | None) -> bool:
    try:
        validate_rubric(items)
    except RubricError:
        return False
    return True
