import json
import re
from collections.abc import Mapping, Sequence
from typing import Any

from app.core.constants import CRITERION_SCORE_MAX, CRITERION_SCORE_MIN

_FENCE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_JSON_BLOCK = re.compile(r"\{.*\}", re.DOTALL)
_DIGITS = re.compile(r"^\d+$")

VALID_CRITERIA_RATIO = 0.5


def parse_model_output(content: str) -> dict[str, Any]:
    """Pull the JSON object out of a model reply, tolerating code fences and chatter."""
    raw = _FENCE.sub("", content.strip()).replace("```", "").strip()
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        match = _JSON_BLOCK.search(raw)
        if not match:
            raise ValueError("No valid JSON found in model output") from None
        parsed = json.loads(match.group(0))
    if not isinstance(parsed, dict):
        raise ValueError("Model output is not a JSON object")
    return parsed


def find_criterion_value(parsed: Mapping[str, Any], name: str) -> Any:
    if name in parsed:
        return parsed[name]
    cleaned = name.strip().strip("\"'").strip()
    if cleaned in parsed:
        return parsed[cleaned]
    lower = name.lower()
    for key in parsed:
        if key.lower() == lower:
            return parsed[key]
    for key in parsed:
        if key == "description":
            continue
        if lower in key.lower() or key.lower() in lower:
            return parsed[key]
    return None


def validate_criterion_score(value: Any) -> int | None:
    if isinstance(value, str) and _DIGITS.match(value.strip()):
        value = int(value.strip())
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int) and CRITERION_SCORE_MIN <= value <= CRITERION_SCORE_MAX:
        return value
    return None


def extract_scores(parsed: Mapping[str, Any], rubric: Sequence[Mapping[str, Any]]) -> tuple[dict[str, int], bool]:
    """Score every criterion; invalid or missing ones become 0.

    The result is usable when at least half of the criteria parsed.
    """
    scores: dict[str, int] = {}
    valid = 0
    for criterion in rubric:
        name = str(criterion.get("name", ""))
        value = validate_criterion_score(find_criterion_value(parsed, name))
        if value is None:
            scores[name] = 0
            continue
        scores[name] = value
        valid += 1
    return scores, bool(rubric) and valid >= len(rubric) * VALID_CRITERIA_RATIO


def model_final_score(scores: Mapping[str, int], rubric: Sequence[Mapping[str, Any]]) -> float:
    total = 0.0
    for criterion in rubric:
        weight = criterion.get("weight")
        if not isinstance(weight, (int, float)) or isinstance(weight, bool) or weight <= 0:
            continue
        total += scores.get(str(criterion.get("name", "")), 0) * float(weight)
    return round(total, 2)


def build_system_prompt(rubric: Sequence[Mapping[str, Any]]) -> str:
    schema = ", ".join(f"{json.dumps(str(c.get('name', '')))}: <integer 0-100>" for c in rubric)
    return f"""
<role>
You are a meticulous and impartial judge for a prompt engineering competition.
Score a participant's prompt against the problem statement and rubric.
</role>

<scoring_guide>
- 81-100 (Excellent): meets or exceeds every aspect of the criterion.
- 61-80 (Good): meets the criterion with minor room for improvement.
- 41-60 (Average): addresses the criterion with notable flaws or omissions.
- 21-40 (Poor): attempts the criterion but fails in significant ways.
- 0-20 (Failing): does not address the criterion or is irrelevant.
</scoring_guide>

<critical_instructions>
- Score only against the rubric. Do not invent or skip criteria.
- A short, effective prompt beats a long, verbose one.
- Use whole numbers between 0 and 100.
</critical_instructions>

<output_format>
Return a single valid JSON object and nothing else:
{{
  {schema},
  "description": "<1-2 neutral sentences justifying the scores>"
}}
</output_format>
""".strip()


def build_user_message(prompt: str, rubric: Sequence[Mapping[str, Any]], problem_statement: str) -> str:
    criteria = "\n".join(f"- {c.get('name', '')} : {c.get('description', '')}" for c in rubric)
    return (
        "Evaluate the following participant's prompt according to the PROBLEM STATEMENT and the rubric below.\n"
        "Score each criterion from 0-100 (integers only).\n\n"
        f"PROBLEM STATEMENT:\n{problem_statement}\n\n"
        f"Rubric:\n{criteria}\n\n"
        f'Prompt to Evaluate:\n"""{prompt}"""\n\n'
        "Return only the JSON object with scores for each criterion and a brief description."
    )
