import pytest

from app.integrations.llm.parsing import (
    build_system_prompt,
    extract_scores,
    find_criterion_value,
    model_final_score,
    parse_model_output,
    validate_criterion_score,
)

RUBRIC = [
    {"name": "Clarity", "description": "clear", "weight": 0.6},
    {"name": "Creativity", "description": "novel", "weight": 0.4},
]


def test_parse_fenced_json():
    content = '```json\n{"Clarity": 80, "Creativity": 90, "description": "ok"}\n```'
    assert parse_model_output(content)["Clarity"] == 80


def test_parse_json_inside_chatter():
    content = 'Here you go: {"Clarity": 70, "description": "fine"} hope it helps'
    assert parse_model_output(content) == {"Clarity": 70, "description": "fine"}


def test_parse_without_json_raises():
    with pytest.raises(ValueError):
        parse_model_output("no scores here")


def test_criterion_lookup_strategies():
    assert find_criterion_value({"Clarity": 1}, "Clarity") == 1
    assert find_criterion_value({"Clarity": 2}, '"Clarity"') == 2
    assert find_criterion_value({"clarity": 3}, "Clarity") == 3
    assert find_criterion_value({"Clarity of intent": 4}, "Clarity") == 4
    assert find_criterion_value({"Tone": 5}, "Clarity") is None


def test_score_validation():
    assert validate_criterion_score(85) == 85
    assert validate_criterion_score("42") == 42
    assert validate_criterion_score(70.0) == 70
    assert validate_criterion_score(70.5) is None
    assert validate_criterion_score(101) is None
    assert validate_criterion_score(-1) is None
    assert validate_criterion_score("high") is None
    assert validate_criterion_score(True) is None


def test_half_of_criteria_is_enough():
    scores, valid = extract_scores({"Clarity": 80, "Creativity": "great"}, RUBRIC)
    assert scores == {"Clarity": 80, "Creativity": 0}
    assert valid


def test_too_few_criteria_is_invalid():
    rubric = RUBRIC + [{"name": "Tone", "weight": 0.0}]
    _, valid = extract_scores({"Clarity": 80}, rubric)
    assert not valid


def test_model_final_score_uses_weights():
    assert model_final_score({"Clarity": 80, "Creativity": 90}, RUBRIC) == 84.0


def test_system_prompt_lists_every_criterion():
    prompt = build_system_prompt([{"name": 'Say "hi"', "weight": 1.0}])
    assert '"Say \\"hi\\"": <integer 0-100>' in prompt
