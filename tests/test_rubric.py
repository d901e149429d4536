import pytest

from app.services.rubric_service import RubricError, clean_criterion_name, is_valid_rubric, validate_rubric


def test_valid_rubric_is_cleaned():
    cleaned = validate_rubric(
        [
            {"name": ' "Clarity" ', "description": " be clear ", "weight": 0.6},
            {"name": "“Creativity”", "weight": 0.4},
        ]
    )
    assert cleaned == [
        {"name": "Clarity", "description": "be clear", "weight": 0.6},
        {"name": "Creativity", "description": "", "weight": 0.4},
    ]


def test_weights_within_tolerance_pass():
    assert is_valid_rubric([{"name": "A", "weight": 0.3333}, {"name": "B", "weight": 0.6667}])
    assert is_valid_rubric([{"name": "A", "weight": 0.5}, {"name": "B", "weight": 0.5005}])


def test_weights_not_summing_to_one_rejected():
    with pytest.raises(RubricError):
        validate_rubric([{"name": "A", "weight": 0.5}, {"name": "B", "weight": 0.4}])


def test_non_numeric_weight_rejected():
    assert not is_valid_rubric([{"name": "A", "weight": "0.5"}, {"name": "B", "weight": 0.5}])
    assert not is_valid_rubric([{"name": "A", "weight": True}])


def test_weight_out_of_range_rejected():
    assert not is_valid_rubric([{"name": "A", "weight": 1.5}, {"name": "B", "weight": -0.5}])
    assert not is_valid_rubric([{"name": "A", "weight": 0}, {"name": "B", "weight": 1}])


def test_empty_name_after_cleaning_rejected():
    assert not is_valid_rubric([{"name": ' "" ', "weight": 1.0}])


def test_duplicate_names_rejected():
    assert not is_valid_rubric([{"name": "Clarity", "weight": 0.5}, {"name": "clarity", "weight": 0.5}])


def test_empty_or_malformed_rubric_rejected():
    assert not is_valid_rubric([])
    assert not is_valid_rubric(None)
    assert not is_valid_rubric("Clarity")
    assert not is_valid_rubric(["Clarity"])


def test_clean_criterion_name():
    assert clean_criterion_name("'`Tone`'") == "Tone"
    assert clean_criterion_name(None) == ""
    assert clean_criterion_name("  Don't stop  ") == "Don't stop"


def test_nan_or_infinite_weight_rejected():
    with pytest.raises(RubricError):
        validate_rubric([{"name": "A", "weight": 1.0}, {"name": "B", "weight": float("nan")}])
    assert not is_valid_rubric([{"name": "A", "weight": float("inf")}])
    assert not is_valid_rubric([{"name": "A", "weight": float("-inf")}, {"name": "B", "weight": 1.0}])
