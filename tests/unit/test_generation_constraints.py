import pytest
from pydantic import ValidationError

from jobtracker.types import GenerationConstraints


def test_blank_text_fields_normalize_to_none() -> None:
    constraints = GenerationConstraints.model_validate({"tone": "   ", "emphasis": "  leadership  "})
    assert constraints.tone is None
    assert constraints.emphasis == "leadership"


def test_keywords_are_trimmed_and_empties_dropped() -> None:
    constraints = GenerationConstraints.model_validate(
        {"keywordsInclude": [" python ", "", "   ", "sql"], "keywordsAvoid": ["synergy "]}
    )
    assert constraints.keywords_include == ["python", "sql"]
    assert constraints.keywords_avoid == ["synergy"]


def test_missing_keywords_default_to_empty_lists() -> None:
    constraints = GenerationConstraints.model_validate({"keywordsInclude": None})
    assert constraints.keywords_include == []
    assert constraints.keywords_avoid == []
    assert constraints.is_empty()


def test_too_many_keywords_are_rejected() -> None:
    with pytest.raises(ValidationError):
        GenerationConstraints.model_validate({"keywordsInclude": [f"k{i}" for i in range(21)]})


def test_overlong_keyword_is_rejected() -> None:
    with pytest.raises(ValidationError):
        GenerationConstraints.model_validate({"keywordsAvoid": ["x" * 41]})


def test_tone_and_emphasis_lengths_are_bounded() -> None:
    GenerationConstraints.model_validate({"tone": "t" * 40, "emphasis": "e" * 200})
    with pytest.raises(ValidationError):
        GenerationConstraints.model_validate({"tone": "t" * 41})
    with pytest.raises(ValidationError):
        GenerationConstraints.model_validate({"emphasis": "e" * 201})
