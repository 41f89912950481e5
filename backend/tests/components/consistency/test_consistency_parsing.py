"""Tests for response-schema validation and model output parsing."""

import pytest

from scoring_integrity.components.consistency.parsing import (
    DEFAULT_SCORING_SCHEMA,
    coerce_parsed_score,
    parse_scoring_response,
    validate_response_schema,
)
from scoring_integrity.components.consistency.schemas import ParsedScore
from scoring_integrity.platform.errors import ScoringConfigurationError, ScoringParseError


def test_default_schema_is_valid():
    assert validate_response_schema(DEFAULT_SCORING_SCHEMA) is DEFAULT_SCORING_SCHEMA


@pytest.mark.parametrize(
    "schema",
    [None, {}, [], {"type": "object"}, {"properties": {"feedback": {"type": "string"}}}],
)
def test_invalid_schemas_are_rejected(schema):
    with pytest.raises(ScoringConfigurationError):
        validate_response_schema(schema)


def test_parses_plain_json():
    parsed = parse_scoring_response('{"score": 77, "feedback": "Clear and specific."}')
    assert parsed.score == 77
    assert parsed.feedback == "Clear and specific."


def test_parses_markdown_wrapped_json():
    raw = 'Here you go:\n```json\n{"overall_score": 64.5, "summary": "Fine"}\n```'
    parsed = parse_scoring_response(raw)
    assert parsed.score == 64.5
    assert parsed.feedback == "Fine"


def test_out_of_range_scores_are_clamped():
    assert parse_scoring_response('{"score": 140}').score == 100
    assert parse_scoring_response('{"score": -3}').score == 0


@pytest.mark.parametrize(
    "raw",
    ["not json", "[1, 2]", '{"feedback": "no score"}', '{"score": "high"}', ""],
)
def test_unusable_output_raises_parse_error(raw):
    with pytest.raises(ScoringParseError):
        parse_scoring_response(raw)


def test_coerce_accepts_mapping_and_model():
    assert coerce_parsed_score({"score": 50}).score == 50
    model = ParsedScore(score=10)
    assert coerce_parsed_score(model) is model
    with pytest.raises(ScoringParseError):
        coerce_parsed_score(42)
