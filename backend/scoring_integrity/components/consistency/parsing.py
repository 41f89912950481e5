"""Boundary validation for response schemas and model output."""

from __future__ import annotations

import json
import re
from typing import Any, Dict

from ...platform.errors import ScoringConfigurationError, ScoringParseError
from ...shared.utils import clamp
from .schemas import ParsedScore

_SCORE_KEYS = ("score", "overall_score", "overallScore")
_FEEDBACK_KEYS = ("feedback", "feedbackText", "feedback_text", "summary")

DEFAULT_SCORING_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "score": {"type": "number", "minimum": 0, "maximum": 100},
        "feedback": {"type": "string"},
    },
    "required": ["score", "feedback"],
}


def validate_response_schema(schema: Any) -> Dict[str, Any]:
    """Reject schemas that cannot yield a numeric score.

    A malformed schema is a caller contract violation with no safe default.
    """
    if not isinstance(schema, dict) or not schema:
        raise ScoringConfigurationError("Response schema must be a non-empty JSON object")
    properties = schema.get("properties")
    if not isinstance(properties, dict):
        raise ScoringConfigurationError("Response schema must declare 'properties'")
    if not any(key in properties for key in _SCORE_KEYS):
        raise ScoringConfigurationError(
            "Response schema must declare a score property (one of: %s)" % ", ".join(_SCORE_KEYS)
        )
    return schema


def _load_json_object(raw_text: str) -> Dict[str, Any]:
    try:
        result = json.loads(raw_text)
    except json.JSONDecodeError:
        # Try to extract JSON from potential markdown wrapping
        json_match = re.search(r"\{[\s\S]*\}", raw_text or "")
        if not json_match:
            raise ScoringParseError("Scoring response is not JSON")
        try:
            result = json.loads(json_match.group())
        except json.JSONDecodeError as exc:
            raise ScoringParseError(f"Scoring response is not JSON: {exc}") from exc
    if not isinstance(result, dict):
        raise ScoringParseError("Scoring response was not a JSON object")
    return result


def parse_scoring_response(raw_text: str) -> ParsedScore:
    """Default parser: ``{"score": <0-100>, "feedback": "..."}``."""
    result = _load_json_object(raw_text)

    raw_score = next((result[key] for key in _SCORE_KEYS if result.get(key) is not None), None)
    if raw_score is None:
        raise ScoringParseError("Scoring response has no score field")
    try:
        numeric = float(raw_score)
    except (TypeError, ValueError) as exc:
        raise ScoringParseError(f"Score is not numeric: {raw_score!r}") from exc
    if numeric != numeric:
        raise ScoringParseError("Score is NaN")

    feedback = next((result[key] for key in _FEEDBACK_KEYS if isinstance(result.get(key), str)), "")
    return ParsedScore(score=clamp(numeric), feedback=feedback)


def coerce_parsed_score(parsed: Any) -> ParsedScore:
    """Validate a caller-supplied parser's output (model or mapping)."""
    if isinstance(parsed, ParsedScore):
        return parsed
    if isinstance(parsed, dict):
        return ParsedScore.model_validate(parsed)
    raise ScoringParseError(f"Parser returned {type(parsed).__name__}, expected ParsedScore")
