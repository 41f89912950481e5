"""Tests for cross-model validation of high-stakes scores."""

import asyncio

from scoring_integrity.components.consistency.cross_validation import (
    CrossModelValidator,
    cross_validate_score,
    reconcile_scores,
)
from scoring_integrity.components.consistency.parsing import DEFAULT_SCORING_SCHEMA, parse_scoring_response
from scoring_integrity.components.consistency.rules import CrossValidationConfig
from scoring_integrity.platform.errors import ScoringTransportError

from tests.fakes import score_json

SONNET = "claude-3-5-sonnet-latest"


def _validate(scorer, primary, config=None):
    return asyncio.run(
        CrossModelValidator(scorer).validate(
            "grade", primary, DEFAULT_SCORING_SCHEMA, parse_scoring_response, config or CrossValidationConfig()
        )
    )


def test_divergence_uses_average():
    outcome = reconcile_scores(90, 70, CrossValidationConfig())
    assert outcome.divergence == 20
    assert outcome.validation_passed is False
    assert outcome.final_score == 80
    assert outcome.was_validated is True
    assert "using average" in outcome.reason


def test_divergence_uses_minimum_when_configured():
    outcome = reconcile_scores(90, 70, CrossValidationConfig(use_average_on_divergence=False))
    assert outcome.final_score == 70
    assert "lower score" in outcome.reason


def test_average_rounds_half_up():
    outcome = reconcile_scores(96, 75, CrossValidationConfig())
    assert outcome.final_score == 86


def test_agreement_within_ceiling_passes():
    outcome = reconcile_scores(90, 80, CrossValidationConfig())
    assert outcome.validation_passed is True
    assert outcome.final_score == 90
    assert outcome.reason is None


def test_below_stakes_threshold_passes_through_without_calling(make_scorer):
    scorer = make_scorer(default=score_json(10))
    outcome = _validate(scorer, 84)
    assert scorer.calls == []
    assert outcome.was_validated is False
    assert outcome.validation_passed is True
    assert outcome.final_score == 84


def test_disabled_config_passes_through(make_scorer):
    scorer = make_scorer(default=score_json(10))
    outcome = _validate(scorer, 95, CrossValidationConfig(enabled=False))
    assert scorer.calls == []
    assert outcome.final_score == 95


def test_calls_secondary_model_at_matched_temperature(make_scorer):
    scorer = make_scorer({SONNET: score_json(70)})
    outcome = _validate(scorer, 90)
    assert scorer.calls == [(SONNET, 0.35)]
    assert outcome.secondary_score == 70
    assert outcome.secondary_model == SONNET
    assert outcome.final_score == 80


def test_transport_failure_degrades_to_primary(make_scorer):
    scorer = make_scorer({SONNET: ScoringTransportError("503")})
    outcome = _validate(scorer, 92)
    assert outcome.was_validated is False
    assert outcome.validation_passed is True
    assert outcome.final_score == 92
    assert outcome.reason == "Cross-validation failed, using primary score"


def test_parse_failure_degrades_to_primary(make_scorer):
    scorer = make_scorer({SONNET: "I refuse to answer in JSON"})
    outcome = _validate(scorer, 88)
    assert outcome.was_validated is False
    assert outcome.final_score == 88


def test_missing_scorer_degrades_to_primary():
    outcome = _validate(None, 90)
    assert outcome.was_validated is False
    assert outcome.final_score == 90


def test_module_helper(make_scorer):
    scorer = make_scorer({SONNET: score_json(89)})
    outcome = asyncio.run(
        cross_validate_score(scorer, "grade", 91, DEFAULT_SCORING_SCHEMA, parse_scoring_response)
    )
    assert outcome.validation_passed is True
    assert outcome.divergence == 2
