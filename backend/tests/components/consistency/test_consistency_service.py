"""Tests for the consistency orchestration steps."""

import asyncio

import pytest

from scoring_integrity.components.consistency import service
from scoring_integrity.components.consistency.parsing import DEFAULT_SCORING_SCHEMA, parse_scoring_response
from scoring_integrity.components.consistency.rules import MultiSampleConfig, ScoringConsistencyConfig
from scoring_integrity.components.consistency.service import (
    approximate_confidence_from_ensemble,
    evaluate_consistency,
    evaluate_consistency_sync,
    format_consistency_note,
    log_consistency_analytics,
)
from scoring_integrity.platform.errors import ScoringConfigurationError, ScoringTransportError

from tests.fakes import FakeScorer, score_json

HAIKU = "claude-3-5-haiku-latest"
SONNET = "claude-3-5-sonnet-latest"


def _evaluate(initial_score=70, ensemble=90, base_weight=0.5, config=None, scorer=None, schema=DEFAULT_SCORING_SCHEMA):
    return asyncio.run(
        evaluate_consistency(
            "grade this answer",
            initial_score,
            "solid answer",
            schema,
            parse_scoring_response,
            ensemble,
            base_weight,
            config,
            scorer=scorer,
        )
    )


@pytest.mark.parametrize(
    "ensemble,level,flag",
    [
        (50, "very_low", "very_low_agreement"),
        (64.9, "very_low", "very_low_agreement"),
        (35, "low", "low_agreement"),
        (70, "low", "low_agreement"),
        (80, "medium", None),
        (16, "medium", None),
        (15, "high", None),
        (85, "high", None),
        (0, "high", None),
    ],
)
def test_ensemble_approximation_buckets(ensemble, level, flag):
    assert approximate_confidence_from_ensemble(ensemble) == (level, flag)


def test_high_agreement_low_stakes_makes_no_model_calls(make_scorer):
    scorer = make_scorer(default=score_json(0))
    result = _evaluate(initial_score=70, ensemble=95, scorer=scorer)

    assert scorer.calls == []
    assert result.original_score == 70
    assert result.adjusted_score == 70
    assert result.confidence_level == "high"
    assert result.confidence_mode == "ensemble_approximation"
    assert result.aggregate.selection_method == "single"
    assert result.validation is None
    assert result.flags == []
    assert result.adjusted_weight == 0.5


def test_low_agreement_flags_and_reduces_weight():
    result = _evaluate(initial_score=60, ensemble=55, base_weight=0.5)
    assert result.confidence_level == "very_low"
    assert result.flags == ["very_low_agreement", "ai_weight_adjusted"]
    # very_low multiplier, then ensemble 55 < 60 -> low multiplier
    assert result.adjusted_weight == pytest.approx(0.5 * 0.6 * 0.8)
    assert result.weight_reason.startswith("AI weight reduced due to very low multi-sample confidence")


def test_high_stakes_divergence_replaces_score(make_scorer):
    scorer = make_scorer({SONNET: score_json(70)})
    result = _evaluate(initial_score=90, ensemble=95, scorer=scorer)

    assert scorer.calls == [(SONNET, 0.35)]
    assert result.original_score == 90
    assert result.adjusted_score == 80
    assert result.validation.validation_passed is False
    assert "cross_validation_divergence" in result.flags


def test_high_stakes_agreement_keeps_score(make_scorer):
    scorer = make_scorer({SONNET: score_json(88)})
    result = _evaluate(initial_score=91, ensemble=95, scorer=scorer)
    assert result.adjusted_score == 91
    assert "cross_validation_passed" in result.flags


def test_cross_validation_failure_never_raises(make_scorer):
    scorer = make_scorer({SONNET: ScoringTransportError("overloaded")})
    result = _evaluate(initial_score=95, ensemble=95, scorer=scorer)
    assert result.adjusted_score == 95
    assert result.validation.was_validated is False
    assert "cross_validation_divergence" not in result.flags


def test_unavailable_default_scorer_degrades(monkeypatch):
    def broken():
        raise RuntimeError("no api key")

    monkeypatch.setattr(service, "_default_scorer", broken)
    result = _evaluate(initial_score=97, ensemble=95)
    assert result.adjusted_score == 97
    assert result.validation.reason == "Cross-validation failed, using primary score"


def test_resample_mode_pools_initial_score_with_samples():
    scorer = FakeScorer(lambda model, t: score_json(80 if t == 0.3 else 84))
    config = ScoringConsistencyConfig(confidence_mode="resample")
    result = _evaluate(initial_score=82, ensemble=20, config=config, scorer=scorer)

    assert [model for model, _ in scorer.calls] == [HAIKU, HAIKU]
    assert result.confidence_mode == "resample"
    assert len(result.aggregate.samples) == 3
    assert result.aggregate.median == 82
    assert result.confidence_level == "high"
    assert result.adjusted_score == 82


def test_resample_mode_low_agreement_flag():
    scorer = FakeScorer(lambda model, t: score_json(30 if t == 0.3 else 60))
    config = ScoringConsistencyConfig(confidence_mode="resample")
    result = _evaluate(initial_score=75, ensemble=90, config=config, scorer=scorer)
    # scores 75, 30, 60 -> variance 350 -> very_low
    assert result.confidence_level == "very_low"
    assert result.adjusted_score == 60
    assert "very_low_sample_agreement" in result.flags


def test_resample_mode_without_samples_falls_back_to_approximation():
    scorer = FakeScorer(lambda model, t: ScoringTransportError("down"))
    config = ScoringConsistencyConfig(confidence_mode="resample")
    result = _evaluate(initial_score=70, ensemble=50, config=config, scorer=scorer)

    assert result.confidence_mode == "ensemble_approximation"
    assert result.flags[:2] == ["resampling_unavailable", "very_low_agreement"]
    assert result.adjusted_score == 70


def test_multi_sample_disabled_skips_confidence_step():
    config = ScoringConsistencyConfig(multi_sample=MultiSampleConfig(enabled=False))
    result = _evaluate(initial_score=40, ensemble=50, config=config)
    assert result.confidence_mode == "disabled"
    assert result.aggregate is None
    assert result.confidence_level == "high"


def test_scores_are_clamped_and_rounded(make_scorer):
    scorer = make_scorer({SONNET: score_json(100)})
    result = _evaluate(initial_score=140.2, ensemble=95, scorer=scorer)
    assert result.original_score == 100
    assert result.adjusted_score == 100


def test_malformed_schema_propagates():
    with pytest.raises(ScoringConfigurationError):
        _evaluate(schema={"type": "object"})


def test_invalid_base_weight_propagates():
    with pytest.raises(ScoringConfigurationError):
        _evaluate(base_weight=2)


def test_sync_wrapper_outside_event_loop():
    result = evaluate_consistency_sync(
        "grade", 50, "", DEFAULT_SCORING_SCHEMA, parse_scoring_response, 95, 0.4
    )
    assert result.adjusted_score == 50


def test_sync_wrapper_inside_running_loop():
    async def run():
        return evaluate_consistency_sync(
            "grade", 50, "", DEFAULT_SCORING_SCHEMA, parse_scoring_response, 95, 0.4
        )

    assert asyncio.run(run()).adjusted_score == 50


def test_consistency_note(make_scorer):
    assert format_consistency_note(_evaluate(ensemble=95)) == ""

    scorer = make_scorer({SONNET: score_json(60)})
    note = format_consistency_note(_evaluate(initial_score=90, ensemble=50, scorer=scorer))
    assert "Score verification note: Models diverged by 30 points" in note
    assert "score confidence is very low" in note
    assert "<" not in note


def test_analytics_line_is_logged(caplog):
    result = _evaluate(initial_score=60, ensemble=55)
    with caplog.at_level("INFO", logger="scoring_integrity.consistency"):
        log_consistency_analytics(result, "game-9", "player-3")
    assert "game=game-9 player=player-3 original=60 adjusted=60" in caplog.text
