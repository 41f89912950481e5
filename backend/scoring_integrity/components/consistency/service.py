"""Consistency checks applied to a model score.

Steps, in order:
1. Sampling confidence. In ``ensemble_approximation`` mode (the default) the
   confidence level is derived from the externally supplied ensemble-agreement
   percentage; no re-scoring happens. This is an approximation, not
   statistical resampling. In ``resample`` mode the sample collector issues
   real calls and the initial score joins the collected samples.
2. Cross-model validation when the working score crosses the stakes threshold.
3. Confidence-adjusted AI weight.

Only configuration errors propagate; every model-dependent step degrades.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Tuple

from ...shared.utils import run_coroutine_sync, to_score
from .cross_validation import CrossModelValidator
from .parsing import validate_response_schema
from .rules import (
    APPROXIMATION_LOW_RANGE,
    APPROXIMATION_MEDIUM_RANGE,
    APPROXIMATION_VERY_LOW_RANGE,
    DEFAULT_CONSISTENCY_CONFIG,
    ScoringConsistencyConfig,
)
from .sampling import SampleCollector
from .schemas import (
    AggregateStatistics,
    ConfidenceLevel,
    ConsistencyResult,
    ResponseParser,
    Sample,
    TextScoringCapability,
    ValidationOutcome,
)
from .statistics import aggregate_samples, single_sample_aggregate
from .weighting import adjust_ai_weight_for_confidence

logger = logging.getLogger("scoring_integrity.consistency")


def approximate_confidence_from_ensemble(ensemble_confidence: float) -> Tuple[ConfidenceLevel, Optional[str]]:
    """Map ensemble agreement to a confidence level without re-scoring.

    ``|ensemble - 50| * 2`` stands in for the spread a real resample would
    measure. Returns the level and the flag to record, if any.
    """
    score_range = abs(float(ensemble_confidence) - 50.0) * 2
    if score_range < APPROXIMATION_VERY_LOW_RANGE:
        return "very_low", "very_low_agreement"
    if score_range < APPROXIMATION_LOW_RANGE:
        return "low", "low_agreement"
    if score_range < APPROXIMATION_MEDIUM_RANGE:
        return "medium", None
    return "high", None


def _default_scorer() -> TextScoringCapability:
    from ..integrations.claude.service import ClaudeScoringService

    return ClaudeScoringService()


async def _resampled_aggregate(
    scorer: TextScoringCapability,
    prompt: str,
    initial_score: int,
    initial_feedback: str,
    schema: Dict[str, Any],
    parser: ResponseParser,
    config: ScoringConsistencyConfig,
) -> Optional[AggregateStatistics]:
    collected = await SampleCollector(scorer).collect(
        prompt,
        config.cross_validation.primary_model,
        schema,
        parser,
        config.multi_sample,
    )
    if not collected.has_signal:
        return None
    initial = Sample(
        score=initial_score,
        source_temperature=config.cross_validation.temperature,
        raw_text=initial_feedback or "",
        latency_ms=0,
    )
    return aggregate_samples(
        [initial, *collected.samples],
        use_median=config.multi_sample.use_median,
        variance_ceiling=config.multi_sample.variance_confidence_ceiling,
    )


async def evaluate_consistency(
    prompt: str,
    initial_score: float,
    initial_feedback: str,
    schema: Dict[str, Any],
    parser: ResponseParser,
    ensemble_confidence: float,
    base_weight: float,
    config: ScoringConsistencyConfig | None = None,
    *,
    scorer: TextScoringCapability | None = None,
) -> ConsistencyResult:
    """Apply all consistency checks to a model score.

    Args:
        prompt: The exact scoring prompt used for the initial score.
        initial_score: Primary model score (0-100).
        initial_feedback: Primary model feedback text.
        schema: JSON schema the model must answer with.
        parser: Turns raw model text into a ParsedScore.
        ensemble_confidence: External agreement percentage (0-100).
        base_weight: Model share of the caller's blended score (0-1).
        config: Consistency configuration. Defaults to DEFAULT_CONSISTENCY_CONFIG.
        scorer: Text-scoring capability. Defaults to the Claude service.

    Raises:
        ScoringConfigurationError: malformed schema or base weight outside [0, 1].
    """
    config = config or DEFAULT_CONSISTENCY_CONFIG
    started = time.perf_counter()
    validate_response_schema(schema)

    flags: List[str] = []
    original_score = to_score(initial_score)
    current_score = original_score
    aggregate: Optional[AggregateStatistics] = None
    validation: Optional[ValidationOutcome] = None
    confidence_level: ConfidenceLevel = "high"
    confidence_mode = "disabled"

    needs_model = config.multi_sample.enabled and config.confidence_mode == "resample"
    needs_model = needs_model or (
        config.cross_validation.enabled and current_score >= config.cross_validation.stakes_threshold
    )
    if needs_model and scorer is None:
        try:
            scorer = _default_scorer()
        except Exception as exc:
            # Model-dependent steps below degrade on their own without a scorer.
            logger.warning("Scoring client unavailable, model checks will degrade: %s", exc)

    # Step 1: sampling confidence
    if config.multi_sample.enabled:
        if config.confidence_mode == "resample":
            confidence_mode = "resample"
            try:
                aggregate = await _resampled_aggregate(
                    scorer, prompt, original_score, initial_feedback, schema, parser, config
                )
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning("Resampling failed, falling back to ensemble approximation: %s", exc)
                aggregate = None
            if aggregate is not None:
                confidence_level = aggregate.confidence_level
                current_score = aggregate.selected_score
                if confidence_level in ("low", "very_low"):
                    flags.append(f"{confidence_level}_sample_agreement")
            else:
                flags.append("resampling_unavailable")

        if aggregate is None:
            confidence_mode = "ensemble_approximation"
            confidence_level, flag = approximate_confidence_from_ensemble(ensemble_confidence)
            if flag:
                flags.append(flag)
            aggregate = single_sample_aggregate(
                original_score,
                config.cross_validation.temperature,
                confidence_level=confidence_level,
                raw_text=initial_feedback or "",
            )

    # Step 2: cross-model validation for high-stakes scores
    if config.cross_validation.enabled and current_score >= config.cross_validation.stakes_threshold:
        validation = await CrossModelValidator(scorer).validate(
            prompt, current_score, schema, parser, config.cross_validation
        )
        if validation.was_validated:
            if not validation.validation_passed:
                flags.append("cross_validation_divergence")
                current_score = validation.final_score
            else:
                flags.append("cross_validation_passed")

    # Step 3: confidence-adjusted weight
    adjustment = adjust_ai_weight_for_confidence(
        base_weight,
        confidence_level,
        ensemble_confidence,
        config.confidence_adjustment,
    )
    if adjustment.reason:
        flags.append("ai_weight_adjusted")

    return ConsistencyResult(
        original_score=original_score,
        adjusted_score=to_score(current_score),
        aggregate=aggregate,
        validation=validation,
        original_weight=float(base_weight),
        adjusted_weight=adjustment.adjusted_weight,
        confidence_level=confidence_level,
        confidence_mode=confidence_mode,
        flags=flags,
        weight_reason=adjustment.reason,
        processing_time_ms=int((time.perf_counter() - started) * 1000),
    )


def evaluate_consistency_sync(*args: Any, **kwargs: Any) -> ConsistencyResult:
    """Synchronous wrapper for evaluate_consistency."""
    return run_coroutine_sync(lambda: evaluate_consistency(*args, **kwargs))


def format_consistency_note(result: ConsistencyResult) -> str:
    """Player-facing note explaining consistency adjustments, or ''."""
    if not result.flags:
        return ""

    parts: List[str] = []
    validation = result.validation
    if validation and validation.was_validated and not validation.validation_passed:
        parts.append(f"Score verification note: {validation.reason}")
    if result.confidence_level in ("very_low", "low"):
        parts.append(
            f"Confidence note: score confidence is {result.confidence_level.replace('_', ' ')}. "
            "Validation-based scoring was weighted more heavily."
        )
    return "\n".join(parts)


def log_consistency_analytics(result: ConsistencyResult, game_id: str, player_id: str) -> None:
    logger.info(
        "Consistency game=%s player=%s original=%d adjusted=%d confidence=%s mode=%s "
        "ai_weight=%.2f->%.2f flags=[%s] time=%dms",
        game_id,
        player_id,
        result.original_score,
        result.adjusted_score,
        result.confidence_level,
        result.confidence_mode,
        result.original_weight,
        result.adjusted_weight,
        ",".join(result.flags),
        result.processing_time_ms,
    )
