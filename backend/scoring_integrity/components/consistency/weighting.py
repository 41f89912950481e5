"""Confidence-adjusted weighting of the model's share of the blended score."""

from __future__ import annotations

from ...platform.errors import ScoringConfigurationError
from .rules import DEFAULT_CONSISTENCY_CONFIG, ConfidenceAdjustmentConfig
from .schemas import ConfidenceLevel, WeightAdjustment


def adjust_ai_weight_for_confidence(
    base_weight: float,
    confidence_level: ConfidenceLevel,
    ensemble_confidence: float,
    config: ConfidenceAdjustmentConfig = DEFAULT_CONSISTENCY_CONFIG.confidence_adjustment,
) -> WeightAdjustment:
    """Shrink the model weight for low sampling or ensemble confidence.

    The result never drops below ``config.weight_floor`` and never exceeds
    ``base_weight``.
    """
    try:
        base = float(base_weight)
    except (TypeError, ValueError) as exc:
        raise ScoringConfigurationError(f"Base AI weight is not numeric: {base_weight!r}") from exc
    if not 0.0 <= base <= 1.0:
        raise ScoringConfigurationError(f"Base AI weight must be within [0, 1], got {base}")

    if not config.enabled:
        return WeightAdjustment(adjusted_weight=base, reason=None)

    adjusted = base
    reason = None

    # Multi-sample confidence
    if confidence_level == "very_low":
        adjusted = base * config.very_low_multiplier
        reason = f"AI weight reduced due to very low multi-sample confidence ({confidence_level})"
    elif confidence_level == "low":
        adjusted = base * config.low_multiplier
        reason = f"AI weight reduced due to low multi-sample confidence ({confidence_level})"

    # Ensemble confidence (model vs. validation agreement)
    if ensemble_confidence < config.very_low_threshold:
        adjusted = adjusted * config.very_low_multiplier
        reason = (
            f"{reason}; also low ensemble confidence ({ensemble_confidence:g}%)"
            if reason
            else f"AI weight reduced due to low ensemble confidence ({ensemble_confidence:g}%)"
        )
    elif ensemble_confidence < config.low_threshold:
        adjusted = adjusted * config.low_multiplier
        reason = (
            f"{reason}; also medium ensemble confidence ({ensemble_confidence:g}%)"
            if reason
            else f"AI weight reduced due to medium ensemble confidence ({ensemble_confidence:g}%)"
        )

    adjusted = min(base, max(config.weight_floor, adjusted))
    return WeightAdjustment(adjusted_weight=adjusted, reason=reason)
