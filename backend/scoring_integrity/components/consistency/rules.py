"""Consistency constants: sampling, cross-validation and weighting defaults."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

from ...platform.config import Settings, settings as default_settings
from ..integrations.claude.model_fallback import PRIMARY_HAIKU_MODEL, PRIMARY_SONNET_MODEL


@dataclass(frozen=True)
class MultiSampleConfig:
    enabled: bool = True
    # 2 samples balances accuracy against latency
    sample_count: int = 2
    temperatures: Tuple[float, ...] = (0.3, 0.5)
    use_median: bool = True
    # Variance of 100 = 10 point std dev
    variance_confidence_ceiling: float = 100.0


@dataclass(frozen=True)
class CrossValidationConfig:
    enabled: bool = True
    primary_model: str = PRIMARY_HAIKU_MODEL
    secondary_model: str = PRIMARY_SONNET_MODEL
    stakes_threshold: float = 85.0
    max_divergence: float = 15.0
    use_average_on_divergence: bool = True
    # Matches the primary scoring temperature
    temperature: float = 0.35


@dataclass(frozen=True)
class ConfidenceAdjustmentConfig:
    enabled: bool = True
    low_threshold: float = 60.0
    very_low_threshold: float = 40.0
    low_multiplier: float = 0.8
    very_low_multiplier: float = 0.6
    weight_floor: float = 0.2


@dataclass(frozen=True)
class ScoringConsistencyConfig:
    multi_sample: MultiSampleConfig = field(default_factory=MultiSampleConfig)
    cross_validation: CrossValidationConfig = field(default_factory=CrossValidationConfig)
    confidence_adjustment: ConfidenceAdjustmentConfig = field(default_factory=ConfidenceAdjustmentConfig)
    # "ensemble_approximation" derives sampling confidence from the external
    # ensemble-agreement percentage instead of re-scoring; "resample" runs the
    # sample collector for real.
    confidence_mode: str = "ensemble_approximation"


DEFAULT_CONSISTENCY_CONFIG = ScoringConsistencyConfig()

# Ensemble-agreement approximation: |ensemble - 50| * 2 is treated as a
# variance proxy and bucketed with these upper bounds.
APPROXIMATION_VERY_LOW_RANGE = 30.0
APPROXIMATION_LOW_RANGE = 50.0
APPROXIMATION_MEDIUM_RANGE = 70.0


def consistency_config_from_settings(cfg: Settings | None = None) -> ScoringConsistencyConfig:
    cfg = cfg or default_settings
    return ScoringConsistencyConfig(
        multi_sample=MultiSampleConfig(
            enabled=cfg.MULTI_SAMPLE_ENABLED,
            sample_count=cfg.MULTI_SAMPLE_COUNT,
            temperatures=tuple(cfg.sample_temperatures),
            use_median=cfg.MULTI_SAMPLE_USE_MEDIAN,
            variance_confidence_ceiling=cfg.MULTI_SAMPLE_VARIANCE_CEILING,
        ),
        cross_validation=CrossValidationConfig(
            enabled=cfg.CROSS_VALIDATION_ENABLED,
            primary_model=cfg.resolved_claude_model,
            secondary_model=cfg.resolved_secondary_model,
            stakes_threshold=cfg.CROSS_VALIDATION_STAKES_THRESHOLD,
            max_divergence=cfg.CROSS_VALIDATION_MAX_DIVERGENCE,
            use_average_on_divergence=cfg.CROSS_VALIDATION_USE_AVERAGE,
            temperature=cfg.CROSS_VALIDATION_TEMPERATURE,
        ),
        confidence_adjustment=ConfidenceAdjustmentConfig(
            enabled=cfg.CONFIDENCE_ADJUSTMENT_ENABLED,
            low_threshold=cfg.CONFIDENCE_LOW_THRESHOLD,
            very_low_threshold=cfg.CONFIDENCE_VERY_LOW_THRESHOLD,
            low_multiplier=cfg.CONFIDENCE_LOW_MULTIPLIER,
            very_low_multiplier=cfg.CONFIDENCE_VERY_LOW_MULTIPLIER,
            weight_floor=cfg.CONFIDENCE_WEIGHT_FLOOR,
        ),
        confidence_mode=cfg.CONFIDENCE_MODE,
    )
