import json
from dataclasses import dataclass
from typing import Dict, List, Optional

from pydantic_settings import BaseSettings


CONFIDENCE_MODES = ("ensemble_approximation", "resample")


@dataclass(frozen=True)
class PipelineFeatureFlags:
    multi_sample_enabled: bool
    cross_validation_enabled: bool
    confidence_adjustment_enabled: bool
    template_matching_enabled: bool
    context_adjustments_enabled: bool


class Settings(BaseSettings):
    # Claude / Anthropic
    ANTHROPIC_API_KEY: str = ""
    # Primary scoring model. Default Haiku for cost.
    CLAUDE_MODEL: str = "claude-3-5-haiku-latest"
    # Independent model consulted for high-stakes scores.
    CLAUDE_SECONDARY_MODEL: str = "claude-3-5-sonnet-latest"
    MAX_TOKENS_PER_RESPONSE: int = 800

    # Multi-sample scoring
    MULTI_SAMPLE_ENABLED: bool = True
    MULTI_SAMPLE_COUNT: int = 2
    MULTI_SAMPLE_TEMPERATURES: str = "0.3,0.5"
    MULTI_SAMPLE_USE_MEDIAN: bool = True
    # Variance of 100 = 10 point std dev
    MULTI_SAMPLE_VARIANCE_CEILING: float = 100.0
    # "ensemble_approximation" derives confidence from ensemble agreement
    # without re-scoring; "resample" issues real sample calls.
    CONFIDENCE_MODE: str = "ensemble_approximation"

    # Cross-model validation
    CROSS_VALIDATION_ENABLED: bool = True
    CROSS_VALIDATION_STAKES_THRESHOLD: float = 85.0
    CROSS_VALIDATION_MAX_DIVERGENCE: float = 15.0
    CROSS_VALIDATION_USE_AVERAGE: bool = True
    CROSS_VALIDATION_TEMPERATURE: float = 0.35

    # Confidence-adjusted weighting
    CONFIDENCE_ADJUSTMENT_ENABLED: bool = True
    CONFIDENCE_LOW_THRESHOLD: float = 60.0
    CONFIDENCE_VERY_LOW_THRESHOLD: float = 40.0
    CONFIDENCE_LOW_MULTIPLIER: float = 0.8
    CONFIDENCE_VERY_LOW_MULTIPLIER: float = 0.6
    # Never go below 20% AI weight
    CONFIDENCE_WEIGHT_FLOOR: float = 0.2

    # Anti-gaming thresholds
    GAMING_KEYWORD_WARNING_DENSITY: float = 0.15
    GAMING_KEYWORD_CRITICAL_DENSITY: float = 0.25
    GAMING_KEYWORD_MAX_REPETITIONS: int = 5
    GAMING_AI_PHRASES_FOR_WARNING: int = 3
    GAMING_AI_PHRASES_FOR_CRITICAL: int = 6
    GAMING_AI_BURSTINESS_THRESHOLD: float = 0.3
    GAMING_AI_MIN_FORMALITY: float = 0.7
    GAMING_SIMILARITY_WARNING: float = 0.85
    GAMING_SIMILARITY_CRITICAL: float = 0.95
    GAMING_MIN_WORD_COUNT: int = 20
    GAMING_MIN_SENTENCE_LENGTH: float = 5.0
    GAMING_TEMPLATE_MATCHING_ENABLED: bool = True
    GAMING_CONTEXT_ADJUSTMENTS_ENABLED: bool = True

    # Risk blend (configurable per deployment)
    # Keys: keyword_stuffing, template_match, ai_generated, copy_paste,
    #       low_effort, pattern_gaming
    GAMING_RISK_WEIGHTS: str = '{"keyword_stuffing":0.15,"template_match":0.25,"ai_generated":0.20,"copy_paste":0.25,"low_effort":0.10,"pattern_gaming":0.05}'
    # Share of the weighted average in the final risk score; the rest comes
    # from the maximum sub-score.
    GAMING_RISK_AVERAGE_SHARE: float = 0.7

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    @property
    def resolved_claude_model(self) -> str:
        """Primary scoring model. Defaults to claude-3-5-haiku-latest."""
        model = (self.CLAUDE_MODEL or "").strip()
        return model or "claude-3-5-haiku-latest"

    @property
    def resolved_secondary_model(self) -> str:
        """Secondary scoring model; must differ from the primary to be independent."""
        model = (self.CLAUDE_SECONDARY_MODEL or "").strip()
        return model or "claude-3-5-sonnet-latest"

    @property
    def sample_temperatures(self) -> List[float]:
        return [float(part) for part in self.MULTI_SAMPLE_TEMPERATURES.split(",") if part.strip()]

    @property
    def risk_weights(self) -> Dict[str, float]:
        return {key: float(value) for key, value in json.loads(self.GAMING_RISK_WEIGHTS).items()}

    def model_post_init(self, __context) -> None:
        if self.MULTI_SAMPLE_COUNT not in (2, 3):
            raise ValueError("MULTI_SAMPLE_COUNT must be 2 or 3.")
        try:
            temperatures = self.sample_temperatures
        except ValueError as exc:
            raise ValueError(f"MULTI_SAMPLE_TEMPERATURES is not a list of floats: {exc}") from exc
        if len(temperatures) < self.MULTI_SAMPLE_COUNT:
            raise ValueError(
                "MULTI_SAMPLE_TEMPERATURES must provide at least MULTI_SAMPLE_COUNT values."
            )
        if self.CONFIDENCE_MODE not in CONFIDENCE_MODES:
            raise ValueError(f"CONFIDENCE_MODE must be one of {', '.join(CONFIDENCE_MODES)}.")
        try:
            weights = self.risk_weights
        except (json.JSONDecodeError, AttributeError, TypeError, ValueError) as exc:
            raise ValueError(f"GAMING_RISK_WEIGHTS is not a JSON object of numbers: {exc}") from exc
        if any(value < 0 for value in weights.values()):
            raise ValueError("GAMING_RISK_WEIGHTS values must be non-negative.")
        if self.resolved_secondary_model == self.resolved_claude_model:
            raise ValueError("CLAUDE_SECONDARY_MODEL must differ from CLAUDE_MODEL.")

    @property
    def feature_flags(self) -> PipelineFeatureFlags:
        return PipelineFeatureFlags(
            multi_sample_enabled=self.MULTI_SAMPLE_ENABLED,
            cross_validation_enabled=self.CROSS_VALIDATION_ENABLED,
            confidence_adjustment_enabled=self.CONFIDENCE_ADJUSTMENT_ENABLED,
            template_matching_enabled=self.GAMING_TEMPLATE_MATCHING_ENABLED,
            context_adjustments_enabled=self.GAMING_CONTEXT_ADJUSTMENTS_ENABLED,
        )

    # Optional path for a JSON file of extra skill-category keyword sets:
    # {"sourcing":{"primary":["..."],"secondary":["..."]}}
    SKILL_KEYWORDS_FILE: Optional[str] = None

    model_config = {
        "env_file": ".env",
        "extra": "ignore",
    }


settings = Settings()
