"""Blend detector sub-scores into a risk level, action and score penalty."""

from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional, Tuple

from ...shared.utils import to_score
from .rules import DEFAULT_GAMING_CONFIG, DETECTOR_NAMES, RISK_PENALTIES, RiskBlendConfig, SimilarityThresholds
from .schemas import GamingSignals, RecommendedAction, RiskAssessment, RiskLevel

# Detectors considered when labelling an assessment for audit
_DETECTION_TYPES = (
    ("template_match", "template"),
    ("ai_generated", "ai"),
    ("copy_paste", "copy"),
)
DETECTION_TYPE_MIN_SCORE = 30


def blend_risk_score(
    scores: Mapping[str, float],
    weights: Mapping[str, float],
    average_share: float = 0.7,
) -> int:
    """Weighted average over categories that fired, blended with the max.

    Returns 0 when no weighted category fired.
    """
    total = 0.0
    total_weight = 0.0
    for name, weight in weights.items():
        score = float(scores.get(name, 0.0))
        if score > 0 and weight > 0:
            total += score * weight
            total_weight += weight
    if total_weight == 0:
        return 0
    max_score = max((float(s) for s in scores.values()), default=0.0)
    return to_score((total / total_weight) * average_share + max_score * (1 - average_share))


def risk_level_for(risk_score: float, config: RiskBlendConfig = DEFAULT_GAMING_CONFIG.risk) -> RiskLevel:
    if risk_score >= config.critical_threshold:
        return "critical"
    if risk_score >= config.high_threshold:
        return "high"
    if risk_score >= config.medium_threshold:
        return "medium"
    if risk_score >= config.low_threshold:
        return "low"
    return "none"


def action_for(
    level: RiskLevel,
    example_similarity: float = 0.0,
    reject_similarity: float = DEFAULT_GAMING_CONFIG.similarity.reject_example_similarity,
) -> Tuple[RecommendedAction, int]:
    if level == "critical" or example_similarity >= reject_similarity:
        return "reject", RISK_PENALTIES["critical"]
    if level == "high":
        return "flag_review", RISK_PENALTIES["high"]
    if level == "medium":
        return "penalize", RISK_PENALTIES["medium"]
    if level == "low":
        return "warn", RISK_PENALTIES["low"]
    return "allow", RISK_PENALTIES["none"]


def primary_detection_type(scores: Mapping[str, float]) -> Optional[str]:
    """Audit label for the dominant copy-like detector, or None below 30."""
    best = max(float(scores.get(name, 0.0)) for name, _ in _DETECTION_TYPES)
    if best < DETECTION_TYPE_MIN_SCORE:
        return None
    for name, label in _DETECTION_TYPES:
        if float(scores.get(name, 0.0)) == best:
            return label
    return None


class RiskClassifier:
    def __init__(
        self,
        config: RiskBlendConfig = DEFAULT_GAMING_CONFIG.risk,
        similarity: SimilarityThresholds = DEFAULT_GAMING_CONFIG.similarity,
    ):
        self.config = config
        self.similarity = similarity

    def classify(
        self,
        scores: Mapping[str, float],
        signals: GamingSignals,
        flags: Iterable[str] = (),
    ) -> RiskAssessment:
        per_detector: Dict[str, int] = {name: to_score(scores.get(name, 0.0)) for name in DETECTOR_NAMES}
        risk_score = blend_risk_score(scores, self.config.weight_map, self.config.average_share)
        level = risk_level_for(risk_score, self.config)
        action, penalty = action_for(level, signals.example_similarity, self.similarity.reject_example_similarity)
        return RiskAssessment(
            overall_risk=level,
            risk_score=risk_score,
            per_detector_scores=per_detector,
            flags=list(flags),
            recommended_action=action,
            score_penalty=penalty,
        )
