"""Anti-gaming detection service.

Runs the detector registry and the template detector over one submission,
blends the sub-scores into a risk assessment and, in the context-aware
variant, adjusts them for the game's writing style and the player's history.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ...shared.utils import run_coroutine_sync
from .context import apply_context_adjustments, get_game_writing_context
from .detectors import IntegrityScanner
from .risk import RiskClassifier, primary_detection_type
from .rules import DEFAULT_GAMING_CONFIG, GamingConfig
from .schemas import (
    DetectionContext,
    GamingDetectionResult,
    GamingSignals,
    StyleComparison,
    TemplateCatalog,
)
from .style import build_player_style_profile, compare_to_player_style

logger = logging.getLogger("scoring_integrity.integrity")

_FEEDBACK_BY_RISK = {
    "critical": "This submission appears to be copied or generated. Please provide an original response.",
    "high": "Some aspects of this submission may need review. Consider revising for originality.",
    "medium": "A small scoring adjustment was applied. Focus on providing unique, thoughtful responses.",
}


@dataclass
class _Detection:
    scores: Dict[str, float]
    flags: List[str]
    signals: GamingSignals


async def _run_detectors(
    submission_text: str,
    context: DetectionContext,
    template_store: Optional[TemplateCatalog],
    config: GamingConfig,
    scanner: Optional[IntegrityScanner],
) -> _Detection:
    scanner = scanner or IntegrityScanner(config=config)
    results = await scanner.scan_all(submission_text, context, template_store)
    return _Detection(
        scores=scanner.collect_scores(results),
        flags=scanner.collect_flags(results),
        signals=scanner.assemble_signals(results),
    )


def _build_result(
    scores: Dict[str, float],
    flags: List[str],
    signals: GamingSignals,
    config: GamingConfig,
    started: float,
    context_adjustments: Optional[List[str]] = None,
) -> GamingDetectionResult:
    assessment = RiskClassifier(config.risk, config.similarity).classify(scores, signals, flags)
    return GamingDetectionResult(
        assessment=assessment,
        signals=signals,
        context_adjustments=context_adjustments or [],
        detection_type=primary_detection_type(assessment.per_detector_scores),
        processing_time_ms=int((time.perf_counter() - started) * 1000),
    )


async def detect_gaming(
    submission_text: str,
    context: DetectionContext,
    template_store: Optional[TemplateCatalog] = None,
    config: GamingConfig | None = None,
    *,
    scanner: Optional[IntegrityScanner] = None,
) -> GamingDetectionResult:
    """Score a submission for gaming behaviour.

    Catalog failures degrade to "no template match". Missing category
    keywords raise ScoringConfigurationError.
    """
    config = config or DEFAULT_GAMING_CONFIG
    started = time.perf_counter()
    detection = await _run_detectors(submission_text, context, template_store, config, scanner)
    result = _build_result(detection.scores, detection.flags, detection.signals, config, started)
    if result.overall_risk != "none":
        logger.info(
            "Gaming risk game=%s player=%s risk=%s score=%d action=%s",
            context.game_id,
            context.player_id,
            result.overall_risk,
            result.risk_score,
            result.recommended_action,
        )
    return result


def _style_comparison(submission_text: str, context: DetectionContext) -> Optional[StyleComparison]:
    profile = context.player_style_profile
    if profile is None and context.player_history and context.player_history.recent_submissions:
        profile = build_player_style_profile(context.player_id, context.player_history.recent_submissions)
    if profile is None:
        return None
    return compare_to_player_style(submission_text, profile)


async def detect_gaming_with_context(
    submission_text: str,
    context: DetectionContext,
    template_store: Optional[TemplateCatalog] = None,
    config: GamingConfig | None = None,
    *,
    scanner: Optional[IntegrityScanner] = None,
) -> GamingDetectionResult:
    """detect_gaming, then re-classify after game and player-style adjustments."""
    config = config or DEFAULT_GAMING_CONFIG
    started = time.perf_counter()
    detection = await _run_detectors(submission_text, context, template_store, config, scanner)
    if not config.context_adjustments_enabled:
        return _build_result(detection.scores, detection.flags, detection.signals, config, started)

    game_context = context.game_context or get_game_writing_context(context.skill_category)
    adjustment = apply_context_adjustments(
        detection.scores,
        detection.flags,
        game_context,
        _style_comparison(submission_text, context),
    )
    return _build_result(
        adjustment.scores,
        adjustment.flags,
        detection.signals,
        config,
        started,
        context_adjustments=adjustment.context_adjustments,
    )


def detect_gaming_sync(*args: Any, **kwargs: Any) -> GamingDetectionResult:
    """Synchronous wrapper for detect_gaming."""
    return run_coroutine_sync(lambda: detect_gaming(*args, **kwargs))


def format_gaming_feedback(result: GamingDetectionResult) -> str:
    """Player-facing plain-text note; empty for low or no risk."""
    if result.overall_risk == "none" or not result.flags:
        return ""
    message = _FEEDBACK_BY_RISK.get(result.overall_risk, "")
    if message and result.context_adjustments:
        notes = "\n".join(f"- {note}" for note in result.context_adjustments)
        message = f"{message}\nScoring context adjustments applied:\n{notes}"
    return message


def log_gaming_analytics(
    result: GamingDetectionResult,
    game_id: str,
    player_id: str,
    original_score: int,
    adjusted_score: int,
) -> None:
    scores = result.scores
    logger.info(
        "Gaming game=%s player=%s risk=%s score=%d action=%s penalty=%d type=%s "
        "scores=[%s] words=%d score=%d->%d",
        game_id,
        player_id,
        result.overall_risk,
        result.risk_score,
        result.recommended_action,
        result.score_penalty,
        result.detection_type or "-",
        ",".join(f"{name}:{value}" for name, value in scores.items()),
        result.signals.word_count,
        original_score,
        adjusted_score,
    )
