"""Per-game writing expectations and the score adjustments they justify."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from .schemas import GameWritingContext, StyleComparison

# AI score below which AI/formality flags are dropped after a context reduction
AI_FLAG_RETENTION_SCORE = 30
# Template scores in (0, this) are reduced for structured games
TEMPLATE_REDUCTION_CEILING = 70
TEMPLATE_REDUCTION_FACTOR = 0.6
STYLE_DEVIATION_THRESHOLD = 60
STYLE_DEVIATION_MAX_PENALTY = 20


def _ctx(game_type: str, formality: str, structure: str, tolerant: bool, lo: int, hi: int) -> GameWritingContext:
    return GameWritingContext(
        game_type=game_type,
        expected_formality=formality,
        expected_structure=structure,
        tolerate_ai_phrases=tolerant,
        tolerate_formal_language=tolerant,
        expected_min_length=lo,
        expected_max_length=hi,
    )


GAME_WRITING_CONTEXTS: Dict[str, GameWritingContext] = {
    "boolean": _ctx("boolean_search", "technical", "code-like", False, 10, 500),
    "xray": _ctx("boolean_search", "technical", "code-like", False, 15, 800),
    "outreach": _ctx("outreach_email", "professional", "structured", True, 50, 1500),
    "job-description": _ctx("job_description", "formal", "template-like", True, 100, 3000),
    "screening": _ctx("screening_questions", "professional", "structured", True, 30, 1000),
    "negotiation": _ctx("negotiation_script", "professional", "freeform", True, 50, 2000),
    "diversity": _ctx("diversity_plan", "formal", "structured", True, 75, 2500),
    "persona": _ctx("candidate_note", "professional", "freeform", False, 30, 1500),
    "ats": _ctx("strategy_document", "professional", "structured", True, 50, 2000),
    "linkedin": _ctx("outreach_email", "professional", "structured", True, 30, 1000),
    "talent-intelligence": _ctx("strategy_document", "formal", "structured", True, 100, 3000),
    "ai-prompting": _ctx("general", "technical", "freeform", True, 20, 2000),
    "multiplatform": _ctx("sourcing_strategy", "professional", "structured", True, 50, 2500),
    "general": _ctx("general", "professional", "freeform", False, 20, 2000),
}


def get_game_writing_context(skill_category: str) -> GameWritingContext:
    return GAME_WRITING_CONTEXTS.get(skill_category) or GAME_WRITING_CONTEXTS["general"]


@dataclass
class ContextAdjustment:
    scores: Dict[str, float]
    flags: List[str]
    context_adjustments: List[str] = field(default_factory=list)


def _is_ai_flag(flag: str) -> bool:
    return "AI" in flag or "formal" in flag.lower()


def apply_context_adjustments(
    scores: Mapping[str, float],
    flags: List[str],
    game_context: GameWritingContext,
    style_comparison: Optional[StyleComparison] = None,
) -> ContextAdjustment:
    """Soften or sharpen detector scores for the game's expected writing style.

    Inputs are not mutated.
    """
    adjusted = {name: float(value) for name, value in scores.items()}
    adjusted_flags = list(flags)
    notes: List[str] = []

    # Formal writing expected
    ai_score = adjusted.get("ai_generated", 0.0)
    if (game_context.tolerate_ai_phrases or game_context.tolerate_formal_language) and ai_score > 0:
        reduction = 0.5 if game_context.tolerate_ai_phrases else 0.3
        adjusted["ai_generated"] = max(0.0, ai_score * (1 - reduction))
        notes.append(f"AI score reduced (formal writing expected for {game_context.game_type})")
        if adjusted["ai_generated"] < AI_FLAG_RETENTION_SCORE:
            adjusted_flags = [f for f in adjusted_flags if not _is_ai_flag(f)]

    # Structured output expected
    template_score = adjusted.get("template_match", 0.0)
    if game_context.expected_structure in ("template-like", "structured") and 0 < template_score < TEMPLATE_REDUCTION_CEILING:
        adjusted["template_match"] = max(0.0, template_score * TEMPLATE_REDUCTION_FACTOR)
        notes.append("Template score reduced (structured format expected)")

    # Player's own history
    if style_comparison is not None and style_comparison.confidence_level != "low":
        ai_score = adjusted.get("ai_generated", 0.0)
        if style_comparison.is_consistent_with_history:
            bonus = 0.3 if style_comparison.confidence_level == "high" else 0.2
            adjusted["ai_generated"] = max(0.0, ai_score * (1 - bonus))
            notes.append(
                f"Style consistent with player history (confidence: {style_comparison.confidence_level})"
            )
        elif style_comparison.deviation_score > STYLE_DEVIATION_THRESHOLD:
            penalty = min(STYLE_DEVIATION_MAX_PENALTY, style_comparison.deviation_score * 0.3)
            adjusted["ai_generated"] = min(100.0, ai_score + penalty)
            notes.append(f"Style deviates from player history: {', '.join(style_comparison.deviations)}")
            adjusted_flags.append("Writing style significantly different from usual")

    return ContextAdjustment(scores=adjusted, flags=adjusted_flags, context_adjustments=notes)
