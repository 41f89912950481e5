"""Anti-gaming constants: thresholds, phrase tables, keyword sets and patterns."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Tuple

from ...platform.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

DETECTOR_NAMES = (
    "keyword_stuffing",
    "template_match",
    "ai_generated",
    "copy_paste",
    "low_effort",
    "pattern_gaming",
)


@dataclass(frozen=True)
class KeywordStuffingThresholds:
    warning_density: float = 0.15
    critical_density: float = 0.25
    # Same keyword more than this many times
    max_repetitions: int = 5
    min_unique_word_ratio: float = 0.4
    unique_ratio_min_words: int = 30


@dataclass(frozen=True)
class AIDetectionThresholds:
    phrases_for_warning: int = 3
    phrases_for_critical: int = 6
    min_formality_score: float = 0.7
    burstiness_threshold: float = 0.3
    min_sentences_for_burstiness: int = 3
    min_sentences_for_uniformity: int = 5


@dataclass(frozen=True)
class SimilarityThresholds:
    warning: float = 0.85
    critical: float = 0.95
    ngram_size: int = 3
    # Example similarity at or above this rejects regardless of risk level
    reject_example_similarity: float = 0.98


@dataclass(frozen=True)
class LowEffortThresholds:
    min_word_count: int = 20
    min_sentence_length: float = 5.0


@dataclass(frozen=True)
class RiskBlendConfig:
    weights: Tuple[Tuple[str, float], ...] = (
        ("keyword_stuffing", 0.15),
        ("template_match", 0.25),
        ("ai_generated", 0.20),
        ("copy_paste", 0.25),
        ("low_effort", 0.10),
        ("pattern_gaming", 0.05),
    )
    # Final risk = average_share * weighted average + (1 - average_share) * max
    average_share: float = 0.7
    # Lower bounds, checked from most to least severe
    critical_threshold: float = 80
    high_threshold: float = 60
    medium_threshold: float = 40
    low_threshold: float = 20

    @property
    def weight_map(self) -> Dict[str, float]:
        return dict(self.weights)


# Score penalties by risk level
RISK_PENALTIES = {
    "none": 0,
    "low": 0,
    "medium": 5,
    "high": 15,
    "critical": 30,
}


@dataclass(frozen=True)
class GamingConfig:
    keyword_stuffing: KeywordStuffingThresholds = field(default_factory=KeywordStuffingThresholds)
    ai_detection: AIDetectionThresholds = field(default_factory=AIDetectionThresholds)
    similarity: SimilarityThresholds = field(default_factory=SimilarityThresholds)
    low_effort: LowEffortThresholds = field(default_factory=LowEffortThresholds)
    risk: RiskBlendConfig = field(default_factory=RiskBlendConfig)
    template_matching_enabled: bool = True
    context_adjustments_enabled: bool = True


DEFAULT_GAMING_CONFIG = GamingConfig()


def gaming_config_from_settings(cfg: Settings | None = None) -> GamingConfig:
    cfg = cfg or default_settings
    weights = {**RiskBlendConfig().weight_map, **cfg.risk_weights}
    return GamingConfig(
        keyword_stuffing=KeywordStuffingThresholds(
            warning_density=cfg.GAMING_KEYWORD_WARNING_DENSITY,
            critical_density=cfg.GAMING_KEYWORD_CRITICAL_DENSITY,
            max_repetitions=cfg.GAMING_KEYWORD_MAX_REPETITIONS,
        ),
        ai_detection=AIDetectionThresholds(
            phrases_for_warning=cfg.GAMING_AI_PHRASES_FOR_WARNING,
            phrases_for_critical=cfg.GAMING_AI_PHRASES_FOR_CRITICAL,
            min_formality_score=cfg.GAMING_AI_MIN_FORMALITY,
            burstiness_threshold=cfg.GAMING_AI_BURSTINESS_THRESHOLD,
        ),
        similarity=SimilarityThresholds(
            warning=cfg.GAMING_SIMILARITY_WARNING,
            critical=cfg.GAMING_SIMILARITY_CRITICAL,
        ),
        low_effort=LowEffortThresholds(
            min_word_count=cfg.GAMING_MIN_WORD_COUNT,
            min_sentence_length=cfg.GAMING_MIN_SENTENCE_LENGTH,
        ),
        risk=RiskBlendConfig(
            weights=tuple((name, weights[name]) for name in DETECTOR_NAMES if name in weights),
            average_share=cfg.GAMING_RISK_AVERAGE_SHARE,
        ),
        template_matching_enabled=cfg.GAMING_TEMPLATE_MATCHING_ENABLED,
        context_adjustments_enabled=cfg.GAMING_CONTEXT_ADJUSTMENTS_ENABLED,
    )


# phrase -> (weight, confidence). Formal transitions are low weight because
# they are common in legitimate professional writing; chatbot phrasing is high.
AI_PHRASES: Dict[str, Tuple[float, float]] = {
    # Formal transitions
    "in conclusion": (0.1, 0.3),
    "furthermore": (0.1, 0.3),
    "moreover": (0.1, 0.3),
    "additionally": (0.1, 0.3),
    "firstly": (0.1, 0.3),
    "secondly": (0.1, 0.3),
    "thirdly": (0.1, 0.3),
    "lastly": (0.1, 0.3),
    # Meta-noting
    "it is worth noting": (0.2, 0.4),
    "it is important to note": (0.2, 0.4),
    "it should be noted": (0.2, 0.4),
    # Hedging
    "may or may not": (0.15, 0.4),
    "it could be argued": (0.2, 0.4),
    "one might consider": (0.2, 0.5),
    "it can be said": (0.2, 0.4),
    # Generic acknowledgments
    "great question": (0.5, 0.8),
    "that's a great question": (0.6, 0.85),
    "thank you for asking": (0.5, 0.8),
    "excellent question": (0.5, 0.8),
    # Assistant phrasing
    "i'd be happy to": (0.5, 0.85),
    "i hope this helps": (0.6, 0.9),
    "feel free to ask": (0.4, 0.7),
    "let me explain": (0.2, 0.4),
    "here are some": (0.15, 0.35),
    "here is a": (0.1, 0.3),
    # Overly structured language
    "there are several": (0.1, 0.3),
    "key points include": (0.15, 0.4),
    "important factors": (0.1, 0.3),
    "crucial aspects": (0.1, 0.3),
    # Meta-commentary
    "as mentioned earlier": (0.1, 0.3),
    "as stated above": (0.1, 0.3),
    "to summarize": (0.15, 0.4),
    "in summary": (0.15, 0.4),
    # Chatbot responses
    "certainly!": (0.6, 0.85),
    "absolutely!": (0.4, 0.6),
    "i understand your": (0.5, 0.8),
    "as an ai": (0.9, 0.99),
    "as a language model": (0.9, 0.99),
    "i cannot provide": (0.7, 0.9),
    "i'm not able to": (0.5, 0.75),
}

FORMAL_INDICATOR_PATTERNS = [
    r"\b(therefore|thus|hence|consequently|accordingly)\b",
    r"\b(shall|ought|must|hereby)\b",
    r"\b(aforementioned|hereunder|therein|whereby)\b",
]

PLACEHOLDER_PATTERNS = [
    r"(?i)\[your\s+(answer|response|name|company|text)\]",
    r"(?i)\{(name|company|role|position)\}",
    r"\.\.\.\s*$",
    r"(?i)^e\.g\.,?\s",
    r"(?i)lorem ipsum",
    r"(?i)xxx+",
    r"(?i)\[insert\s+",
    r"(?i)\[add\s+",
    r"(?i)<your\s+",
]

INCOMPLETE_PATTERNS = [
    r"(?i)^(todo|tbd|fix|incomplete|finish)\b",
    r"(?i)\(to be\s+(completed|filled|added)\)",
    r"(?i)will\s+add\s+later",
    r"\bTODO\b",
]

SENTENCE_SPLIT_PATTERN = r"[.!?]+"

# Keywords by skill category for stuffing detection
SKILL_KEYWORDS: Dict[str, Dict[str, list]] = {
    "boolean": {
        "primary": ["and", "or", "not", "boolean", "search", "operator", "query"],
        "secondary": ["string", "filter", "syntax", "parentheses", "quotes"],
    },
    "xray": {
        # Matched after stripping non-word characters, so "site:" -> "site".
        "primary": ["site", "inurl", "filetype", "google", "xray", "intitle"],
        "secondary": ["search", "linkedin", "resume", "profile", "github"],
    },
    "linkedin": {
        "primary": ["linkedin", "profile", "connection", "inmail", "recruiter"],
        "secondary": ["network", "search", "filter", "talent", "endorse"],
    },
    "outreach": {
        "primary": ["email", "message", "reach", "connect", "response", "subject"],
        "secondary": ["personalize", "candidate", "opportunity", "followup"],
    },
    "diversity": {
        "primary": ["diversity", "inclusion", "equity", "dei", "underrepresented"],
        "secondary": ["bias", "representation", "inclusive", "belonging"],
    },
    "persona": {
        "primary": ["persona", "candidate", "profile", "ideal", "requirements"],
        "secondary": ["skills", "experience", "background", "qualifications"],
    },
    "general": {
        "primary": ["sourcing", "recruiting", "talent", "candidate", "hire"],
        "secondary": ["search", "pipeline", "strategy", "outreach"],
    },
}


def load_skill_keywords(path: str | None = None) -> Dict[str, Dict[str, list]]:
    """Built-in keyword sets merged with an optional JSON file (file wins)."""
    merged = {category: dict(sets) for category, sets in SKILL_KEYWORDS.items()}
    source = path or default_settings.SKILL_KEYWORDS_FILE
    if not source:
        return merged
    payload = json.loads(Path(source).read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"Skill keyword file {source} must contain a JSON object")
    for category, sets in payload.items():
        if not isinstance(sets, dict):
            raise ValueError(f"Keyword set for {category!r} must be an object")
        merged[str(category)] = {
            "primary": [str(k).lower() for k in sets.get("primary") or []],
            "secondary": [str(k).lower() for k in sets.get("secondary") or []],
        }
    logger.info("Loaded %d skill keyword categories from %s", len(payload), source)
    return merged
