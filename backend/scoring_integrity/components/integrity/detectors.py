"""Registry of independent gaming detectors.

Each detector is a pure function of the submission text and its context and
returns a 0-100 sub-score with human-readable flags. Template matching is the
only detector that reads external state (the template catalog), so it is kept
out of the synchronous registry and awaited separately.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import math
import re
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

from pydantic import ValidationError

from ...platform.errors import ScoringConfigurationError, TemplateCatalogError
from ...shared.utils import clamp
from .rules import (
    AI_PHRASES,
    DEFAULT_GAMING_CONFIG,
    DETECTOR_NAMES,
    FORMAL_INDICATOR_PATTERNS,
    INCOMPLETE_PATTERNS,
    PLACEHOLDER_PATTERNS,
    SENTENCE_SPLIT_PATTERN,
    AIDetectionThresholds,
    GamingConfig,
    KeywordStuffingThresholds,
    LowEffortThresholds,
    SimilarityThresholds,
    load_skill_keywords,
)
from .schemas import (
    DetectionContext,
    DetectorName,
    DetectorResult,
    GamingSignals,
    KeywordSet,
    KnownTemplate,
    TemplateCatalog,
)
from .similarity import best_template_match, normalize_text, similarity

logger = logging.getLogger(__name__)

_NON_WORD = re.compile(r"[^\w]")
_SENTENCE_SPLIT = re.compile(SENTENCE_SPLIT_PATTERN)
_FORMAL_INDICATORS = [re.compile(p, re.IGNORECASE) for p in FORMAL_INDICATOR_PATTERNS]
_PLACEHOLDERS = [re.compile(p) for p in PLACEHOLDER_PATTERNS]
_INCOMPLETE = [re.compile(p) for p in INCOMPLETE_PATTERNS]


class Detector(Protocol):
    name: DetectorName

    def scan(self, text: str, context: DetectionContext) -> DetectorResult:
        ...


def formality_score(text: str) -> float:
    """Formal connectives per 50 words, capped at 1."""
    word_count = len(text.split())
    if word_count == 0:
        return 0.0
    hits = sum(len(pattern.findall(text)) for pattern in _FORMAL_INDICATORS)
    return min(1.0, hits / (word_count / 50))


def _pct(value: float) -> str:
    return f"{value * 100:.1f}%"


class KeywordStuffingDetector:
    name: DetectorName = "keyword_stuffing"

    def __init__(
        self,
        thresholds: KeywordStuffingThresholds = DEFAULT_GAMING_CONFIG.keyword_stuffing,
        keyword_table: Optional[Dict[str, Dict[str, list]]] = None,
    ):
        self.thresholds = thresholds
        self._keyword_table = keyword_table

    @property
    def keyword_table(self) -> Dict[str, Dict[str, list]]:
        if self._keyword_table is None:
            self._keyword_table = load_skill_keywords()
        return self._keyword_table

    def keywords_for(self, context: DetectionContext) -> set:
        if context.keywords is not None:
            keyword_set = context.keywords
            source = "context"
        else:
            table = self.keyword_table
            category = context.skill_category if context.skill_category in table else "general"
            keyword_set = KeywordSet.model_validate(table.get(category) or {})
            source = f"category {category!r}"
        keywords = keyword_set.all_keywords
        if not keywords:
            raise ScoringConfigurationError(f"No keywords configured for {source}")
        return keywords

    def scan(self, text: str, context: DetectionContext) -> DetectorResult:
        t = self.thresholds
        keywords = self.keywords_for(context)
        words = text.lower().split()

        counts: Dict[str, int] = {}
        for word in words:
            clean = _NON_WORD.sub("", word)
            if clean in keywords:
                counts[clean] = counts.get(clean, 0) + 1
        occurrences = sum(counts.values())

        density = occurrences / len(words) if words else 0.0
        repeated = sorted(k for k, c in counts.items() if c > t.max_repetitions)
        unique_ratio = len(set(words)) / len(words) if words else 0.0

        score = 0.0
        flags: List[str] = []
        suspicious = False
        if density > t.critical_density:
            score = 80 + (density - t.critical_density) * 100
            suspicious = True
            flags.append(f"Critical keyword stuffing detected ({_pct(density)} density)")
        elif density > 0 and density >= t.warning_density:
            score = 40 + (density - t.warning_density) * 200
            flags.append(f"Elevated keyword density ({_pct(density)})")

        if repeated:
            score += 20
            flags.append(f"Repeated keywords: {', '.join(repeated)}")

        if unique_ratio < t.min_unique_word_ratio and len(words) > t.unique_ratio_min_words:
            score += 15
            flags.append("Low vocabulary diversity")

        return DetectorResult(
            name=self.name,
            score=clamp(score),
            flags=flags,
            signals={
                "keyword_density": density,
                "unique_word_ratio": unique_ratio,
                "repeated_keywords": repeated,
                "suspicious_keyword_patterns": suspicious,
            },
        )


class AIGeneratedDetector:
    name: DetectorName = "ai_generated"

    def __init__(self, thresholds: AIDetectionThresholds = DEFAULT_GAMING_CONFIG.ai_detection):
        self.thresholds = thresholds

    def scan(self, text: str, context: DetectionContext) -> DetectorResult:
        t = self.thresholds
        lowered = text.lower()

        matched = [phrase for phrase in AI_PHRASES if phrase in lowered]
        phrase_score = min(100.0, sum(w * c * 100 for w, c in (AI_PHRASES[p] for p in matched)))

        sentences = [s for s in _SENTENCE_SPLIT.split(text) if len(s.strip()) > 5]
        lengths = [len(s.split()) for s in sentences]
        burstiness = 0.0
        patterns: List[str] = []
        if len(lengths) >= t.min_sentences_for_burstiness:
            avg = sum(lengths) / len(lengths)
            variance = sum((n - avg) ** 2 for n in lengths) / len(lengths)
            burstiness = math.sqrt(variance) / avg if avg > 0 else 0.0
            if burstiness < t.burstiness_threshold and len(lengths) >= t.min_sentences_for_uniformity:
                patterns.append("uniform_sentence_length")
        variety = len(set(lengths)) / len(lengths) if lengths else 0.0

        formality = formality_score(text)

        score = 0.0
        flags: List[str] = []
        if len(matched) >= t.phrases_for_critical:
            score = 70 + phrase_score * 0.3
            flags.append(f"Strong AI-generation indicators ({len(matched)} AI phrases detected)")
        elif len(matched) >= t.phrases_for_warning:
            score = 40 + phrase_score * 0.3
            flags.append(f"Possible AI-generated content ({len(matched)} AI phrases)")

        if "uniform_sentence_length" in patterns:
            score += 15
            flags.append("Uniform sentence structure (AI pattern)")

        if formality > t.min_formality_score:
            score += 10
            flags.append("Unusually formal language")

        return DetectorResult(
            name=self.name,
            score=clamp(score),
            flags=flags,
            signals={
                "ai_phrase_count": len(matched),
                "ai_phrase_score": phrase_score,
                "matched_ai_phrases": matched,
                "formality_score": formality,
                "structural_patterns": patterns,
                "sentence_variety": variety,
                "burstiness_score": burstiness,
            },
        )


class LowEffortDetector:
    name: DetectorName = "low_effort"

    def __init__(self, thresholds: LowEffortThresholds = DEFAULT_GAMING_CONFIG.low_effort):
        self.thresholds = thresholds

    def scan(self, text: str, context: DetectionContext) -> DetectorResult:
        t = self.thresholds
        stripped = text.strip()
        words = stripped.split()

        score = 0.0
        flags: List[str] = []
        if len(words) < t.min_word_count:
            score = 60 + (t.min_word_count - len(words)) * 2
            flags.append(f"Very short submission ({len(words)} words)")

        has_placeholders = any(p.search(stripped) for p in _PLACEHOLDERS)
        if has_placeholders:
            score += 30
            flags.append("Contains unfilled placeholders")

        is_incomplete = any(p.search(stripped) for p in _INCOMPLETE)
        if is_incomplete:
            score += 40
            flags.append("Submission appears incomplete")

        sentences = [s for s in _SENTENCE_SPLIT.split(stripped) if s.strip()]
        avg_sentence_length = len(words) / len(sentences) if sentences else 0.0
        if sentences and avg_sentence_length < t.min_sentence_length:
            score += 15
            flags.append("Very short sentences")

        return DetectorResult(
            name=self.name,
            score=clamp(score),
            flags=flags,
            signals={
                "word_count": len(words),
                "avg_sentence_length": avg_sentence_length,
                "has_placeholders": has_placeholders,
                "is_incomplete": is_incomplete,
            },
        )


def _similarity_score(value: float, thresholds: SimilarityThresholds) -> float:
    if value >= thresholds.critical:
        return 90.0
    if value >= thresholds.warning:
        return 50 + (value - thresholds.warning) * 400
    return 0.0


class CopyPasteDetector:
    name: DetectorName = "copy_paste"

    def __init__(self, thresholds: SimilarityThresholds = DEFAULT_GAMING_CONFIG.similarity):
        self.thresholds = thresholds

    def scan(self, text: str, context: DetectionContext) -> DetectorResult:
        if not context.example_solution:
            return DetectorResult(name=self.name)

        submission = normalize_text(text)
        example = normalize_text(context.example_solution)
        if submission == example:
            return DetectorResult(
                name=self.name,
                score=100.0,
                flags=["Exact copy of example solution"],
                signals={"example_similarity": 1.0},
            )

        value = similarity(submission, example, self.thresholds.ngram_size)

        flags: List[str] = []
        if value >= self.thresholds.critical:
            flags.append(f"Near-exact copy of example ({_pct(value)} similar)")
        elif value >= self.thresholds.warning:
            flags.append(f"High similarity to example solution ({_pct(value)})")

        return DetectorResult(
            name=self.name,
            score=clamp(_similarity_score(value, self.thresholds)),
            flags=flags,
            signals={"example_similarity": value},
        )


def _validated_templates(rows: Iterable[Any]) -> List[KnownTemplate]:
    templates: List[KnownTemplate] = []
    for row in rows or []:
        if isinstance(row, KnownTemplate):
            templates.append(row)
            continue
        try:
            templates.append(KnownTemplate.model_validate(row))
        except ValidationError as exc:
            logger.warning("Skipping malformed template row: %s", exc.errors()[:1])
    return templates


class TemplateMatchDetector:
    """Compares a submission against the known-template catalog."""

    name: DetectorName = "template_match"

    def __init__(self, thresholds: SimilarityThresholds = DEFAULT_GAMING_CONFIG.similarity):
        self.thresholds = thresholds

    async def fetch_templates(self, catalog: TemplateCatalog, game_id: str) -> List[KnownTemplate]:
        try:
            rows = catalog.list_active_templates(game_id)
            if inspect.isawaitable(rows):
                rows = await rows
            return _validated_templates(rows)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            raise TemplateCatalogError(f"Template catalog unavailable for game {game_id}: {exc}") from exc

    async def scan(
        self,
        text: str,
        context: DetectionContext,
        catalog: Optional[TemplateCatalog],
    ) -> DetectorResult:
        if catalog is None:
            return DetectorResult(name=self.name)
        try:
            templates = await self.fetch_templates(catalog, context.game_id)
        except TemplateCatalogError as exc:
            logger.warning("Template matching failed: %s", exc)
            return DetectorResult(name=self.name)

        match = best_template_match(text, templates, self.thresholds.ngram_size)
        if match is None or match.similarity < self.thresholds.warning:
            return DetectorResult(name=self.name)

        label = match.template_type or "template"
        if match.similarity >= self.thresholds.critical:
            flag = f"Matches known {label} ({_pct(match.similarity)})"
        else:
            flag = f"Similar to known {label} ({_pct(match.similarity)})"
        return DetectorResult(
            name=self.name,
            score=clamp(_similarity_score(match.similarity, self.thresholds)),
            flags=[flag],
            signals={
                "template_match_found": True,
                "template_match_similarity": match.similarity,
                "matched_template_type": match.template_type,
            },
        )


def default_detectors(
    config: GamingConfig = DEFAULT_GAMING_CONFIG,
    keyword_table: Optional[Dict[str, Dict[str, list]]] = None,
) -> List[Detector]:
    return [
        KeywordStuffingDetector(config.keyword_stuffing, keyword_table),
        AIGeneratedDetector(config.ai_detection),
        LowEffortDetector(config.low_effort),
        CopyPasteDetector(config.similarity),
    ]


class IntegrityScanner:
    """Runs the detector registry plus the catalog-backed template detector."""

    def __init__(
        self,
        detectors: Optional[Sequence[Detector]] = None,
        config: GamingConfig = DEFAULT_GAMING_CONFIG,
        keyword_table: Optional[Dict[str, Dict[str, list]]] = None,
    ):
        self.config = config
        self.detectors = list(detectors) if detectors is not None else default_detectors(config, keyword_table)
        for detector in self.detectors:
            if getattr(detector, "name", None) not in DETECTOR_NAMES:
                raise ScoringConfigurationError(f"Unknown detector name: {getattr(detector, 'name', None)!r}")
        self.template_detector = TemplateMatchDetector(config.similarity)

    def scan(self, text: str, context: DetectionContext) -> List[DetectorResult]:
        return [detector.scan(text or "", context) for detector in self.detectors]

    async def scan_templates(
        self,
        text: str,
        context: DetectionContext,
        catalog: Optional[TemplateCatalog],
    ) -> DetectorResult:
        if not self.config.template_matching_enabled:
            return DetectorResult(name=self.template_detector.name)
        return await self.template_detector.scan(text or "", context, catalog)

    async def scan_all(
        self,
        text: str,
        context: DetectionContext,
        catalog: Optional[TemplateCatalog] = None,
    ) -> List[DetectorResult]:
        results = self.scan(text, context)
        results.append(await self.scan_templates(text, context, catalog))
        return results

    @staticmethod
    def assemble_signals(results: Iterable[DetectorResult]) -> GamingSignals:
        """Merge detector signals in registry order; later detectors win."""
        merged: Dict[str, Any] = {}
        for result in results:
            merged.update(result.signals)
        return GamingSignals(**merged)

    @staticmethod
    def collect_scores(results: Iterable[DetectorResult]) -> Dict[str, float]:
        scores = {name: 0.0 for name in DETECTOR_NAMES}
        for result in results:
            scores[result.name] = result.score
        return scores

    @staticmethod
    def collect_flags(results: Iterable[DetectorResult]) -> List[str]:
        return [flag for result in results for flag in result.flags]
