"""Player writing-style profiling from their own submission history."""

from __future__ import annotations

import re
from collections import Counter
from typing import List, Optional, Sequence

from ...shared.utils import round_half_up, utcnow
from .detectors import formality_score
from .schemas import PlayerStyleProfile, PunctuationStyle, StyleComparison, SubmissionStyle, WritingPatterns

MIN_SUBMISSION_CHARS = 20
MAX_PROFILE_SUBMISSIONS = 50
# Share of submissions a trait must appear in to become part of the profile
TRAIT_SHARE = 0.3
MAX_COMMON_PHRASES = 10
CONSISTENT_DEVIATION_CEILING = 40

_GREETING = re.compile(r"^(hi|hello|dear|good\s+(morning|afternoon|evening)|hey|greetings)", re.IGNORECASE)
_SIGNOFF = re.compile(r"(best|regards|sincerely|thanks|thank you|cheers|warmly)\s*[,.!]?\s*$", re.IGNORECASE)
_LIST_LINE = re.compile(r"^\s*([-•*]|\d+\.)\s+", re.MULTILINE)
_BULLET = re.compile(r"[-•*]\s+")
_ELLIPSIS = re.compile(r"\.{3}|…")
_NON_WORD = re.compile(r"[^\w]")


def _common_phrases(text: str) -> List[str]:
    words = [w for w in text.split() if len(w) > 2]
    bigrams = [f"{a} {b}" for a, b in zip(words, words[1:])]
    trigrams = [f"{a} {b} {c}" for a, b, c in zip(words, words[1:], words[2:])]
    return (bigrams + trigrams)[:20]


def analyze_submission_style(text: str) -> SubmissionStyle:
    normalized = text.lower().strip()
    words = normalized.split()
    sentences = [s for s in re.split(r"[.!?]+", text) if s.strip()]
    word_count = len(words)
    unique = {_NON_WORD.sub("", w) for w in words}

    return SubmissionStyle(
        word_count=word_count,
        avg_sentence_length=word_count / len(sentences) if sentences else 0.0,
        formality_score=formality_score(normalized),
        vocabulary_richness=len(unique) / word_count if word_count else 0.0,
        common_phrases=_common_phrases(normalized),
        punctuation=PunctuationStyle(
            uses_exclamations="!" in text,
            uses_ellipsis=bool(_ELLIPSIS.search(text)),
            avg_commas_per_sentence=text.count(",") / len(sentences) if sentences else 0.0,
        ),
        patterns=WritingPatterns(
            starts_with_greeting=bool(_GREETING.search(text.strip())),
            ends_with_signoff=bool(_SIGNOFF.search(text.strip())),
            uses_list_format=bool(_LIST_LINE.search(text)),
            uses_bullet_points=bool(_BULLET.search(text)),
        ),
    )


def build_player_style_profile(
    player_id: str,
    submissions: Sequence[str],
    min_samples: int = 5,
) -> Optional[PlayerStyleProfile]:
    """Profile from the player's most recent submissions, or None if too few."""
    valid = [s for s in submissions if s and len(s) > MIN_SUBMISSION_CHARS][-MAX_PROFILE_SUBMISSIONS:]
    if len(valid) < min_samples:
        return None

    analyses = [analyze_submission_style(s) for s in valid]
    n = len(analyses)

    def avg(values) -> float:
        return sum(values) / n

    def common(flags) -> bool:
        return sum(1 for f in flags if f) > n * TRAIT_SHARE

    phrase_counts = Counter(p for a in analyses for p in a.common_phrases)
    common_phrases = [
        phrase
        for phrase, count in phrase_counts.most_common()
        if count >= n * TRAIT_SHARE
    ][:MAX_COMMON_PHRASES]

    return PlayerStyleProfile(
        player_id=player_id,
        sample_count=n,
        avg_word_count=avg(a.word_count for a in analyses),
        avg_sentence_length=avg(a.avg_sentence_length for a in analyses),
        avg_formality_score=avg(a.formality_score for a in analyses),
        vocabulary_richness=avg(a.vocabulary_richness for a in analyses),
        punctuation_style=PunctuationStyle(
            uses_exclamations=common(a.punctuation.uses_exclamations for a in analyses),
            uses_ellipsis=common(a.punctuation.uses_ellipsis for a in analyses),
            avg_commas_per_sentence=avg(a.punctuation.avg_commas_per_sentence for a in analyses),
        ),
        common_phrases=common_phrases,
        writing_patterns=WritingPatterns(
            starts_with_greeting=common(a.patterns.starts_with_greeting for a in analyses),
            ends_with_signoff=common(a.patterns.ends_with_signoff for a in analyses),
            uses_list_format=common(a.patterns.uses_list_format for a in analyses),
            uses_bullet_points=common(a.patterns.uses_bullet_points for a in analyses),
        ),
        last_updated=utcnow(),
    )


def compare_to_player_style(text: str, profile: PlayerStyleProfile) -> StyleComparison:
    current = analyze_submission_style(text)
    deviations: List[str] = []
    score = 0

    word_ratio = current.word_count / max(profile.avg_word_count, 1)
    if word_ratio < 0.3 or word_ratio > 3:
        deviations.append(
            f"Unusual length ({current.word_count} words vs typical {round_half_up(profile.avg_word_count)})"
        )
        score += 20
    elif word_ratio < 0.5 or word_ratio > 2:
        score += 10

    sentence_ratio = current.avg_sentence_length / max(profile.avg_sentence_length, 1)
    if sentence_ratio < 0.4 or sentence_ratio > 2.5:
        deviations.append("Unusual sentence structure")
        score += 15

    formality_diff = abs(current.formality_score - profile.avg_formality_score)
    if formality_diff > 0.4:
        deviations.append("Significantly different formality level")
        score += 25
    elif formality_diff > 0.25:
        score += 10

    if abs(current.vocabulary_richness - profile.vocabulary_richness) > 0.2:
        deviations.append("Unusual vocabulary variety")
        score += 15

    if current.punctuation.uses_exclamations != profile.punctuation_style.uses_exclamations:
        score += 5
    if current.punctuation.uses_ellipsis != profile.punctuation_style.uses_ellipsis:
        score += 5
    if current.patterns.starts_with_greeting != profile.writing_patterns.starts_with_greeting:
        score += 5
    if current.patterns.ends_with_signoff != profile.writing_patterns.ends_with_signoff:
        score += 5

    if profile.sample_count >= 20:
        confidence = "high"
    elif profile.sample_count >= 10:
        confidence = "medium"
    else:
        confidence = "low"

    score = min(100, score)
    return StyleComparison(
        is_consistent_with_history=score < CONSISTENT_DEVIATION_CEILING,
        deviation_score=score,
        deviations=deviations,
        confidence_level=confidence,
    )
