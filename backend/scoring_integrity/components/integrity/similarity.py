"""N-gram Jaccard similarity shared by copy and template detection."""

from __future__ import annotations

import re
from typing import Iterable, Optional, Set, Tuple

from .schemas import KnownTemplate, TemplateMatch

_WHITESPACE = re.compile(r"\s+")

# Characters of normalized text kept in a catalog fingerprint
FINGERPRINT_PREFIX_CHARS = 100


def normalize_text(text: str) -> str:
    return _WHITESPACE.sub(" ", (text or "").lower()).strip()


def ngrams(text: str, n: int = 3) -> Set[str]:
    words = normalize_text(text).split()
    return {" ".join(words[i:i + n]) for i in range(len(words) - n + 1)}


def similarity(a: str, b: str, n: int = 3) -> float:
    """Jaccard similarity of word n-gram sets, in [0, 1].

    Identical normalized strings short-circuit to 1.0, including texts
    shorter than ``n`` words. An empty union is 0.0.
    """
    norm_a = normalize_text(a)
    norm_b = normalize_text(b)
    if norm_a and norm_a == norm_b:
        return 1.0
    grams_a = ngrams(norm_a, n)
    grams_b = ngrams(norm_b, n)
    union = grams_a | grams_b
    if not union:
        return 0.0
    return len(grams_a & grams_b) / len(union)


def best_template_match(
    text: str,
    templates: Iterable[KnownTemplate],
    n: int = 3,
) -> Optional[TemplateMatch]:
    """Highest similarity meeting its own entry's threshold, or None."""
    best: Optional[TemplateMatch] = None
    for template in templates:
        score = similarity(text, template.text, n)
        if score < template.min_similarity_threshold:
            continue
        if best is None or score > best.similarity:
            best = TemplateMatch(similarity=score, template_type=template.type)
    return best


def template_fingerprint(text: str) -> Tuple[str, str]:
    """Normalized text and catalog hash key for registering a known template."""
    normalized = normalize_text(text)
    return normalized, f"{normalized[:FINGERPRINT_PREFIX_CHARS]}_{len(normalized)}"
