"""Tests for n-gram Jaccard similarity and template matching."""

import pytest

from scoring_integrity.components.integrity.schemas import KnownTemplate
from scoring_integrity.components.integrity.similarity import (
    best_template_match,
    ngrams,
    normalize_text,
    similarity,
    template_fingerprint,
)

TEXTS = [
    "Find senior Python engineers in Berlin who contribute to open source",
    "find   SENIOR python engineers\nin berlin",
    "Boolean strings help narrow a search quickly",
    "a b",
]


def test_normalize_collapses_case_and_whitespace():
    assert normalize_text("  Hello \n\t World  ") == "hello world"


def test_ngrams():
    assert ngrams("one two three four", 3) == {"one two three", "two three four"}
    assert ngrams("too short", 3) == set()


@pytest.mark.parametrize("text", TEXTS)
def test_identity_is_one(text):
    assert similarity(text, text) == 1.0


def test_exact_match_after_normalization_short_circuits():
    assert similarity("Hello   World", "hello world") == 1.0


@pytest.mark.parametrize("a", TEXTS)
@pytest.mark.parametrize("b", TEXTS)
def test_symmetric_and_bounded(a, b):
    value = similarity(a, b)
    assert value == similarity(b, a)
    assert 0.0 <= value <= 1.0


def test_partial_overlap_is_jaccard():
    # 4 and 4 trigrams sharing 2 -> 2 / 6
    value = similarity("a b c d e f", "c d e f g h")
    assert value == pytest.approx(2 / 6)


def test_empty_union_is_zero():
    assert similarity("", "") == 0.0
    assert similarity("two words", "other words") == 0.0


def test_best_template_match_respects_per_entry_threshold():
    text = "we are looking for a driven recruiter to join our growing team today"
    templates = [
        KnownTemplate(text=text, type="known_cheat", min_similarity_threshold=0.99),
        KnownTemplate(text=text + " now", type="common_copy", min_similarity_threshold=0.5),
        KnownTemplate(text="completely unrelated words about something else entirely", type="ai_generated"),
    ]
    match = best_template_match(text, templates)
    assert match.template_type == "known_cheat"
    assert match.similarity == 1.0


def test_best_template_match_none_below_thresholds():
    templates = [KnownTemplate(text="alpha beta gamma delta", type="known_cheat", min_similarity_threshold=0.9)]
    assert best_template_match("alpha beta gamma epsilon", templates) is None


def test_template_fingerprint():
    normalized, key = template_fingerprint("  Dear  Candidate,\nWe loved your profile ")
    assert normalized == "dear candidate, we loved your profile"
    assert key == f"{normalized}_{len(normalized)}"

    long_text = "word " * 60
    normalized, key = template_fingerprint(long_text)
    assert key == f"{normalized[:100]}_{len(normalized)}"
