"""
Statistical aggregation of repeated scoring samples.

Pure functions only: the sample collector and the orchestrator feed them
definitively completed samples, never in-flight ones.
"""

from __future__ import annotations

import math
from typing import List, Sequence

from ...shared.utils import round2, round_half_up
from .schemas import AggregateStatistics, ConfidenceLevel, Sample


def median(values: Sequence[float]) -> float:
    if not values:
        raise ValueError("median() of an empty sequence")
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def mean(values: Sequence[float]) -> float:
    if not values:
        raise ValueError("mean() of an empty sequence")
    return sum(values) / len(values)


def population_variance(values: Sequence[float]) -> float:
    """Variance around the mean, dividing by N."""
    center = mean(values)
    return sum((v - center) ** 2 for v in values) / len(values)


def classify_variance(variance: float, ceiling: float = 100.0) -> ConfidenceLevel:
    if variance > ceiling * 2:
        return "very_low"
    if variance > ceiling:
        return "low"
    if variance > ceiling / 2:
        return "medium"
    return "high"


def aggregate_samples(
    samples: Sequence[Sample],
    use_median: bool = True,
    variance_ceiling: float = 100.0,
) -> AggregateStatistics:
    """Reduce a non-empty list of samples to summary statistics."""
    if not samples:
        raise ValueError("aggregate_samples() requires at least one sample")

    scores: List[float] = [s.score for s in samples]
    median_score = median(scores)
    mean_score = mean(scores)
    variance = population_variance(scores)

    return AggregateStatistics(
        samples=list(samples),
        median=round2(median_score),
        mean=round2(mean_score),
        variance=round2(variance),
        stddev=round2(math.sqrt(variance)),
        confidence_level=classify_variance(variance, variance_ceiling),
        selected_score=round_half_up(median_score if use_median else mean_score),
        selection_method="median" if use_median else "mean",
    )


def empty_aggregate(confidence_level: ConfidenceLevel) -> AggregateStatistics:
    """Zero-sample aggregate: "skip" when high, "no signal" when very_low."""
    return AggregateStatistics(confidence_level=confidence_level, selection_method="single")


def single_sample_aggregate(
    score: float,
    temperature: float,
    confidence_level: ConfidenceLevel = "high",
    raw_text: str = "",
) -> AggregateStatistics:
    sample = Sample(score=score, source_temperature=temperature, raw_text=raw_text, latency_ms=0)
    return AggregateStatistics(
        samples=[sample],
        median=round2(score),
        mean=round2(score),
        variance=0.0,
        stddev=0.0,
        confidence_level=confidence_level,
        selected_score=round_half_up(score),
        selection_method="single",
    )
