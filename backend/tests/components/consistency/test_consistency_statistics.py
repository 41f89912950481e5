"""Tests for sample aggregation."""

import pytest

from scoring_integrity.components.consistency.schemas import CONFIDENCE_LEVELS, Sample
from scoring_integrity.components.consistency.statistics import (
    aggregate_samples,
    classify_variance,
    empty_aggregate,
    mean,
    median,
    population_variance,
    single_sample_aggregate,
)


def _samples(*scores):
    return [Sample(score=s, source_temperature=0.3) for s in scores]


class TestMedian:
    def test_odd_count_takes_central_value(self):
        assert median([90, 10, 50]) == 50

    def test_even_count_averages_central_pair(self):
        assert median([10, 40, 60, 100]) == 50

    def test_single_value(self):
        assert median([73]) == 73

    def test_empty_raises(self):
        with pytest.raises(ValueError):
            median([])


class TestVariance:
    def test_population_variance_divides_by_n(self):
        # mean 75, deviations +-5 -> variance 25 (sample variance would be 50)
        assert population_variance([70, 80]) == 25

    def test_identical_scores_have_zero_variance(self):
        assert population_variance([60, 60, 60]) == 0

    @pytest.mark.parametrize("scores", [[0, 100], [12, 47, 91], [55.5, 55.6, 99]])
    def test_variance_never_negative(self, scores):
        assert population_variance(scores) >= 0

    def test_mean(self):
        assert mean([70, 80, 90]) == 80


class TestClassifyVariance:
    @pytest.mark.parametrize(
        "variance,expected",
        [
            (0, "high"),
            (50, "high"),
            (50.01, "medium"),
            (100, "medium"),
            (100.01, "low"),
            (200, "low"),
            (200.01, "very_low"),
        ],
    )
    def test_thresholds_with_default_ceiling(self, variance, expected):
        assert classify_variance(variance) == expected

    def test_confidence_never_increases_with_variance(self):
        ranks = [CONFIDENCE_LEVELS.index(classify_variance(v)) for v in range(0, 400, 5)]
        assert ranks == sorted(ranks)

    def test_custom_ceiling(self):
        assert [classify_variance(v, ceiling=20) for v in (9, 15, 30, 41)] == [
            "high",
            "medium",
            "low",
            "very_low",
        ]


class TestAggregateSamples:
    def test_median_selection_and_rounding(self):
        aggregate = aggregate_samples(_samples(70, 75))
        assert aggregate.median == 72.5
        assert aggregate.mean == 72.5
        assert aggregate.variance == 6.25
        assert aggregate.stddev == 2.5
        # Half-up, not banker's rounding
        assert aggregate.selected_score == 73
        assert aggregate.selection_method == "median"
        assert aggregate.confidence_level == "high"

    def test_mean_selection(self):
        aggregate = aggregate_samples(_samples(60, 61, 90), use_median=False)
        assert aggregate.selection_method == "mean"
        assert aggregate.selected_score == 70
        assert aggregate.mean == 70.33

    def test_wide_spread_is_very_low_confidence(self):
        aggregate = aggregate_samples(_samples(20, 90))
        assert aggregate.variance == 1225
        assert aggregate.confidence_level == "very_low"

    def test_empty_raises(self):
        with pytest.raises(ValueError):
            aggregate_samples([])


def test_empty_aggregate_carries_no_signal():
    aggregate = empty_aggregate("very_low")
    assert aggregate.samples == []
    assert aggregate.has_signal is False
    assert aggregate.selected_score == 0


def test_single_sample_aggregate_records_the_initial_score():
    aggregate = single_sample_aggregate(82.5, 0.35, confidence_level="low", raw_text="fine")
    assert aggregate.selected_score == 83
    assert aggregate.selection_method == "single"
    assert aggregate.confidence_level == "low"
    assert aggregate.samples[0].raw_text == "fine"
