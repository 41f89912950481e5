import pytest

from scoring_integrity.components.integrity.risk import (
    RiskClassifier,
    action_for,
    blend_risk_score,
    primary_detection_type,
    risk_level_for,
)
from scoring_integrity.components.integrity.rules import DETECTOR_NAMES, RiskBlendConfig
from scoring_integrity.components.integrity.schemas import GamingSignals

WEIGHTS = RiskBlendConfig().weight_map


def test_weights_cover_every_detector_and_sum_to_one():
    assert set(WEIGHTS) == set(DETECTOR_NAMES)
    assert sum(WEIGHTS.values()) == pytest.approx(1.0)


def test_blend_of_fired_categories_with_max():
    # weighted average (20*.15 + 10*.2 + 100*.25) / .6 = 50; 0.7*50 + 0.3*100
    scores = {"copy_paste": 100, "ai_generated": 10, "keyword_stuffing": 20}
    assert blend_risk_score(scores, WEIGHTS) == 65


def test_single_detector_blends_to_itself():
    assert blend_risk_score({"low_effort": 30}, WEIGHTS) == 30


def test_nothing_fired_is_zero():
    assert blend_risk_score({name: 0 for name in DETECTOR_NAMES}, WEIGHTS) == 0
    assert blend_risk_score({}, WEIGHTS) == 0


def test_zero_weight_category_only_counts_toward_max():
    weights = {"ai_generated": 0, "low_effort": 0.1}
    assert blend_risk_score({"ai_generated": 50, "low_effort": 10}, weights) == 22


@pytest.mark.parametrize(
    "score,level",
    [(100, "critical"), (80, "critical"), (79, "high"), (60, "high"), (59, "medium"),
     (40, "medium"), (39, "low"), (20, "low"), (19, "none"), (0, "none")],
)
def test_risk_levels(score, level):
    assert risk_level_for(score) == level


@pytest.mark.parametrize(
    "level,expected",
    [
        ("critical", ("reject", 30)),
        ("high", ("flag_review", 15)),
        ("medium", ("penalize", 5)),
        ("low", ("warn", 0)),
        ("none", ("allow", 0)),
    ],
)
def test_actions_and_penalties(level, expected):
    assert action_for(level) == expected


def test_near_exact_example_copy_rejects_at_any_level():
    assert action_for("none", example_similarity=0.98) == ("reject", 30)
    assert action_for("low", example_similarity=0.979) == ("warn", 0)


def test_primary_detection_type():
    assert primary_detection_type({}) is None
    assert primary_detection_type({"copy_paste": 29, "keyword_stuffing": 100}) is None
    assert primary_detection_type({"ai_generated": 35, "copy_paste": 50}) == "copy"
    assert primary_detection_type({"template_match": 40, "ai_generated": 40}) == "template"


class TestRiskClassifier:
    def test_clean_submission(self):
        assessment = RiskClassifier().classify({}, GamingSignals())
        assert assessment.overall_risk == "none"
        assert assessment.risk_score == 0
        assert assessment.recommended_action == "allow"
        assert assessment.score_penalty == 0
        assert assessment.per_detector_scores == {name: 0 for name in DETECTOR_NAMES}

    def test_high_risk_example(self):
        scores = {"copy_paste": 100, "ai_generated": 10.4, "keyword_stuffing": 20}
        assessment = RiskClassifier().classify(scores, GamingSignals(example_similarity=0.9), ["flag"])
        assert assessment.risk_score == 65
        assert assessment.overall_risk == "high"
        assert assessment.recommended_action == "flag_review"
        assert assessment.score_penalty == 15
        assert assessment.per_detector_scores["ai_generated"] == 10
        assert assessment.flags == ["flag"]

    def test_example_similarity_overrides_action(self):
        assessment = RiskClassifier().classify({"copy_paste": 30}, GamingSignals(example_similarity=0.99))
        assert assessment.overall_risk == "low"
        assert assessment.recommended_action == "reject"
        assert assessment.score_penalty == 30

    def test_custom_thresholds(self):
        config = RiskBlendConfig(high_threshold=25, medium_threshold=15, low_threshold=5)
        assessment = RiskClassifier(config).classify({"low_effort": 30}, GamingSignals())
        assert assessment.overall_risk == "high"
