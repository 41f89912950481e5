"""Pydantic models describing the anti-gaming branch of the pipeline."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Awaitable, Dict, Iterable, List, Literal, Mapping, Optional, Protocol, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from ...shared.utils import utcnow

DetectorName = Literal[
    "keyword_stuffing",
    "template_match",
    "ai_generated",
    "copy_paste",
    "low_effort",
    "pattern_gaming",
]
RiskLevel = Literal["none", "low", "medium", "high", "critical"]
RecommendedAction = Literal["allow", "warn", "penalize", "flag_review", "reject"]
StyleConfidence = Literal["high", "medium", "low"]

RISK_LEVELS: tuple = ("none", "low", "medium", "high", "critical")


class GamingSignals(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Keyword stuffing
    keyword_density: float = 0.0
    unique_word_ratio: float = 0.0
    repeated_keywords: List[str] = []
    suspicious_keyword_patterns: bool = False

    # Template
    template_match_found: bool = False
    template_match_similarity: float = 0.0
    matched_template_type: Optional[str] = None

    # AI detection
    ai_phrase_count: int = 0
    ai_phrase_score: float = 0.0
    matched_ai_phrases: List[str] = []
    formality_score: float = 0.0
    structural_patterns: List[str] = []
    sentence_variety: float = 0.0
    burstiness_score: float = 0.0

    # Copy/paste
    example_similarity: float = 0.0
    cross_submission_similarity: float = 0.0
    common_phrase_ratio: float = 0.0

    # Low effort
    word_count: int = 0
    avg_sentence_length: float = 0.0
    has_placeholders: bool = False
    is_incomplete: bool = False

    # Pattern gaming (cross-submission signals, not yet scored)
    submission_velocity: float = 0.0
    consistent_score_pattern: bool = False
    suspicious_timing_pattern: bool = False


class DetectorResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: DetectorName
    score: float = Field(default=0.0, ge=0, le=100)
    flags: List[str] = []
    signals: Dict[str, Any] = {}


class KnownTemplate(BaseModel):
    """One catalog row. Accepts both field names and storage column names."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    text: str = Field(min_length=1, validation_alias=AliasChoices("text", "template_text"))
    type: str = Field(default="template", validation_alias=AliasChoices("type", "template_type"))
    min_similarity_threshold: float = Field(default=0.85, ge=0, le=1)


class TemplateMatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    similarity: float = Field(ge=0, le=1)
    template_type: str


class KeywordSet(BaseModel):
    model_config = ConfigDict(frozen=True)

    primary: List[str] = []
    secondary: List[str] = []

    @property
    def all_keywords(self) -> set:
        return {k.lower() for k in [*self.primary, *self.secondary] if k}


class GameWritingContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    game_type: str = "general"
    expected_formality: Literal["casual", "professional", "formal", "technical"] = "professional"
    expected_structure: Literal["freeform", "structured", "template-like", "code-like"] = "freeform"
    tolerate_ai_phrases: bool = False
    tolerate_formal_language: bool = False
    expected_min_length: int = 20
    expected_max_length: int = 2000


class PunctuationStyle(BaseModel):
    model_config = ConfigDict(frozen=True)

    uses_exclamations: bool = False
    uses_ellipsis: bool = False
    avg_commas_per_sentence: float = 0.0


class WritingPatterns(BaseModel):
    model_config = ConfigDict(frozen=True)

    starts_with_greeting: bool = False
    ends_with_signoff: bool = False
    uses_list_format: bool = False
    uses_bullet_points: bool = False


class SubmissionStyle(BaseModel):
    model_config = ConfigDict(frozen=True)

    word_count: int = 0
    avg_sentence_length: float = 0.0
    formality_score: float = 0.0
    vocabulary_richness: float = 0.0
    common_phrases: List[str] = []
    punctuation: PunctuationStyle = PunctuationStyle()
    patterns: WritingPatterns = WritingPatterns()


class PlayerStyleProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    player_id: str
    sample_count: int = Field(ge=0)
    avg_word_count: float = 0.0
    avg_sentence_length: float = 0.0
    avg_formality_score: float = 0.0
    vocabulary_richness: float = 0.0
    punctuation_style: PunctuationStyle = PunctuationStyle()
    common_phrases: List[str] = []
    writing_patterns: WritingPatterns = WritingPatterns()
    last_updated: datetime = Field(default_factory=utcnow)


class StyleComparison(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_consistent_with_history: bool
    deviation_score: int = Field(ge=0, le=100)
    deviations: List[str] = []
    confidence_level: StyleConfidence = "low"


class PlayerHistory(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_submissions: int = 0
    avg_score: float = 0.0
    recent_scores: List[float] = []
    # Oldest first; used for style profiling
    recent_submissions: List[str] = []


class DetectionContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    player_id: str
    game_id: str
    skill_category: str = "general"
    example_solution: Optional[str] = None
    keywords: Optional[KeywordSet] = None
    submission_time_ms: Optional[int] = None
    player_history: Optional[PlayerHistory] = None
    game_context: Optional[GameWritingContext] = None
    player_style_profile: Optional[PlayerStyleProfile] = None


class RiskAssessment(BaseModel):
    model_config = ConfigDict(frozen=True)

    overall_risk: RiskLevel = "none"
    risk_score: int = Field(default=0, ge=0, le=100)
    per_detector_scores: Dict[str, int] = {}
    flags: List[str] = []
    recommended_action: RecommendedAction = "allow"
    score_penalty: int = 0


class GamingDetectionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    assessment: RiskAssessment
    signals: GamingSignals
    context_adjustments: List[str] = []
    detection_type: Optional[Literal["template", "ai", "copy"]] = None
    processing_time_ms: int = 0

    @property
    def overall_risk(self) -> RiskLevel:
        return self.assessment.overall_risk

    @property
    def risk_score(self) -> int:
        return self.assessment.risk_score

    @property
    def scores(self) -> Dict[str, int]:
        return self.assessment.per_detector_scores

    @property
    def flags(self) -> List[str]:
        return self.assessment.flags

    @property
    def recommended_action(self) -> RecommendedAction:
        return self.assessment.recommended_action

    @property
    def score_penalty(self) -> int:
        return self.assessment.score_penalty


TemplateRows = Iterable[Mapping[str, Any]]


class TemplateCatalog(Protocol):
    """Read-only store of known templates. May be sync or async."""

    def list_active_templates(self, game_id: str) -> Union[TemplateRows, Awaitable[TemplateRows]]:
        ...
