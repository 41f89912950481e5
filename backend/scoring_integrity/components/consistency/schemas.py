"""Pydantic models describing the consistency branch of the pipeline."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field

ConfidenceLevel = Literal["high", "medium", "low", "very_low"]
SelectionMethod = Literal["median", "mean", "single"]
ConfidenceMode = Literal["ensemble_approximation", "resample", "disabled"]

# Highest confidence first.
CONFIDENCE_LEVELS: tuple = ("high", "medium", "low", "very_low")


class TextScoringCapability(Protocol):
    """External scoring model: one call, one raw response text."""

    def complete(
        self,
        prompt: str,
        *,
        model: str,
        temperature: float,
        schema: Dict[str, Any],
    ) -> Awaitable[str]:
        ...


class ParsedScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: float = Field(ge=0, le=100)
    feedback: str = ""


ResponseParser = Callable[[str], ParsedScore]


class Sample(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: float = Field(ge=0, le=100)
    source_temperature: float
    raw_text: str = ""
    latency_ms: int = Field(default=0, ge=0)


class AggregateStatistics(BaseModel):
    model_config = ConfigDict(frozen=True)

    samples: List[Sample] = []
    median: float = 0.0
    mean: float = 0.0
    variance: float = 0.0
    stddev: float = 0.0
    confidence_level: ConfidenceLevel = "high"
    selected_score: int = 0
    selection_method: SelectionMethod = "single"

    @property
    def has_signal(self) -> bool:
        """Zero-sample aggregates carry no additional signal."""
        return bool(self.samples)


class ValidationOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    primary_score: int
    primary_model: Optional[str] = None
    secondary_score: Optional[int] = None
    secondary_model: Optional[str] = None
    divergence: int = 0
    was_validated: bool = False
    validation_passed: bool = True
    final_score: int
    reason: Optional[str] = None


class WeightAdjustment(BaseModel):
    model_config = ConfigDict(frozen=True)

    adjusted_weight: float
    reason: Optional[str] = None


class ConsistencyResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    original_score: int = Field(ge=0, le=100)
    adjusted_score: int = Field(ge=0, le=100)
    aggregate: Optional[AggregateStatistics] = None
    validation: Optional[ValidationOutcome] = None
    original_weight: float
    adjusted_weight: float
    confidence_level: ConfidenceLevel = "high"
    confidence_mode: ConfidenceMode = "ensemble_approximation"
    flags: List[str] = []
    weight_reason: Optional[str] = None
    processing_time_ms: int = 0
