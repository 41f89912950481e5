"""Submission-level orchestration of the consistency and risk branches.

The two branches share no state and run concurrently. The penalty-adjusted
final score is ``clamp(consistency.adjusted_score - gaming.score_penalty)``.
An optional audit sink is scheduled on the background runner so that audit
failures surface on the telemetry channel instead of the scoring path.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import uuid
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ...platform.background import BackgroundTaskRunner, TelemetryChannel
from ...platform.config import Settings
from ...platform.request_context import reset_evaluation_id, set_evaluation_id
from ...shared.utils import run_coroutine_sync, to_score
from ..consistency.parsing import DEFAULT_SCORING_SCHEMA, parse_scoring_response
from ..consistency.rules import ScoringConsistencyConfig, consistency_config_from_settings
from ..consistency.schemas import ConsistencyResult, ResponseParser, TextScoringCapability
from ..consistency.service import evaluate_consistency, format_consistency_note, log_consistency_analytics
from ..integrity.detectors import IntegrityScanner
from ..integrity.rules import GamingConfig, gaming_config_from_settings, load_skill_keywords
from ..integrity.schemas import DetectionContext, GamingDetectionResult, TemplateCatalog
from ..integrity.service import (
    detect_gaming,
    detect_gaming_with_context,
    format_gaming_feedback,
    log_gaming_analytics,
)

logger = logging.getLogger("scoring_integrity.pipeline")


class SubmissionEvaluation(BaseModel):
    model_config = ConfigDict(frozen=True)

    evaluation_id: str
    consistency: ConsistencyResult
    gaming: GamingDetectionResult
    final_score: int = Field(ge=0, le=100)
    feedback: str = ""


AuditSink = Callable[[SubmissionEvaluation, DetectionContext], Union[Awaitable[None], None]]


def apply_gaming_penalty(score: float, gaming_result: GamingDetectionResult) -> int:
    """Subtract the risk penalty and externalize the result."""
    return to_score(float(score) - gaming_result.score_penalty)


def _combined_feedback(consistency: ConsistencyResult, gaming: GamingDetectionResult) -> str:
    parts = [format_gaming_feedback(gaming), format_consistency_note(consistency)]
    return "\n".join(part for part in parts if part)


class ScoringIntegrityPipeline:
    """Bundles the collaborators one deployment evaluates submissions with."""

    def __init__(
        self,
        scorer: Optional[TextScoringCapability] = None,
        template_catalog: Optional[TemplateCatalog] = None,
        consistency_config: Optional[ScoringConsistencyConfig] = None,
        gaming_config: Optional[GamingConfig] = None,
        runner: Optional[BackgroundTaskRunner] = None,
        audit_sink: Optional[AuditSink] = None,
        context_aware: bool = True,
        scanner: Optional[IntegrityScanner] = None,
        keyword_table: Optional[Dict[str, Dict[str, list]]] = None,
    ):
        self.scorer = scorer
        self.template_catalog = template_catalog
        self.consistency_config = consistency_config or consistency_config_from_settings()
        self.gaming_config = gaming_config or gaming_config_from_settings()
        self.runner = runner or BackgroundTaskRunner()
        self.audit_sink = audit_sink
        self.context_aware = context_aware
        # Keyword file is read here, never on the event loop
        self.scanner = scanner or IntegrityScanner(
            config=self.gaming_config,
            keyword_table=keyword_table if keyword_table is not None else load_skill_keywords(),
        )

    @classmethod
    def from_settings(cls, cfg: Settings, **kwargs: Any) -> "ScoringIntegrityPipeline":
        if "scanner" not in kwargs and "keyword_table" not in kwargs:
            kwargs["keyword_table"] = load_skill_keywords(cfg.SKILL_KEYWORDS_FILE)
        return cls(
            consistency_config=consistency_config_from_settings(cfg),
            gaming_config=gaming_config_from_settings(cfg),
            **kwargs,
        )

    @property
    def telemetry(self) -> TelemetryChannel:
        return self.runner.channel

    async def evaluate_submission(
        self,
        submission_text: str,
        context: DetectionContext,
        prompt: str,
        initial_score: float,
        initial_feedback: str,
        ensemble_confidence: float,
        base_weight: float,
        schema: Optional[Dict[str, Any]] = None,
        parser: Optional[ResponseParser] = None,
    ) -> SubmissionEvaluation:
        """Run both branches and merge them into one evaluation.

        Configuration errors from either branch propagate and cancel the
        other branch. Every other failure degrades inside its branch.
        """
        evaluation_id = uuid.uuid4().hex
        token = set_evaluation_id(evaluation_id)
        try:
            detect = detect_gaming_with_context if self.context_aware else detect_gaming
            consistency_task = asyncio.ensure_future(
                evaluate_consistency(
                    prompt,
                    initial_score,
                    initial_feedback,
                    schema or DEFAULT_SCORING_SCHEMA,
                    parser or parse_scoring_response,
                    ensemble_confidence,
                    base_weight,
                    self.consistency_config,
                    scorer=self.scorer,
                )
            )
            gaming_task = asyncio.ensure_future(
                detect(
                    submission_text,
                    context,
                    self.template_catalog,
                    self.gaming_config,
                    scanner=self.scanner,
                )
            )
            try:
                consistency, gaming = await asyncio.gather(consistency_task, gaming_task)
            except BaseException:
                for task in (consistency_task, gaming_task):
                    task.cancel()
                raise

            evaluation = SubmissionEvaluation(
                evaluation_id=evaluation_id,
                consistency=consistency,
                gaming=gaming,
                final_score=apply_gaming_penalty(consistency.adjusted_score, gaming),
                feedback=_combined_feedback(consistency, gaming),
            )
            log_consistency_analytics(consistency, context.game_id, context.player_id)
            log_gaming_analytics(
                gaming,
                context.game_id,
                context.player_id,
                consistency.adjusted_score,
                evaluation.final_score,
            )
            if self.audit_sink is not None:
                self.runner.submit(self._audit(evaluation, context), name=f"audit:{evaluation_id}")
            return evaluation
        finally:
            reset_evaluation_id(token)

    async def _audit(self, evaluation: SubmissionEvaluation, context: DetectionContext) -> None:
        result = self.audit_sink(evaluation, context)
        if inspect.isawaitable(result):
            await result

    async def drain(self, timeout: float | None = None) -> None:
        await self.runner.drain(timeout)

    def evaluate_submission_sync(self, *args: Any, **kwargs: Any) -> SubmissionEvaluation:
        """Synchronous wrapper. Audit tasks are drained before returning."""

        async def _run() -> SubmissionEvaluation:
            evaluation = await self.evaluate_submission(*args, **kwargs)
            await self.drain()
            return evaluation

        return run_coroutine_sync(_run)
