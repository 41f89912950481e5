"""Cross-model validation of high-stakes scores."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict

from ...shared.utils import round_half_up, to_score
from .parsing import coerce_parsed_score
from .rules import DEFAULT_CONSISTENCY_CONFIG, CrossValidationConfig
from .schemas import ResponseParser, TextScoringCapability, ValidationOutcome

logger = logging.getLogger(__name__)


def _pass_through(primary: int, config: CrossValidationConfig, reason: str | None = None) -> ValidationOutcome:
    return ValidationOutcome(
        primary_score=primary,
        primary_model=config.primary_model,
        secondary_score=None,
        secondary_model=config.secondary_model if reason else None,
        divergence=0,
        was_validated=False,
        # Assume valid if we can't cross-validate
        validation_passed=True,
        final_score=primary,
        reason=reason,
    )


def reconcile_scores(primary: int, secondary: int, config: CrossValidationConfig) -> ValidationOutcome:
    """Compare two model scores and pick the final one when they diverge."""
    divergence = abs(primary - secondary)
    final_score = primary
    validation_passed = True
    reason = None

    if divergence > config.max_divergence:
        validation_passed = False
        if config.use_average_on_divergence:
            final_score = round_half_up((primary + secondary) / 2)
            reason = (
                f"Models diverged by {divergence} points ({primary} vs {secondary}), using average"
            )
        else:
            final_score = min(primary, secondary)
            reason = f"Models diverged by {divergence} points, using lower score for fairness"
        logger.warning(
            "Cross-validation divergence: primary=%d secondary=%d final=%d",
            primary,
            secondary,
            final_score,
        )

    return ValidationOutcome(
        primary_score=primary,
        primary_model=config.primary_model,
        secondary_score=secondary,
        secondary_model=config.secondary_model,
        divergence=divergence,
        was_validated=True,
        validation_passed=validation_passed,
        final_score=final_score,
        reason=reason,
    )


class CrossModelValidator:
    """Re-scores a high-stakes submission with an independent model."""

    def __init__(self, scorer: TextScoringCapability):
        self.scorer = scorer

    async def validate(
        self,
        prompt: str,
        primary_score: float,
        schema: Dict[str, Any],
        parser: ResponseParser,
        config: CrossValidationConfig = DEFAULT_CONSISTENCY_CONFIG.cross_validation,
    ) -> ValidationOutcome:
        """Never raises for transport or parse failures; they degrade to
        "not validated, primary score assumed valid"."""
        primary = to_score(primary_score)
        if not config.enabled or primary < config.stakes_threshold:
            return _pass_through(primary, config)

        logger.info(
            "Cross-validating high-stakes score %d with %s",
            primary,
            config.secondary_model,
        )
        try:
            raw_text = await self.scorer.complete(
                prompt,
                model=config.secondary_model,
                temperature=config.temperature,
                schema=schema,
            )
            parsed = coerce_parsed_score(parser(raw_text))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("Cross-validation failed: %s", exc)
            return _pass_through(primary, config, reason="Cross-validation failed, using primary score")

        return reconcile_scores(primary, to_score(parsed.score), config)


async def cross_validate_score(
    scorer: TextScoringCapability,
    prompt: str,
    primary_score: float,
    schema: Dict[str, Any],
    parser: ResponseParser,
    config: CrossValidationConfig | None = None,
) -> ValidationOutcome:
    return await CrossModelValidator(scorer).validate(
        prompt, primary_score, schema, parser, config or DEFAULT_CONSISTENCY_CONFIG.cross_validation
    )
