"""Temperature-variation multi-sample scoring."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

from .parsing import coerce_parsed_score, validate_response_schema
from .rules import DEFAULT_CONSISTENCY_CONFIG, MultiSampleConfig
from .schemas import AggregateStatistics, ResponseParser, Sample, TextScoringCapability
from .statistics import aggregate_samples, empty_aggregate

logger = logging.getLogger(__name__)


class SampleCollector:
    """Fans out independent scoring calls and aggregates the survivors."""

    def __init__(self, scorer: TextScoringCapability):
        self.scorer = scorer

    async def _sample(
        self,
        prompt: str,
        model: str,
        temperature: float,
        schema: Dict[str, Any],
        parser: ResponseParser,
    ) -> Sample:
        started = time.perf_counter()
        raw_text = await self.scorer.complete(
            prompt, model=model, temperature=temperature, schema=schema
        )
        parsed = coerce_parsed_score(parser(raw_text))
        return Sample(
            score=parsed.score,
            source_temperature=temperature,
            raw_text=raw_text,
            latency_ms=int((time.perf_counter() - started) * 1000),
        )

    async def collect(
        self,
        prompt: str,
        model: str,
        schema: Dict[str, Any],
        parser: ResponseParser,
        config: MultiSampleConfig = DEFAULT_CONSISTENCY_CONFIG.multi_sample,
    ) -> AggregateStatistics:
        """Score ``prompt`` at each configured temperature and aggregate.

        Failed samples are dropped. If every call fails, the result is a
        zero-sample ``very_low`` aggregate rather than an error. Cancelling the
        collector cancels every in-flight call.
        """
        if not config.enabled:
            return empty_aggregate("high")

        validate_response_schema(schema)
        temperatures = list(config.temperatures[: config.sample_count])

        logger.info(
            "Collecting %d scoring samples (model=%s, temperatures=%s)",
            len(temperatures),
            model,
            temperatures,
        )
        results = await asyncio.gather(
            *(self._sample(prompt, model, t, schema, parser) for t in temperatures),
            return_exceptions=True,
        )

        samples: List[Sample] = []
        for temperature, result in zip(temperatures, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.warning(
                    "Multi-sample scoring failed for temperature %.2f: %s",
                    temperature,
                    result,
                )
                continue
            samples.append(result)

        if not samples:
            logger.warning("All %d scoring samples failed; no additional signal", len(temperatures))
            return empty_aggregate("very_low")

        aggregate = aggregate_samples(
            samples,
            use_median=config.use_median,
            variance_ceiling=config.variance_confidence_ceiling,
        )
        logger.info(
            "Multi-sample aggregate: samples=%d median=%.2f variance=%.2f confidence=%s",
            len(samples),
            aggregate.median,
            aggregate.variance,
            aggregate.confidence_level,
        )
        return aggregate


async def multi_sample_score(
    scorer: TextScoringCapability,
    prompt: str,
    model: str,
    schema: Dict[str, Any],
    parser: ResponseParser,
    config: Optional[MultiSampleConfig] = None,
) -> AggregateStatistics:
    return await SampleCollector(scorer).collect(
        prompt, model, schema, parser, config or DEFAULT_CONSISTENCY_CONFIG.multi_sample
    )
