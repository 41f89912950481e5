"""
Anthropic Claude text-scoring capability.

Issues one scoring request per call with a per-call temperature override and
returns the raw response text. The async client keeps no per-call state, so
concurrent calls from the sample collector are safe.
"""

import json
import logging
from typing import Any, Dict, Optional

from anthropic import AsyncAnthropic

from ....platform.config import settings
from ....platform.errors import ScoringTransportError
from .model_fallback import candidate_models_for, is_model_not_found_error

logger = logging.getLogger("scoring_integrity.claude")

SCORING_SYSTEM_PROMPT = (
    "You are an expert recruiting-skills assessor grading a free-text submission. "
    "Respond ONLY with valid JSON, no markdown, matching this JSON schema:\n"
)


def extract_text(response: Any) -> str:
    """Concatenate the text blocks of an Anthropic messages response."""
    blocks = getattr(response, "content", None) or []
    parts = []
    for block in blocks:
        text = getattr(block, "text", None)
        if text:
            parts.append(text)
    return "".join(parts).strip()


class ClaudeScoringService:
    """Text-scoring capability backed by the Anthropic messages API."""

    def __init__(self, api_key: Optional[str] = None, client: Any = None):
        """
        Initialise the scoring service.

        Args:
            api_key: Anthropic API key. Defaults to ANTHROPIC_API_KEY.
            client: Optional pre-built async client (tests inject fakes here).
        """
        self.client = client or AsyncAnthropic(api_key=api_key or settings.ANTHROPIC_API_KEY)
        self.max_tokens_per_response = settings.MAX_TOKENS_PER_RESPONSE

    async def complete(
        self,
        prompt: str,
        *,
        model: str,
        temperature: float,
        schema: Dict[str, Any],
    ) -> str:
        """
        Send one scoring request and return the raw response text.

        Walks the model fallback chain only when a model alias is unavailable;
        every other failure is raised as ScoringTransportError.
        """
        system_prompt = SCORING_SYSTEM_PROMPT + json.dumps(schema, sort_keys=True)
        resolved_model = (model or settings.resolved_claude_model).strip()

        response = None
        last_model_error: Exception | None = None
        for candidate_model in candidate_models_for(resolved_model):
            try:
                response = await self.client.messages.create(
                    model=candidate_model,
                    max_tokens=self.max_tokens_per_response,
                    temperature=temperature,
                    system=system_prompt,
                    messages=[{"role": "user", "content": prompt}],
                )
                if candidate_model != resolved_model:
                    logger.warning(
                        "Fell back to Claude model=%s after model=%s was unavailable",
                        candidate_model,
                        resolved_model,
                    )
                break
            except Exception as exc:
                if is_model_not_found_error(exc):
                    last_model_error = exc
                    logger.warning(
                        "Claude model unavailable for scoring (model=%s): %s",
                        candidate_model,
                        exc,
                    )
                    continue
                raise ScoringTransportError(
                    f"Scoring call failed (model={candidate_model}): {exc}"
                ) from exc

        if response is None:
            raise ScoringTransportError(
                f"No scoring model available for {resolved_model}: {last_model_error}"
            )

        text = extract_text(response)
        if not text:
            raise ScoringTransportError("Empty scoring response")

        logger.debug(
            "Scoring response received (model=%s, temperature=%.2f, chars=%d)",
            resolved_model,
            temperature,
            len(text),
        )
        return text
