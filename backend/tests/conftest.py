import os
# Settings are read at import time; pin them before any package import.
os.environ["ANTHROPIC_API_KEY"] = "test-key"
os.environ["CLAUDE_MODEL"] = "claude-3-5-haiku-latest"
os.environ["CLAUDE_SECONDARY_MODEL"] = "claude-3-5-sonnet-latest"
os.environ["CONFIDENCE_MODE"] = "ensemble_approximation"
os.environ["LOG_JSON"] = "false"
os.environ.pop("SKILL_KEYWORDS_FILE", None)

from typing import Dict, Optional, Union

import pytest

from scoring_integrity.components.integrity.schemas import DetectionContext
from tests.fakes import FakeScorer


@pytest.fixture
def make_scorer():
    def _make(by_model: Optional[Dict[str, Union[str, Exception]]] = None, default=None) -> FakeScorer:
        mapping = by_model or {}

        def script(model, temperature):
            if model in mapping:
                return mapping[model]
            if default is None:
                return RuntimeError(f"unscripted model {model}")
            return default

        return FakeScorer(script)

    return _make


@pytest.fixture
def detection_context():
    def _make(**overrides) -> DetectionContext:
        values = {"player_id": "player-1", "game_id": "game-1", "skill_category": "general"}
        values.update(overrides)
        return DetectionContext(**values)

    return _make
