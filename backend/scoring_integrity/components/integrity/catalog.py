"""In-process known-template catalog.

Production deployments back ``TemplateCatalog`` with their own store; this
implementation serves tests, local runs and administrative seeding.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .schemas import KnownTemplate
from .similarity import template_fingerprint

logger = logging.getLogger(__name__)

TEMPLATE_TYPES = (
    "example_solution",
    "known_cheat",
    "ai_generated",
    "common_copy",
    "flagged_submission",
)


@dataclass
class _CatalogEntry:
    template: KnownTemplate
    source: str
    game_ids: Optional[List[str]] = None
    is_active: bool = True


@dataclass
class InMemoryTemplateCatalog:
    entries: Dict[str, _CatalogEntry] = field(default_factory=dict)

    def register_template(
        self,
        text: str,
        template_type: str,
        source: str,
        game_ids: Optional[Sequence[str]] = None,
        min_similarity_threshold: float = 0.85,
    ) -> str:
        """Store a normalized template and return its fingerprint key."""
        if template_type not in TEMPLATE_TYPES:
            raise ValueError(f"Unknown template type: {template_type}")
        normalized, key = template_fingerprint(text)
        self.entries[key] = _CatalogEntry(
            template=KnownTemplate(
                text=normalized,
                type=template_type,
                min_similarity_threshold=min_similarity_threshold,
            ),
            source=source,
            game_ids=list(game_ids) if game_ids else None,
        )
        logger.info("Registered %s template %s from %s", template_type, key[:32], source)
        return key

    def deactivate(self, key: str) -> bool:
        entry = self.entries.get(key)
        if entry is None:
            return False
        entry.is_active = False
        return True

    def list_active_templates(self, game_id: str) -> List[KnownTemplate]:
        # Templates without game ids apply to every game.
        return [
            entry.template
            for entry in self.entries.values()
            if entry.is_active and (entry.game_ids is None or game_id in entry.game_ids)
        ]
