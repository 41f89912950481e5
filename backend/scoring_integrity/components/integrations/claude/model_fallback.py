from __future__ import annotations


PRIMARY_HAIKU_MODEL = "claude-3-5-haiku-latest"
SNAPSHOT_HAIKU_MODEL = "claude-3-5-haiku-20241022"
LEGACY_HAIKU_MODEL = "claude-3-haiku-20240307"

PRIMARY_SONNET_MODEL = "claude-3-5-sonnet-latest"
SNAPSHOT_SONNET_MODEL = "claude-3-5-sonnet-20241022"
LEGACY_SONNET_MODEL = "claude-3-5-sonnet-20240620"

_FALLBACK_FAMILIES = (
    (PRIMARY_HAIKU_MODEL, SNAPSHOT_HAIKU_MODEL, LEGACY_HAIKU_MODEL),
    (PRIMARY_SONNET_MODEL, SNAPSHOT_SONNET_MODEL, LEGACY_SONNET_MODEL),
)


def candidate_models_for(model: str | None, default: str = PRIMARY_HAIKU_MODEL) -> list[str]:
    """Return a deterministic fallback chain for a scoring model alias.

    Known aliases expand to their own family only, so a secondary model never
    silently falls back onto the primary model's family.
    """
    resolved = (model or "").strip() or default

    candidates: list[str] = []

    def _add(value: str) -> None:
        cleaned = (value or "").strip()
        if cleaned and cleaned not in candidates:
            candidates.append(cleaned)

    _add(resolved)

    lower = resolved.lower()
    for family in _FALLBACK_FAMILIES:
        if lower in family:
            for member in family:
                _add(member)
            break

    return candidates


def is_model_not_found_error(exc: Exception) -> bool:
    text = str(exc or "").lower()
    if not text:
        return False
    return (
        "not_found_error" in text
        or ("model" in text and "not found" in text)
        or ("error code: 404" in text and "model" in text)
    )
