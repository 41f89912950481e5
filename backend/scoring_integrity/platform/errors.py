"""Error taxonomy for the scoring-integrity pipeline.

Transport, parse and catalog errors are always recovered inside the pipeline.
Configuration errors are caller contract violations and propagate.
"""


class ScoringIntegrityError(RuntimeError):
    """Base class for pipeline errors."""


class ScoringConfigurationError(ScoringIntegrityError, ValueError):
    """Malformed schema, missing keywords, or out-of-range caller input."""


class ScoringTransportError(ScoringIntegrityError):
    """A scoring call failed or returned no usable text."""


class ScoringParseError(ScoringIntegrityError, ValueError):
    """Model output could not be parsed into a score."""


class TemplateCatalogError(ScoringIntegrityError):
    """The known-template catalog could not be read."""
