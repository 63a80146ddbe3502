"""Exception taxonomy for the ingestion pipeline.

Only ConfigurationError is allowed to abort a collection run; every other
error is caught at the stage that raised it and turned into a counted
outcome.
"""

from __future__ import annotations


class IngestError(Exception):
    """Base exception for the ingestion pipeline."""


class ConfigurationError(IngestError):
    """Missing or invalid configuration (e.g. no sources configured)."""


class SourceError(IngestError):
    """A source adapter failed to fetch candidates."""

    def __init__(self, message: str, source: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.source = source
        self.status_code = status_code


class SourceRateLimitError(SourceError):
    """The upstream provider rejected the request with a rate limit."""


class TranslationError(IngestError):
    """Base class for translation provider failures."""


class TranslationQuotaError(TranslationError):
    """Provider quota is exhausted; retrying within the run cannot succeed."""


class TransientTranslationError(TranslationError):
    """Network, timeout or server-side failure worth retrying."""


class PersistenceError(IngestError):
    """Storage backend failure."""


class DuplicateRecordError(PersistenceError):
    """Storage rejected the item on a unique constraint."""
