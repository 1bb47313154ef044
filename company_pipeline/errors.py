"""
Exception hierarchy for the ingestion pipeline.

Only MalformedInputError and ProcessingError are fatal to an upload run.
Everything else is recorded per row / per company and the batch continues.
"""


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class MalformedInputError(PipelineError):
    """CSV has no header or no data rows."""


class RowValidationError(PipelineError):
    """A single row failed shape or business-rule validation."""


class PersistenceError(PipelineError):
    """The store rejected a write."""


class NotFoundError(PersistenceError):
    """No company exists with the requested id."""


class NewsSearchError(PipelineError):
    """The news search service returned an error payload."""


class EnrichmentError(PipelineError):
    """Enrichment could not run because the news search failed."""


class ProcessingError(PipelineError):
    """Fatal failure of a whole upload run."""
