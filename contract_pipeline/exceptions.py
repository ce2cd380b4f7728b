"""
Domain exceptions for the document pipeline.

Each exception carries a stable ``error_code`` for log tagging. Storage
failures surface as ``TransportError`` (``NotFoundError`` when the key
does not exist), provider failures as ``ExtractionError`` and
unparseable provider output as ``ParseError``.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for document pipeline errors."""

    error_code = "pipeline_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class TransportError(PipelineError):
    """Object storage or network call failed."""

    error_code = "transport_failed"


class NotFoundError(TransportError):
    """Requested object does not exist in storage."""

    error_code = "not_found"


class ExtractionError(PipelineError):
    """The selected provider failed or returned unusable output."""

    error_code = "extraction_failed"


class ParseError(PipelineError):
    """Extraction text could not be parsed as JSON, fenced or not."""

    error_code = "parse_failed"
