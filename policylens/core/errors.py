"""
Error taxonomy for the PolicyLens analysis pipeline.

Every error carries the HTTP status the API surfaces it with; the message is
the single human-readable string returned to the caller.
"""

from __future__ import annotations


class PolicyLensError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(PolicyLensError):
    """Request is missing required fields or is malformed."""

    status_code = 400
    default_message = "Invalid request"


class ConfigurationError(PolicyLensError):
    """Server-side configuration (model credential) is missing."""

    status_code = 500
    default_message = "The language model credential is not configured on the server"


class AggregateExtractionFailure(PolicyLensError):
    """No party source could be retrieved, so nothing can be summarized."""

    status_code = 500
    default_message = "No source could be retrieved for any party"


class LLMCallError(PolicyLensError):
    """The model backend failed or returned nothing usable."""

    status_code = 502
    default_message = "The language model request failed"


class SummarizationFailure(PolicyLensError):
    """Theme summarization failed; fatal for the request."""

    status_code = 500
    default_message = "Theme summarization failed"


class FreeAnswerFailure(PolicyLensError):
    """Free-form answering failed; the orchestrator degrades instead of failing."""

    status_code = 500
    default_message = "Free-form answer generation failed"


class RequestDeadlineExceeded(PolicyLensError):
    status_code = 504
    default_message = "The analysis did not complete within the request deadline"


__all__ = [
    "PolicyLensError",
    "ValidationError",
    "ConfigurationError",
    "AggregateExtractionFailure",
    "LLMCallError",
    "SummarizationFailure",
    "FreeAnswerFailure",
    "RequestDeadlineExceeded",
]
