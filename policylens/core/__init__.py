"""
Core package: configuration, error taxonomy, HTTP wiring.
"""

from policylens.core.config import Settings
from policylens.core.errors import (
    AggregateExtractionFailure,
    ConfigurationError,
    FreeAnswerFailure,
    LLMCallError,
    PolicyLensError,
    RequestDeadlineExceeded,
    SummarizationFailure,
    ValidationError,
)

__all__ = [
    "Settings",
    "PolicyLensError",
    "ValidationError",
    "ConfigurationError",
    "AggregateExtractionFailure",
    "LLMCallError",
    "SummarizationFailure",
    "FreeAnswerFailure",
    "RequestDeadlineExceeded",
]
