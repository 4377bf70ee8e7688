"""
Common dependencies for the PolicyLens API
"""

from fastapi import Request

from policylens.core.config import Settings
from policylens.core.errors import ConfigurationError
from policylens.services.orchestrator import AnalysisOrchestrator
from policylens.services.text_summary import TextSummarizer


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_orchestrator(request: Request) -> AnalysisOrchestrator:
    """Resolve the process-wide orchestrator built during startup."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise ConfigurationError("The analysis service is not initialised")
    return orchestrator


def get_text_summarizer(request: Request) -> TextSummarizer:
    """Single-text summarizer sharing the process-wide model client."""
    orchestrator = get_orchestrator(request)
    return TextSummarizer.from_settings(get_settings(request), orchestrator.llm)
