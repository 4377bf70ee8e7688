"""
Bullet-point summary of a single free text, independent of the party pipeline.
"""

from __future__ import annotations

import structlog

from policylens.core.config import Settings
from policylens.models.prompts import build_text_summary_prompt
from policylens.services.llm_client import LLMClient
from policylens.utils.text_sanitize import truncate

logger = structlog.get_logger(__name__)

SUMMARY_POINTS = 3


class TextSummarizer:
    def __init__(self, llm: LLMClient, *, max_chars: int = 15000, points: int = SUMMARY_POINTS):
        self.llm = llm
        self.max_chars = max_chars
        self.points = points

    @classmethod
    def from_settings(cls, settings: Settings, llm: LLMClient) -> "TextSummarizer":
        return cls(llm, max_chars=settings.max_source_chars)

    async def summarize(self, text: str) -> str:
        """Return the model's bullet summary; ``LLMCallError`` propagates."""
        prompt = build_text_summary_prompt(truncate(text, self.max_chars), points=self.points)
        summary = await self.llm.generate_completion(prompt, task="summarize_text")
        logger.info("Text summarized", input_length=len(text), summary_length=len(summary))
        return summary.strip()
