"""
Per-theme summarization of extracted party texts.

One model call covers every successful party and every requested theme; the
reply must be a JSON object keyed by party id then theme key. Any failure is
fatal for the request (no partial-theme recovery).
"""

from __future__ import annotations

from typing import Any, Dict, Sequence

import structlog

from policylens.core.errors import LLMCallError, SummarizationFailure
from policylens.models.analysis import AnalysisResult, ExtractionSuccess, Theme
from policylens.models.prompts import build_summary_prompt
from policylens.services.llm_client import LLMClient
from policylens.utils.json_repair import parse_json_object

logger = structlog.get_logger(__name__)


def _restrict(
    raw: Dict[str, Any],
    successes: Sequence[ExtractionSuccess],
    themes: Sequence[Theme],
) -> AnalysisResult:
    """Keep only known party ids and requested theme keys, as strings."""
    party_ids = {s.party_id for s in successes}
    theme_keys = {t.key for t in themes}
    result: AnalysisResult = {}
    for party_id, summaries in raw.items():
        if party_id not in party_ids or not isinstance(summaries, dict):
            continue
        result[party_id] = {
            key: value if isinstance(value, str) else str(value)
            for key, value in summaries.items()
            if key in theme_keys and value is not None
        }
    return result


class ThemeSummarizer:
    def __init__(self, llm: LLMClient, *, target_chars: int = 100):
        self.llm = llm
        self.target_chars = target_chars

    async def summarize(
        self,
        successes: Sequence[ExtractionSuccess],
        themes: Sequence[Theme],
    ) -> AnalysisResult:
        if not themes:
            return {}

        prompt = build_summary_prompt(successes, themes, target_chars=self.target_chars)
        try:
            raw_text = await self.llm.generate_completion(prompt, task="summarize", json_mode=True)
        except LLMCallError as e:
            raise SummarizationFailure(e.message) from e

        parsed = parse_json_object(raw_text)
        if parsed is None:
            logger.error("Summarization reply was not a JSON object", response_length=len(raw_text))
            raise SummarizationFailure("The language model returned an unparsable summary")

        result = _restrict(parsed, successes, themes)
        missing = sorted({s.party_id for s in successes} - set(result))
        if missing:
            logger.warning("Model omitted parties from summary", party_ids=missing)
        logger.info("Themes summarized", parties=len(result), themes=len(themes))
        return result
