"""
Free-form answers to a user question, grounded in the extracted party texts.

Grounding is prompt-level only: the model is told to use the supplied texts
and nothing else, but the answer is not validated against them.
"""

from __future__ import annotations

from typing import Sequence

import structlog

from policylens.core.errors import FreeAnswerFailure, LLMCallError
from policylens.models.analysis import ExtractionSuccess, FreeformAnswer
from policylens.models.prompts import build_freeform_prompt
from policylens.services.llm_client import LLMClient

logger = structlog.get_logger(__name__)


class FreeformAnswerer:
    def __init__(self, llm: LLMClient):
        self.llm = llm

    async def answer(
        self, successes: Sequence[ExtractionSuccess], question: str
    ) -> FreeformAnswer:
        prompt = build_freeform_prompt(successes, question)
        try:
            text = await self.llm.generate_completion(prompt, task="freeform")
        except LLMCallError as e:
            raise FreeAnswerFailure(e.message) from e
        logger.info("Free-form answer generated", parties=len(successes), answer_length=len(text))
        return FreeformAnswer(question=question, answer=text.strip())
