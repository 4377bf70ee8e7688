"""
Analysis orchestrator for PolicyLens.

Runs one request through the pipeline:

    Validating -> CacheLookup -> CacheHit -> Respond
                              -> Extracting -> Summarizing -> Merging
                                 -> CachingWrite -> Respond

with ``Failed`` reachable from every step. Extraction fans out over all
parties and joins; theme summarization and the optional free-form answer run
concurrently and fail independently. Summarization failure is fatal for the
request, a free-form failure only drops the answer from the response.

The cache lookup and the pipeline share the request deadline. The cache write
runs after it, bounded only by the store's own operation timeout.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Awaitable, List, Optional, Sequence, Tuple, TypeVar

import structlog
from pydantic import ValidationError as PydanticValidationError

from policylens.core.config import Settings
from policylens.core.errors import (
    AggregateExtractionFailure,
    PolicyLensError,
    RequestDeadlineExceeded,
    SummarizationFailure,
    ValidationError,
)
from policylens.models.analysis import (
    FAILURE_SENTINEL,
    AnalysisResponse,
    AnalysisResult,
    ExtractionFailure,
    ExtractionSuccess,
    FreeformAnswer,
    PartyInput,
    Theme,
)
from policylens.services.cache import ResultCache
from policylens.services.cache_keys import build_cache_key
from policylens.services.extraction import SourceExtractor
from policylens.services.freeform import FreeformAnswerer
from policylens.services.llm_client import LLMClient
from policylens.services.summarizer import ThemeSummarizer

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class AnalysisState(str, Enum):
    VALIDATING = "validating"
    CACHE_LOOKUP = "cache_lookup"
    CACHE_HIT = "cache_hit"
    EXTRACTING = "extracting"
    SUMMARIZING = "summarizing"
    MERGING = "merging"
    CACHING_WRITE = "caching_write"
    RESPOND = "respond"
    FAILED = "failed"


def merge_failures(
    analysis: AnalysisResult,
    failures: Sequence[ExtractionFailure],
    themes: Sequence[Theme],
) -> AnalysisResult:
    """Map every requested theme of every failed party to the sentinel."""
    merged = dict(analysis)
    if not themes:
        return merged
    for failure in failures:
        merged[failure.party_id] = {t.key: FAILURE_SENTINEL for t in themes}
    return merged


class AnalysisOrchestrator:
    """Cache-first analysis pipeline, parameterised by feature flags."""

    def __init__(
        self,
        *,
        extractor: SourceExtractor,
        llm: LLMClient,
        summarizer: ThemeSummarizer,
        answerer: FreeformAnswerer,
        cache: Optional[ResultCache] = None,
        caching_enabled: bool = True,
        freeform_enabled: bool = True,
        cache_ttl_sec: int = 24 * 3600,
        request_deadline_sec: Optional[float] = 120.0,
    ):
        self.extractor = extractor
        self.llm = llm
        self.summarizer = summarizer
        self.answerer = answerer
        self.cache = cache
        self.caching_enabled = caching_enabled
        self.freeform_enabled = freeform_enabled
        self.cache_ttl_sec = cache_ttl_sec
        self.request_deadline_sec = request_deadline_sec

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        extractor: SourceExtractor,
        llm: LLMClient,
        cache: Optional[ResultCache] = None,
    ) -> "AnalysisOrchestrator":
        return cls(
            extractor=extractor,
            llm=llm,
            summarizer=ThemeSummarizer(llm, target_chars=settings.summary_target_chars),
            answerer=FreeformAnswerer(llm),
            cache=cache,
            caching_enabled=settings.caching_enabled,
            freeform_enabled=settings.freeform_enabled,
            cache_ttl_sec=settings.cache_ttl_sec,
            request_deadline_sec=settings.request_deadline_sec,
        )


    @property
    def cache_active(self) -> bool:
        return self.caching_enabled and self.cache is not None

    @staticmethod
    def _enter(state: AnalysisState, **fields) -> None:
        logger.debug("Analysis state", state=state.value, **fields)

    # ────────────────────────────────────────────────────────────
    #  Public entry point
    # ────────────────────────────────────────────────────────────

    async def analyze(
        self,
        parties: Sequence[PartyInput],
        themes: Optional[Sequence[Theme]],
        question: Optional[str] = None,
    ) -> AnalysisResponse:
        # Whitespace-only counts as no question; anything else is kept verbatim
        if question is not None and not question.strip():
            question = None
        cache = self.cache if self.caching_enabled else None
        try:
            self._enter(AnalysisState.VALIDATING, parties=len(parties or []))
            themes = self._validate(parties, themes)
            cache_key = build_cache_key(parties, question) if cache is not None else None

            response, cacheable = await self._within_deadline(
                self._compute(parties, themes, question, cache, cache_key)
            )
        except PolicyLensError as e:
            self._enter(AnalysisState.FAILED, error=e.message, error_type=type(e).__name__)
            raise

        # The write happens after the deadline so a slow store never costs a computed result
        if cacheable and cache is not None and cache_key is not None:
            self._enter(AnalysisState.CACHING_WRITE)
            await cache.set(cache_key, response.to_cache_entry(), ttl=self.cache_ttl_sec)

        self._enter(AnalysisState.RESPOND, from_cache=response.from_cache)
        return response

    # ────────────────────────────────────────────────────────────
    #  Steps
    # ────────────────────────────────────────────────────────────

    def _validate(
        self, parties: Sequence[PartyInput], themes: Optional[Sequence[Theme]]
    ) -> Sequence[Theme]:
        if not parties:
            raise ValidationError("At least one party is required")
        if themes is None:
            raise ValidationError("A theme list is required")
        # Configuration failure, distinct from request validation
        self.llm.ensure_configured()
        return themes

    async def _within_deadline(self, work: Awaitable[T]) -> T:
        if not self.request_deadline_sec:
            return await work
        try:
            return await asyncio.wait_for(work, timeout=self.request_deadline_sec)
        except asyncio.TimeoutError:
            raise RequestDeadlineExceeded() from None

    async def _compute(
        self,
        parties: Sequence[PartyInput],
        themes: Sequence[Theme],
        question: Optional[str],
        cache: Optional[ResultCache],
        cache_key: Optional[str],
    ) -> Tuple[AnalysisResponse, bool]:
        """Serve from cache or run the pipeline; also says whether to cache."""
        if cache is not None and cache_key is not None:
            self._enter(AnalysisState.CACHE_LOOKUP)
            cached = await self._lookup(cache, cache_key)
            if cached is not None:
                self._enter(AnalysisState.CACHE_HIT)
                return cached, False
        return await self._run_pipeline(parties, themes, question)

    @staticmethod
    async def _lookup(cache: ResultCache, cache_key: str) -> Optional[AnalysisResponse]:
        entry = await cache.get(cache_key)
        if entry is None:
            return None
        try:
            return AnalysisResponse.from_cache_entry(entry)
        except PydanticValidationError as e:
            logger.warning("Ignoring malformed cache entry", error=str(e))
            return None

    async def _run_pipeline(
        self,
        parties: Sequence[PartyInput],
        themes: Sequence[Theme],
        question: Optional[str],
    ) -> Tuple[AnalysisResponse, bool]:
        self._enter(AnalysisState.EXTRACTING, parties=len(parties))
        outcomes = await self.extractor.extract_all(parties)
        successes: List[ExtractionSuccess] = [o for o in outcomes if isinstance(o, ExtractionSuccess)]
        failures: List[ExtractionFailure] = [o for o in outcomes if isinstance(o, ExtractionFailure)]
        logger.info("Extraction complete", succeeded=len(successes), failed=len(failures))

        if not successes:
            raise AggregateExtractionFailure()

        self._enter(AnalysisState.SUMMARIZING, themes=len(themes), question=bool(question))
        analysis, freeform_answer, answer_failed = await self._summarize(successes, themes, question)

        self._enter(AnalysisState.MERGING, failed=len(failures))
        analysis = merge_failures(analysis, failures, themes)
        response = AnalysisResponse(analysis=analysis, freeform_answer=freeform_answer, from_cache=False)

        if answer_failed:
            logger.info("Skipping cache write for degraded result")
        return response, not answer_failed

    async def _summarize(
        self,
        successes: Sequence[ExtractionSuccess],
        themes: Sequence[Theme],
        question: Optional[str],
    ) -> Tuple[AnalysisResult, Optional[FreeformAnswer], bool]:
        calls = [self.summarizer.summarize(successes, themes)]
        if question and self.freeform_enabled:
            calls.append(self.answerer.answer(successes, question))
        want_answer = len(calls) > 1

        results = await asyncio.gather(*calls, return_exceptions=True)

        summary = results[0]
        if isinstance(summary, PolicyLensError):
            raise summary
        if isinstance(summary, Exception):
            logger.error(
                "Summarizer raised unexpectedly",
                error=str(summary),
                error_type=type(summary).__name__,
            )
            raise SummarizationFailure() from summary

        freeform_answer: Optional[FreeformAnswer] = None
        answer_failed = False
        if want_answer:
            answer = results[1]
            if isinstance(answer, Exception):
                answer_failed = True
                logger.warning(
                    "Free-form answer failed; returning analysis without it",
                    error=str(answer),
                    error_type=type(answer).__name__,
                )
            else:
                freeform_answer = answer

        return summary, freeform_answer, answer_failed
