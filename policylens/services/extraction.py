"""
Source extraction for party policy documents.

Turns one party's source (URL or raw text) into cleaned plain text, or into a
typed failure outcome. Every extraction is a single attempt bounded by a
timeout, and failures are returned as values so a concurrent fan-out over
many parties never lets one source's error reach its siblings.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional, Sequence

import aiohttp
import structlog
from bs4 import BeautifulSoup

from policylens.core.config import DEFAULT_USER_AGENT, Settings
from policylens.models.analysis import (
    ExtractionOutcome,
    ExtractionSuccess,
    PartyInput,
    extraction_failure,
)
from policylens.utils.text_sanitize import clean_text, truncate

logger = structlog.get_logger(__name__)

# Elements that never carry policy content
NOISE_TAGS = (
    "script", "style", "noscript", "nav", "header", "footer", "aside", "form", "iframe",
)


class SourceHTTPError(Exception):
    """Raised internally when a source responds with a non-2xx status."""

    def __init__(self, status: int):
        self.status = status
        super().__init__(f"HTTP {status}")


def html_to_text(html: str, *, max_chars: Optional[int] = None) -> str:
    """Strip non-content elements and return whitespace-collapsed text."""
    soup = BeautifulSoup(html or "", "html.parser")
    for el in soup(list(NOISE_TAGS)):
        el.decompose()
    return clean_text(soup.get_text(" "), max_len=max_chars)


class SourceExtractor:
    """Fetches and cleans party sources over a shared aiohttp session."""

    def __init__(
        self,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        timeout_sec: float = 20.0,
        max_chars: int = 15000,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        self._session = session
        self._owns_session = session is None
        self.timeout_sec = timeout_sec
        self.max_chars = max_chars
        self.headers = {
            "User-Agent": user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "ja,en-US;q=0.8,en;q=0.5",
        }

    @classmethod
    def from_settings(
        cls, settings: Settings, session: Optional[aiohttp.ClientSession] = None
    ) -> "SourceExtractor":
        return cls(
            session=session,
            timeout_sec=settings.extraction_timeout_sec,
            max_chars=settings.max_source_chars,
            user_agent=settings.fetch_user_agent,
        )

    async def __aenter__(self) -> "SourceExtractor":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        if self._owns_session:
            self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def _fetch_html(self, url: str) -> str:
        session = self._get_session()
        timeout = aiohttp.ClientTimeout(total=self.timeout_sec)
        async with session.get(url, headers=self.headers, timeout=timeout, allow_redirects=True) as r:
            if not 200 <= r.status < 300:
                raise SourceHTTPError(r.status)
            return await r.text(errors="replace")

    async def _extract_url(self, party: PartyInput) -> ExtractionOutcome:
        url = party.url or ""
        try:
            html = await asyncio.wait_for(self._fetch_html(url), timeout=self.timeout_sec)
        except asyncio.TimeoutError:
            return extraction_failure(party, f"timed out after {self.timeout_sec:g}s fetching {url}")
        except SourceHTTPError as e:
            return extraction_failure(party, f"HTTP {e.status} fetching {url}")
        except aiohttp.ClientError as e:
            return extraction_failure(party, f"network error fetching {url}: {e}")

        text = html_to_text(html, max_chars=self.max_chars)
        if not text:
            return extraction_failure(party, f"no readable text at {url}")
        return ExtractionSuccess(party_id=party.id, name=party.name, text=text)

    async def extract(self, party: PartyInput) -> ExtractionOutcome:
        """Extract one party's source; never raises."""
        if party.url:
            try:
                outcome = await self._extract_url(party)
            except Exception as e:
                logger.warning(
                    "Unexpected extraction error",
                    party_id=party.id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                outcome = extraction_failure(party, f"unexpected error: {type(e).__name__}")
        elif party.text:
            outcome = ExtractionSuccess(
                party_id=party.id,
                name=party.name,
                text=truncate(party.text, self.max_chars),
            )
        else:
            outcome = extraction_failure(party, "no source provided")

        if outcome.ok:
            logger.info(
                "Source extracted",
                party_id=party.id,
                source="url" if party.url else "text",
                chars=len(outcome.text),  # type: ignore[union-attr]
            )
        else:
            logger.warning(
                "Source extraction failed",
                party_id=party.id,
                reason=outcome.reason,  # type: ignore[union-attr]
            )
        return outcome

    async def extract_all(self, parties: Sequence[PartyInput]) -> List[ExtractionOutcome]:
        """Extract every party concurrently and wait for all of them."""
        return list(await asyncio.gather(*(self.extract(p) for p in parties)))
