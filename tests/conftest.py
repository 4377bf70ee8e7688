"""Shared pytest fixtures and in-memory fakes for the PolicyLens tests.

No test talks to the network: HTTP sources, the model backend and the Redis
store are replaced with small fakes that record how they were called.
"""

from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional, Union

import aiohttp
import pytest

from policylens.core.config import Settings
from policylens.services.cache import ResultCache
from policylens.services.extraction import SourceExtractor
from policylens.services.llm_client import LLMClient
from policylens.services.orchestrator import AnalysisOrchestrator


# ---------------------------------------------------------------------------
#  HTTP sources
# ---------------------------------------------------------------------------


class FakeResponse:
    def __init__(self, status: int = 200, body: str = "", delay: float = 0.0):
        self.status = status
        self._body = body
        self._delay = delay

    async def text(self, errors: str = "strict") -> str:
        if self._delay:
            await asyncio.sleep(self._delay)
        return self._body


class FakeSession:
    """Stands in for ``aiohttp.ClientSession``.

    ``routes`` maps URL -> FakeResponse, or -> an exception instance raised
    when the URL is requested. Unknown URLs raise a connection error.
    """

    def __init__(self, routes: Optional[Dict[str, Union[FakeResponse, Exception]]] = None):
        self.routes = dict(routes or {})
        self.requests: List[Dict[str, Any]] = []
        self.closed = False

    def get(self, url: str, **kwargs):
        self.requests.append({"url": url, **kwargs})
        target = self.routes.get(url)
        if target is None:
            target = aiohttp.ClientConnectionError(f"cannot connect to {url}")
        if isinstance(target, Exception):
            raise target

        @asynccontextmanager
        async def _ctx():
            yield target

        return _ctx()

    async def close(self) -> None:
        self.closed = True


# ---------------------------------------------------------------------------
#  Model backend
# ---------------------------------------------------------------------------


def _completion(content: Optional[str]):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
    )


class FakeChatClient:
    """Minimal ``AsyncOpenAI`` double.

    ``summary`` answers JSON-mode requests, ``answer`` answers the others.
    Either may be a string, an exception instance, or a callable taking the
    request kwargs.
    """

    def __init__(self, summary: Any = "{}", answer: Any = "An answer."):
        self.summary = summary
        self.answer = answer
        self.calls: List[Dict[str, Any]] = []
        self.closed = False
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    async def _create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.summary if kwargs.get("response_format") else self.answer
        if callable(reply) and not isinstance(reply, Exception):
            reply = reply(kwargs)
        if isinstance(reply, Exception):
            raise reply
        return _completion(reply)

    @property
    def summary_calls(self) -> List[Dict[str, Any]]:
        return [c for c in self.calls if c.get("response_format")]

    @property
    def answer_calls(self) -> List[Dict[str, Any]]:
        return [c for c in self.calls if not c.get("response_format")]

    async def close(self) -> None:
        self.closed = True


# ---------------------------------------------------------------------------
#  Key-value store
# ---------------------------------------------------------------------------


class FakeRedis:
    """In-memory store; ``stall_*`` makes the operation hang like a blackholed server."""

    STALL_SEC = 30.0

    def __init__(
        self,
        fail_get: bool = False,
        fail_set: bool = False,
        stall_get: bool = False,
        stall_set: bool = False,
    ):
        self.store: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}
        self.fail_get = fail_get
        self.fail_set = fail_set
        self.stall_get = stall_get
        self.stall_set = stall_set
        self.set_calls = 0

    async def get(self, key: str) -> Optional[str]:
        if self.stall_get:
            await asyncio.sleep(self.STALL_SEC)
        if self.fail_get:
            raise ConnectionError("store unavailable")
        return self.store.get(key)

    async def setex(self, key: str, ttl: int, value: str) -> None:
        self.set_calls += 1
        if self.stall_set:
            await asyncio.sleep(self.STALL_SEC)
        if self.fail_set:
            raise ConnectionError("store unavailable")
        self.store[key] = value
        self.ttls[key] = ttl

    async def ping(self) -> bool:
        if self.fail_get:
            raise ConnectionError("store unavailable")
        return True


class FakeResultCache(ResultCache):
    """ResultCache whose client is an in-memory ``FakeRedis``."""

    def __init__(self, fake: Optional[FakeRedis] = None, **kwargs):
        super().__init__("redis://fake:6379", **kwargs)
        self.fake = fake or FakeRedis()

    @asynccontextmanager
    async def get_client(self):
        yield self.fake

    async def close(self) -> None:
        return None

    def entries(self) -> Dict[str, Any]:
        return {k: json.loads(v) for k, v in self.fake.store.items()}


# ---------------------------------------------------------------------------
#  Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(
        openai_api_key="sk-test",
        kv_url="redis://fake:6379",
        extraction_timeout_sec=1.0,
        request_deadline_sec=5.0,
    )


@pytest.fixture
def make_orchestrator(settings: Settings) -> Callable[..., AnalysisOrchestrator]:
    """Factory wiring real services around the fakes."""

    def _make(
        *,
        session: Optional[FakeSession] = None,
        chat: Optional[FakeChatClient] = None,
        cache: Optional[ResultCache] = None,
        configured: bool = True,
        **overrides: Any,
    ) -> AnalysisOrchestrator:
        cfg = Settings(**{**settings.__dict__, **overrides})
        if not configured:
            cfg.openai_api_key = None
        llm = LLMClient(cfg, client=chat or FakeChatClient()) if configured else LLMClient(cfg)
        extractor = SourceExtractor.from_settings(cfg, session=session or FakeSession())
        return AnalysisOrchestrator.from_settings(cfg, extractor=extractor, llm=llm, cache=cache)

    return _make
