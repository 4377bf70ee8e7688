"""
FastAPI application factory and configuration
"""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from policylens import __version__
from policylens.core.config import Settings
from policylens.core.error_handlers import register_exception_handlers
from policylens.logging_config import (
    bind_request_context,
    clear_request_context,
    configure_logging,
)
from policylens.routes import register_all_routers
from policylens.services.cache import ResultCache
from policylens.services.extraction import SourceExtractor
from policylens.services.llm_client import LLMClient
from policylens.services.orchestrator import AnalysisOrchestrator

logger = structlog.get_logger(__name__)


async def build_orchestrator(settings: Settings) -> AnalysisOrchestrator:
    """Construct the long-lived clients once and wire them together."""
    cache = ResultCache.from_settings(settings)
    if cache is not None:
        await cache.initialize()
    else:
        logger.info("Result cache disabled", caching_enabled=settings.caching_enabled)

    llm = LLMClient(settings)
    extractor = SourceExtractor.from_settings(settings)
    return AnalysisOrchestrator.from_settings(settings, extractor=extractor, llm=llm, cache=cache)


async def shutdown_orchestrator(orchestrator: AnalysisOrchestrator) -> None:
    await orchestrator.extractor.close()
    await orchestrator.llm.close()
    if orchestrator.cache is not None:
        await orchestrator.cache.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle"""
    logger.info("Starting PolicyLens API", version=__version__)

    built_here = False
    if getattr(app.state, "orchestrator", None) is None:
        app.state.orchestrator = await build_orchestrator(app.state.settings)
        built_here = True
    logger.info(
        "Analysis pipeline ready",
        llm_configured=app.state.orchestrator.llm.is_configured(),
        cache_active=app.state.orchestrator.cache_active,
    )

    yield

    if built_here:
        await shutdown_orchestrator(app.state.orchestrator)
        app.state.orchestrator = None
    logger.info("Shutdown complete")


def create_app(
    settings: Optional[Settings] = None,
    *,
    orchestrator: Optional[AnalysisOrchestrator] = None,
) -> FastAPI:
    """Create and configure FastAPI application.

    When ``orchestrator`` is given it is used as-is and the lifespan neither
    builds nor closes clients.
    """
    configure_logging()
    settings = settings or Settings.from_env()

    app = FastAPI(
        title="PolicyLens API",
        version=__version__,
        description="Grounded per-theme comparison of party policy documents",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.orchestrator = orchestrator

    setup_middleware(app, settings)
    register_exception_handlers(app)
    register_all_routers(app)
    return app


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure middleware"""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "Origin", "X-Request-ID"],
        max_age=600,
    )

    # Request ID middleware
    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        clear_request_context()
        bind_request_context(request_id=request_id)
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    app.add_middleware(GZipMiddleware, minimum_size=1000)
