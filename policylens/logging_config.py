"""Centralised structured logging setup for the PolicyLens service.

Calling :pyfunc:`configure_logging` sets up *structlog* with a JSON-formatted
pipeline (or a console renderer when ``LOG_PRETTY=1``) and bridges the stdlib
root logger through the same processors, so uvicorn and aiohttp records share
the format. The request id bound by the HTTP middleware is merged into every
record emitted while that request is being served.

Other modules should call :pyfunc:`structlog.get_logger()` directly and avoid
re-configuring the library.
"""

from __future__ import annotations

import logging
import os
from typing import Dict, Optional

import structlog

__all__ = [
    "configure_logging",
    "bind_request_context",
    "clear_request_context",
]


def configure_logging(force: bool = False) -> None:  # noqa: D401
    """Setup structlog + stdlib bridging exactly once.

    Args:
        force: When True, reconfigure even if previously configured. Use only
               inside isolated scripts/tests that need a different renderer.
    """

    configured = getattr(structlog, "_policylens_configured", False)  # type: ignore[attr-defined]
    if configured and not force:
        return

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    dev_mode = os.getenv("LOG_PRETTY", "0").lower() in {"1", "true", "yes"}
    if dev_mode:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    # Root handler uses ProcessorFormatter so stdlib logs share processors
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[structlog.contextvars.merge_contextvars],
        processors=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
    )

    # Remove existing handlers (avoid duplicates in tests / scripts)
    root_logger = logging.getLogger()
    for h in list(root_logger.handlers):
        root_logger.removeHandler(h)

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level, logging.INFO))

    structlog.configure(
        processors=shared_processors + [renderer],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    setattr(structlog, "_policylens_configured", True)  # type: ignore[attr-defined]


def bind_request_context(request_id: Optional[str] = None, **extra: str) -> None:
    """Bind contextual IDs into structlog contextvars for subsequent logs.

    Safe to call multiple times; only provided keys are updated.
    """
    payload: Dict[str, str] = {k: v for k, v in extra.items() if v}
    if request_id:
        payload["request_id"] = request_id
    if payload:
        structlog.contextvars.bind_contextvars(**payload)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()

