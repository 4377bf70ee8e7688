"""
Error handlers for the PolicyLens API

Every error response has the shape ``{"error": "<human readable message>"}``;
the HTTP status is the only structured signal given to callers.
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from policylens.core.errors import PolicyLensError

logger = structlog.get_logger(__name__)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


async def policylens_exception_handler(request: Request, exc: PolicyLensError):
    """Handle pipeline errors with their declared status code"""
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "Analysis request failed",
        error=exc.message,
        error_type=type(exc).__name__,
        status_code=exc.status_code,
        path=request.url.path,
    )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report body validation problems as a single 400 message"""
    messages = []
    for error in exc.errors():
        loc = [str(x) for x in error.get("loc", ()) if x != "body"]
        field = ".".join(loc)
        msg = error.get("msg", "invalid value")
        messages.append(f"{field}: {msg}" if field else msg)
    message = "; ".join(messages) or "Invalid request body"
    logger.info("Request validation failed", error=message, path=request.url.path)
    return JSONResponse(status_code=400, content={"error": message})


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions (404, 405, ...)"""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions"""
    logger.error(
        "Unhandled exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        request_id=_request_id(request),
    )
    return JSONResponse(
        status_code=500,
        content={"error": "An unexpected error occurred"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PolicyLensError, policylens_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, general_exception_handler)
