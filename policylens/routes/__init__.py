"""
Routes package for the PolicyLens API.

Aggregates the APIRouter instances so the application factory can register
them in one place. Routers carry their own ``/api`` prefix.
"""

from __future__ import annotations

from fastapi import FastAPI

from policylens.routes.analysis import router as analysis_router
from policylens.routes.system import router as system_router

__all__ = [
    "analysis_router",
    "system_router",
    "all_routers",
    "register_all_routers",
]

all_routers = [
    analysis_router,
    system_router,
]


def register_all_routers(app: FastAPI) -> None:
    """Register all routers on the provided FastAPI application."""
    for router in all_routers:
        app.include_router(router)
