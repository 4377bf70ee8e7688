"""
System routes: liveness and dependency status
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from policylens import __version__
from policylens.core.config import Settings
from policylens.core.dependencies import get_orchestrator, get_settings
from policylens.services.orchestrator import AnalysisOrchestrator

router = APIRouter(prefix="/api", tags=["system"])


@router.get("/health")
async def health(
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    cache = orchestrator.cache if orchestrator.cache_active else None
    return {
        "status": "ok",
        "version": __version__,
        "llm_configured": orchestrator.llm.is_configured(),
        "llm_backend": orchestrator.llm.get_active_backend_info().get("backend"),
        "freeform_enabled": settings.freeform_enabled,
        "cache_enabled": cache is not None,
        "cache_reachable": await cache.ping() if cache is not None else False,
        "cache_stats": cache.stats() if cache is not None else {},
    }
