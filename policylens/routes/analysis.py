"""
Analysis routes for the PolicyLens API
"""

from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends

from policylens.core.dependencies import get_orchestrator, get_text_summarizer
from policylens.core.errors import PolicyLensError
from policylens.models.analysis import AnalysisRequest, SummarizeRequest, SummarizeResponse
from policylens.services.orchestrator import AnalysisOrchestrator
from policylens.services.text_summary import TextSummarizer

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["analysis"])


@router.post("/analyze")
async def analyze_parties(
    body: AnalysisRequest,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    """Summarize every party's source per theme and optionally answer a question.

    Returns ``{"analysis", "freeformAnswer"?, "fromCache"}``.
    """
    try:
        result = await orchestrator.analyze(
            body.to_parties(),
            body.to_themes(),
            body.freeform_question,
        )
    except PolicyLensError:
        raise
    except Exception as e:
        logger.exception("Unexpected error during analysis", error_type=type(e).__name__)
        raise PolicyLensError() from e

    logger.info(
        "Analysis served",
        parties=len(body.parties),
        themes=len(body.themes),
        from_cache=result.from_cache,
        freeform=result.freeform_answer is not None,
    )
    return result.to_payload()


@router.post("/summarize")
async def summarize_text(
    body: SummarizeRequest,
    summarizer: TextSummarizer = Depends(get_text_summarizer),
) -> Dict[str, Any]:
    """Summarize one text as a short bulleted list. Returns ``{"summary"}``."""
    try:
        summary = await summarizer.summarize(body.text_to_summarize)
    except PolicyLensError:
        raise
    except Exception as e:
        logger.exception("Unexpected error during text summary", error_type=type(e).__name__)
        raise PolicyLensError() from e
    return SummarizeResponse(summary=summary).model_dump()
