"""
ExtractorAgent HTTP routes — POST /api/extract

Returns the normalized records without computing tax, so the frontend can show
the extracted figures for review before (or instead of) a full analysis.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from taxlens.agents.extractor_agent.extractor import ExtractionError, extract_financial_data
from taxlens.agents.extractor_agent.schemas import (
    AnalyzeRequest,
    ErrorBody,
    ErrorResponse,
)
from taxlens.config import settings
from taxlens.graph.graph import get_ai_semaphore

router = APIRouter(prefix="/api", tags=["extractor_agent"])
logger = logging.getLogger(__name__)


def make_extraction_error_response(message: str) -> JSONResponse:
    """502 EXTRACTION_FAILED — the upstream AI service could not produce records."""
    body = ErrorResponse(
        error=ErrorBody(code="EXTRACTION_FAILED", message=message)
    )
    return JSONResponse(status_code=502, content=body.model_dump())


@router.post("/extract")
async def extract(request: Request, body: AnalyzeRequest) -> JSONResponse:
    """
    Extract IncomeRecord + DeductionRecord from free text.

    Returns:
        200: ExtractionResult
        502: EXTRACTION_FAILED envelope
    """
    client = getattr(request.app.state, "mistral", None)

    try:
        result = await extract_financial_data(
            client,
            body.text,
            get_ai_semaphore(),
            model=settings.mistral_model,
            temperature=settings.extraction_temperature,
            max_tokens=settings.ai_max_tokens,
        )
    except ExtractionError as exc:
        return make_extraction_error_response(str(exc))

    logger.info("Extraction returned fallbacks=%d", len(result.applied_fallbacks))
    return JSONResponse(status_code=200, content=result.model_dump(mode="json"))
