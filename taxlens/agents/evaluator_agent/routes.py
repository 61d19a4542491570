"""
EvaluatorAgent HTTP routes — POST /api/calculate, GET /api/tax-years

POST /api/calculate runs the deterministic engine directly on structured
records (manual entry or edited extraction results). No AI call is made.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from taxlens.agents.evaluator_agent.regime_tables import supported_tax_years
from taxlens.agents.evaluator_agent.schemas import CalculateRequest
from taxlens.agents.evaluator_agent.tax_engine import compare_regimes
from taxlens.config import settings

router = APIRouter(prefix="/api", tags=["evaluator_agent"])
logger = logging.getLogger(__name__)


@router.post("/calculate")
async def calculate_tax(body: CalculateRequest) -> JSONResponse:
    """
    Compare Old vs New regime for the supplied records.

    Unknown tax_year raises ValueError → 422 VALIDATION_ERROR (global handler).
    """
    tax_year = body.tax_year or settings.tax_year
    result = compare_regimes(
        body.income,
        body.deductions,
        is_metro=body.is_metro,
        tax_year=tax_year,
    )

    logger.info(
        "Tax calculated tax_year=%s recommended=%s savings=%.2f",
        tax_year,
        result.recommended_regime.value,
        result.savings_amount,
    )
    return JSONResponse(status_code=200, content=result.model_dump(mode="json"))


@router.get("/tax-years")
async def list_tax_years() -> dict:
    return {"tax_years": supported_tax_years(), "default": settings.tax_year}
