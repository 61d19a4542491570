"""
AdvisorAgent HTTP routes — POST /api/advice

Always answers 200: AI failures degrade to the default advice payload.
"""
from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from taxlens.agents.advisor_agent.advisor import generate_advice
from taxlens.agents.advisor_agent.schemas import AdviceRequest
from taxlens.config import settings
from taxlens.graph.graph import get_ai_semaphore

router = APIRouter(prefix="/api", tags=["advisor_agent"])


@router.post("/advice")
async def advice(request: Request, body: AdviceRequest) -> JSONResponse:
    result = await generate_advice(
        getattr(request.app.state, "mistral", None),
        body.income,
        body.deductions,
        new_total_tax=body.new_total_tax,
        old_total_tax=body.old_total_tax,
        semaphore=get_ai_semaphore(),
        model=settings.mistral_model,
        temperature=settings.advice_temperature,
        max_tokens=settings.ai_max_tokens,
    )
    return JSONResponse(status_code=200, content=result.model_dump(mode="json"))
