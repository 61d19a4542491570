"""
extractor_agent.py — ExtractorAgent LangGraph node.

Turns state["input_text"] into IncomeRecord + DeductionRecord. On failure the
node sets should_stop so the graph ends in the error node — no record is ever
fabricated.
"""
from __future__ import annotations

import logging

from taxlens.graph.state import AnalysisState

logger = logging.getLogger(__name__)


async def extractor_agent_node(state: AnalysisState) -> dict:
    """
    Reads:
      state["input_text"]

    Writes:
      income, deductions, applied_fallbacks, warnings   (success)
      extraction_error, errors, should_stop=True        (failure)
    """
    from taxlens.agents.extractor_agent.extractor import ExtractionError, extract_financial_data
    from taxlens.config import settings
    from taxlens.graph.graph import get_ai_semaphore, get_mistral_client

    text = state.get("input_text") or ""

    try:
        extraction = await extract_financial_data(
            get_mistral_client(),
            text,
            get_ai_semaphore(),
            model=settings.mistral_model,
            temperature=settings.extraction_temperature,
            max_tokens=settings.ai_max_tokens,
        )
    except ExtractionError as exc:
        logger.warning("ExtractorAgent failed: %s", exc)
        return {
            "extraction_error": str(exc),
            "errors": [str(exc)],
            "should_stop": True,
            "current_agent": "extractor",
        }

    return {
        "income": extraction.income,
        "deductions": extraction.deductions,
        "applied_fallbacks": extraction.applied_fallbacks,
        "warnings": extraction.warnings,
        "should_stop": False,
        "current_agent": "extractor",
    }
