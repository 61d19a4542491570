"""
evaluator_agent.py — EvaluatorAgent LangGraph node.

Runs the deterministic tax engine for both regimes (no LLM) through
compare_regimes_tool and stores the computed HRA exemption on the
DeductionRecord for display.
"""
from __future__ import annotations

import logging

from taxlens.graph.state import AnalysisState

logger = logging.getLogger(__name__)


async def evaluator_agent_node(state: AnalysisState) -> dict:
    """
    Reads:
      state["income"], state["deductions"]

    Writes:
      comparison   — RegimeComparison as serializable dict
      deductions   — copy with hra_exemption filled in

    Raises:
      RuntimeError — the engine rejected the records or the configured tax year;
        the pipeline has no third outcome, so this surfaces as a server error
    """
    from taxlens.config import settings
    from taxlens.graph.tools.tax_tools import compare_regimes_tool

    income = state["income"]
    deductions = state["deductions"]

    outcome = compare_regimes_tool.invoke({
        "income": income.model_dump(),
        "deductions": deductions.model_dump(),
        "is_metro": settings.hra_assume_metro,
        "tax_year": settings.tax_year,
    })

    if not outcome.get("success"):
        error_msg = outcome.get("error") or "Tax calculation failed"
        logger.error("EvaluatorAgent tax calculation failed: %s", error_msg)
        raise RuntimeError(f"Tax calculation failed inside the analysis pipeline: {error_msg}")

    comparison = outcome["result"]
    logger.info(
        "EvaluatorAgent done recommended=%s old_tax=%.2f new_tax=%.2f savings=%.2f",
        comparison["recommended_regime"],
        comparison["old_regime"]["total_tax"],
        comparison["new_regime"]["total_tax"],
        comparison["savings_amount"],
    )

    return {
        "comparison": comparison,
        "deductions": deductions.model_copy(update={"hra_exemption": outcome["hra_exemption"]}),
        "current_agent": "evaluator",
    }
