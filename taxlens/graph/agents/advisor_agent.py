"""
advisor_agent.py — AdvisorAgent LangGraph node.

Runs strictly after the EvaluatorAgent. Advice failures are masked inside
generate_advice(), so this node always produces an advice payload.
"""
from __future__ import annotations

import logging

from taxlens.graph.state import AnalysisState

logger = logging.getLogger(__name__)


async def advisor_agent_node(state: AnalysisState) -> dict:
    from taxlens.agents.advisor_agent.advisor import generate_advice
    from taxlens.config import settings
    from taxlens.graph.graph import get_ai_semaphore, get_mistral_client

    comparison = state["comparison"]

    advice = await generate_advice(
        get_mistral_client(),
        state["income"],
        state["deductions"],
        new_total_tax=comparison["new_regime"]["total_tax"],
        old_total_tax=comparison["old_regime"]["total_tax"],
        semaphore=get_ai_semaphore(),
        model=settings.mistral_model,
        temperature=settings.advice_temperature,
        max_tokens=settings.ai_max_tokens,
    )

    return {
        "advice": advice.model_dump(mode="json"),
        "current_agent": "advisor",
    }
