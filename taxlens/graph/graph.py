"""
graph.py — TaxLens LangGraph StateGraph orchestrator.

Builds and compiles the three-agent analysis pipeline:
  ExtractorAgent → EvaluatorAgent → AdvisorAgent

Also acts as the singleton registry for shared resources (Mistral client,
AI semaphore) that are set at FastAPI startup and read by the agent nodes.

Usage:
    from taxlens.graph.graph import build_graph, set_resources

    # At FastAPI startup:
    set_resources(mistral_client=app.state.mistral, ai_semaphore=app.state.ai_semaphore)
    app.state.analysis_graph = build_graph()

    # At request time:
    result = await app.state.analysis_graph.ainvoke(initial_state)
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Singleton resource registry — set during FastAPI lifespan, read by nodes
# ---------------------------------------------------------------------------

_mistral_client: Any = None
_ai_semaphore: Optional[asyncio.Semaphore] = None


def set_resources(
    mistral_client: Any = None,
    ai_semaphore: Optional[asyncio.Semaphore] = None,
) -> None:
    """Called at FastAPI startup (lifespan) to register shared resources."""
    global _mistral_client, _ai_semaphore
    _mistral_client = mistral_client
    _ai_semaphore = ai_semaphore
    logger.info(
        "Graph resources set: mistral=%s semaphore=%s",
        "ok" if mistral_client else "none",
        "ok" if ai_semaphore else "none",
    )


def get_mistral_client() -> Any:
    return _mistral_client


def get_ai_semaphore() -> asyncio.Semaphore:
    """Returns the semaphore, creating a default one if not yet set."""
    global _ai_semaphore
    if _ai_semaphore is None:
        from taxlens.config import settings
        _ai_semaphore = asyncio.Semaphore(settings.ai_concurrency)
    return _ai_semaphore


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------

def route_after_extraction(state: dict) -> str:
    """'error' ends the run without computing anything; 'evaluator' continues."""
    return "error" if state.get("should_stop") else "evaluator"


# ---------------------------------------------------------------------------
# Graph construction
# ---------------------------------------------------------------------------

def build_graph():
    """
    Builds and compiles the TaxLens LangGraph StateGraph.

    Node execution order:
      extractor_agent → (conditional) → evaluator_agent → advisor_agent → END

    Conditional edge after extractor_agent:
      - "error":     goes to error → END (extraction_error set in state)
      - "evaluator": continues to evaluator_agent
    """
    from langgraph.graph import END, StateGraph

    from taxlens.graph.agents.advisor_agent import advisor_agent_node
    from taxlens.graph.agents.evaluator_agent import evaluator_agent_node
    from taxlens.graph.agents.extractor_agent import extractor_agent_node
    from taxlens.graph.state import AnalysisState

    async def error_node(state: AnalysisState) -> dict:
        """Terminal node for the failure outcome."""
        logger.info("Graph stopped at error_node: %s", state.get("extraction_error"))
        return {"current_agent": "error", "should_stop": True}

    workflow = StateGraph(AnalysisState)

    workflow.add_node("extractor_agent", extractor_agent_node)
    workflow.add_node("evaluator_agent", evaluator_agent_node)
    workflow.add_node("advisor_agent", advisor_agent_node)
    workflow.add_node("error", error_node)

    workflow.set_entry_point("extractor_agent")

    workflow.add_conditional_edges(
        "extractor_agent",
        route_after_extraction,
        {
            "error": "error",
            "evaluator": "evaluator_agent",
        },
    )

    workflow.add_edge("evaluator_agent", "advisor_agent")
    workflow.add_edge("advisor_agent", END)
    workflow.add_edge("error", END)

    compiled = workflow.compile()
    logger.info("TaxLens LangGraph compiled successfully")
    return compiled
