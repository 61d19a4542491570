"""
state.py — Shared AnalysisState TypedDict for the LangGraph pipeline.

This is the single source of truth that flows through all three agent nodes:
  ExtractorAgent → EvaluatorAgent → AdvisorAgent

LangGraph merges the partial updates returned by each node automatically.
"""
from __future__ import annotations

import operator
from typing import Annotated, Any, Optional

from typing_extensions import TypedDict


class AnalysisState(TypedDict, total=False):
    """
    Shared state passed through all nodes of the TaxLens analysis pipeline.

    'total=False' means all fields are optional at graph construction time —
    each node adds/overwrites only the fields it is responsible for.
    """

    # ---- Raw input (set before graph.ainvoke) -------------------------------
    input_text: str

    # ---- ExtractorAgent outputs ---------------------------------------------
    income: Optional[Any]                # IncomeRecord
    deductions: Optional[Any]            # DeductionRecord (hra_exemption filled by evaluator)
    applied_fallbacks: list[str]
    warnings: list[str]
    extraction_error: Optional[str]

    # ---- EvaluatorAgent outputs ---------------------------------------------
    comparison: Optional[dict]           # Serialized RegimeComparison

    # ---- AdvisorAgent outputs -----------------------------------------------
    advice: Optional[dict]               # Serialized AiAdvice

    # ---- Control flow -------------------------------------------------------
    current_agent: str                   # "extractor" | "evaluator" | "advisor" | "error"
    errors: Annotated[list[str], operator.add]
    should_stop: bool                    # True if extraction failed
