"""
schemas.py — AdvisorAgent Pydantic v2 data contracts.

Suggestion / AiAdvice describe the JSON object the advice prompt must return.
AdviceRequest is the POST /api/advice body.
"""
from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field

from taxlens.agents.extractor_agent.schemas import DeductionRecord, IncomeRecord


class Suggestion(BaseModel):
    """One actionable saving idea, e.g. category="80C", action="Invest ₹30,000 in ELSS"."""
    model_config = ConfigDict(extra="ignore")

    category: str = Field(..., min_length=1)
    action: str = Field(..., min_length=1)
    estimated_saving: float = Field(default=0, ge=0)


class AiAdvice(BaseModel):
    """Informational only — nothing here ever feeds back into the tax engine."""
    model_config = ConfigDict(extra="ignore")

    summary: str = ""
    savings_potential: float = Field(default=0, ge=0)
    suggestions: List[Suggestion] = Field(default_factory=list)


class AdviceRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    income: IncomeRecord
    deductions: DeductionRecord = Field(default_factory=DeductionRecord)
    old_total_tax: float = Field(..., ge=0)
    new_total_tax: float = Field(..., ge=0)


__all__ = ["Suggestion", "AiAdvice", "AdviceRequest"]
