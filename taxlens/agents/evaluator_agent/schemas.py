"""
schemas.py — EvaluatorAgent Pydantic v2 data contracts.

Defines:
  - Regime               (OLD | NEW)
  - SlabBreakdownEntry   (tax contributed by one slab band)
  - TaxResult            (full tax computation for one regime)
  - RegimeComparison     (both results + recommendation — never merges the two)
  - CalculateRequest     (POST /api/calculate body)
"""
from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from taxlens.agents.extractor_agent.schemas import DeductionRecord, IncomeRecord


class Regime(str, Enum):
    OLD = "OLD"
    NEW = "NEW"


# ---------------------------------------------------------------------------
# SlabBreakdownEntry — one band of the progressive calculation
# ---------------------------------------------------------------------------

class SlabBreakdownEntry(BaseModel):
    """
    Tax contributed by a single slab band, e.g. "₹3.0L – ₹7.0L" at 5%.

    A full 87A rebate collapses the breakdown to one synthetic entry
    labelled "Rebate u/s 87A" with rate 0 and amount 0.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    slab_label: str
    rate_percent: float
    amount: float


# ---------------------------------------------------------------------------
# TaxResult — one regime
# ---------------------------------------------------------------------------

class TaxResult(BaseModel):
    """
    Complete tax computation for a single regime.

    Computation sequence:
      1. taxable_income = max(0, gross + other_income - total_deductions)
      2. slab tax = progressive bracket walk
      3. 87A cliff → base_tax_amount (= 0 at or below the rebate ceiling)
      4. cess_amount = 4% of base_tax_amount
      5. total_tax = base_tax_amount + cess_amount
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    regime: Regime
    taxable_income: float
    total_deductions: float
    base_tax_amount: float       # After 87A, before cess
    cess_amount: float
    total_tax: float
    effective_rate_percent: float
    slab_breakdown: List[SlabBreakdownEntry] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# RegimeComparison — both regimes side by side
# ---------------------------------------------------------------------------

class RegimeComparison(BaseModel):
    """
    Output of compare_regimes(). old_regime and new_regime are computed
    independently; the comparison only adds the recommendation on top.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    tax_year: str
    old_regime: TaxResult
    new_regime: TaxResult
    recommended_regime: Regime
    savings_amount: float         # abs(old.total_tax - new.total_tax)
    net_income_old: float         # gross - old.total_tax
    net_income_new: float         # gross - new.total_tax


class CalculateRequest(BaseModel):
    """Request body for POST /api/calculate — structured records, no AI involved."""
    model_config = ConfigDict(extra="forbid")

    income: IncomeRecord
    deductions: DeductionRecord = Field(default_factory=DeductionRecord)
    is_metro: bool = True
    tax_year: Optional[str] = None   # None → settings.tax_year


__all__ = [
    "Regime",
    "SlabBreakdownEntry",
    "TaxResult",
    "RegimeComparison",
    "CalculateRequest",
]
