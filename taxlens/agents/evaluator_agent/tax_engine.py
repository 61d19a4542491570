"""
TaxLens Tax Engine — Old vs New regime, parameterised by tax year.
Pure Python, zero LLM, deterministic. Same input → same output.

Slab tables, caps and 87A ceilings live in regime_tables.py — nothing here is
year-specific. The 87A rebate is modelled as a hard cliff: at or below the
ceiling tax is zeroed, one rupee above it the full slab tax applies (no
marginal relief).
"""
from __future__ import annotations

from typing import Sequence

from taxlens.agents.extractor_agent.schemas import DeductionRecord, IncomeRecord
from taxlens.agents.evaluator_agent.regime_tables import (
    DEFAULT_TAX_YEAR,
    HRA_METRO_PCT,
    HRA_NON_METRO_PCT,
    HRA_RENT_EXCESS_PCT,
    RegimeRules,
    get_tax_year_rules,
)
from taxlens.agents.evaluator_agent.schemas import (
    Regime,
    RegimeComparison,
    SlabBreakdownEntry,
    TaxResult,
)

REBATE_LABEL = "Rebate u/s 87A"
_LAKH = 100_000


# ===========================================================================
# INTERNAL HELPERS (pure functions — no side effects, no I/O)
# ===========================================================================

def _format_lakh(amount: float) -> str:
    return f"₹{amount / _LAKH:.1f}L"


def _rebate_breakdown() -> list[SlabBreakdownEntry]:
    return [SlabBreakdownEntry(slab_label=REBATE_LABEL, rate_percent=0, amount=0)]


def compute_hra_exemption(
    basic_salary: float,
    hra_received: float,
    rent_paid: float,
    is_metro: bool = True,
) -> float:
    """
    HRA exemption under Section 10(13A), Rule 2A — minimum of:
      1. HRA received from employer
      2. 50% of basic (metro) or 40% (non-metro)
      3. Annual rent paid - 10% of basic
    clipped at 0. No rent paid → no exemption.
    """
    if rent_paid == 0:
        return 0.0
    metro_pct = HRA_METRO_PCT if is_metro else HRA_NON_METRO_PCT
    return max(
        0.0,
        min(
            hra_received,
            metro_pct * basic_salary,
            rent_paid - HRA_RENT_EXCESS_PCT * basic_salary,
        ),
    )


def compute_slab_tax(
    taxable_income: float,
    slabs: Sequence[tuple[float, float]],
) -> tuple[float, list[SlabBreakdownEntry]]:
    """
    Apply progressive slab tax to taxable_income using a bracket-list pattern.

    slabs are ascending (cumulative upper limit, marginal rate) pairs; the last
    limit is infinite. A boundary rupee belongs to the lower band. Only bands with
    a strictly positive contribution are listed in the breakdown.
    """
    tax = 0.0
    prev_ceiling = 0.0
    breakdown: list[SlabBreakdownEntry] = []
    for ceiling, rate in slabs:
        if taxable_income <= prev_ceiling:
            break
        band_top = min(taxable_income, ceiling)
        slab_tax = (band_top - prev_ceiling) * rate
        tax += slab_tax
        if slab_tax > 0:
            breakdown.append(SlabBreakdownEntry(
                slab_label=f"{_format_lakh(prev_ceiling)} – {_format_lakh(band_top)}",
                rate_percent=round(rate * 100, 2),
                amount=slab_tax,
            ))
        prev_ceiling = ceiling
    return tax, breakdown


def _effective_rate(total_tax: float, gross_salary: float) -> float:
    # Same guard in both regimes: gross salary is the denominator
    if gross_salary > 0:
        return total_tax / gross_salary * 100
    return 0.0


def _finalise(
    regime: Regime,
    rules: RegimeRules,
    cess_rate: float,
    income: IncomeRecord,
    total_deductions: float,
) -> TaxResult:
    """Shared tail of both regimes: taxable income → slabs → 87A → cess."""
    taxable_income = max(
        0.0,
        income.gross_annual_salary + income.other_annual_income - total_deductions,
    )

    slab_tax, breakdown = compute_slab_tax(taxable_income, rules.slabs)

    # 87A cliff, no marginal relief
    if taxable_income <= rules.rebate_taxable_ceiling:
        slab_tax = 0.0
        breakdown = _rebate_breakdown()

    # Cess on post-87A tax
    base_tax = round(slab_tax, 2)
    cess = round(base_tax * cess_rate, 2)
    total_tax = base_tax + cess

    return TaxResult(
        regime=regime,
        taxable_income=taxable_income,
        total_deductions=total_deductions,
        base_tax_amount=base_tax,
        cess_amount=cess,
        total_tax=total_tax,
        effective_rate_percent=_effective_rate(total_tax, income.gross_annual_salary),
        slab_breakdown=breakdown,
    )


# ===========================================================================
# NEW REGIME CALCULATOR
# ===========================================================================

def calculate_new_regime(
    income: IncomeRecord,
    tax_year: str = DEFAULT_TAX_YEAR,
) -> TaxResult:
    """
    New regime (Section 115BAC): standard deduction only.
    HRA, 80C, 80D, NPS and professional tax are ignored.
    """
    year = get_tax_year_rules(tax_year)
    return _finalise(
        Regime.NEW,
        year.new,
        year.cess_rate,
        income,
        float(year.new.standard_deduction),
    )


# ===========================================================================
# OLD REGIME CALCULATOR
# ===========================================================================

def calculate_old_regime(
    income: IncomeRecord,
    deductions: DeductionRecord,
    is_metro: bool = True,
    tax_year: str = DEFAULT_TAX_YEAR,
) -> TaxResult:
    """
    Old regime: std deduction, HRA Rule 2A, capped 80C / 80D / 80CCD,
    professional tax as supplied.
    deductions.hra_exemption is never read — it is recomputed here.
    """
    year = get_tax_year_rules(tax_year)

    ded_hra = compute_hra_exemption(
        income.basic_annual_salary,
        income.annual_hra_received,
        income.annual_rent_paid,
        is_metro=is_metro,
    )
    ded_80c   = min(deductions.section_80c_investments, year.cap_80c)
    ded_80d   = min(deductions.section_80d_premium, year.cap_80d)
    ded_80ccd = min(deductions.section_80ccd_contribution, year.cap_80ccd)
    ded_std   = float(year.old.standard_deduction)
    ded_pt    = deductions.professional_tax

    total_deductions = ded_80c + ded_80d + ded_80ccd + ded_std + ded_hra + ded_pt

    return _finalise(Regime.OLD, year.old, year.cess_rate, income, total_deductions)


# ===========================================================================
# COMPARE REGIMES — public API
# ===========================================================================

def recommend_regime(old: TaxResult, new: TaxResult) -> tuple[Regime, float]:
    """New Regime wins only when strictly cheaper; a tie keeps the Old Regime."""
    recommended = Regime.NEW if new.total_tax < old.total_tax else Regime.OLD
    return recommended, abs(old.total_tax - new.total_tax)


def compare_regimes(
    income: IncomeRecord,
    deductions: DeductionRecord,
    is_metro: bool = True,
    tax_year: str = DEFAULT_TAX_YEAR,
) -> RegimeComparison:
    """Calculate both regimes independently and recommend the lower one."""
    old = calculate_old_regime(income, deductions, is_metro=is_metro, tax_year=tax_year)
    new = calculate_new_regime(income, tax_year=tax_year)
    recommended, savings = recommend_regime(old, new)

    gross = income.gross_annual_salary
    return RegimeComparison(
        tax_year=tax_year,
        old_regime=old,
        new_regime=new,
        recommended_regime=recommended,
        savings_amount=round(savings, 2),
        net_income_old=gross - old.total_tax,
        net_income_new=gross - new.total_tax,
    )
