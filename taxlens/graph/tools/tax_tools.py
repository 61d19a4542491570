"""
tax_tools.py — LangChain tool wrapping the deterministic tax engine.

The engine is never called with model output directly: the tool re-validates
both records before computing.
"""
from __future__ import annotations

import logging

from langchain_core.tools import tool

from taxlens.agents.evaluator_agent.regime_tables import DEFAULT_TAX_YEAR

logger = logging.getLogger(__name__)


@tool
def compare_regimes_tool(
    income: dict,
    deductions: dict,
    is_metro: bool = True,
    tax_year: str = DEFAULT_TAX_YEAR,
) -> dict:
    """
    Calculates income tax under both the Old and New regimes and recommends the lower one.

    Args:
        income: IncomeRecord serialized as dict.
        deductions: DeductionRecord serialized as dict.
        is_metro: Use the 50% (metro) HRA limit instead of 40%.
        tax_year: Financial year of the slab tables, e.g. "FY2024-25".

    Returns:
        dict: {success, result (RegimeComparison dict), hra_exemption, error}
    """
    from taxlens.agents.evaluator_agent.tax_engine import compare_regimes, compute_hra_exemption
    from taxlens.agents.extractor_agent.schemas import DeductionRecord, IncomeRecord

    try:
        income_record = IncomeRecord.model_validate(income)
        deduction_record = DeductionRecord.model_validate(deductions)
        comparison = compare_regimes(
            income_record, deduction_record, is_metro=is_metro, tax_year=tax_year,
        )
        hra_exemption = compute_hra_exemption(
            income_record.basic_annual_salary,
            income_record.annual_hra_received,
            income_record.annual_rent_paid,
            is_metro=is_metro,
        )
        logger.info(
            "Regimes compared old=%.2f new=%.2f recommended=%s",
            comparison.old_regime.total_tax,
            comparison.new_regime.total_tax,
            comparison.recommended_regime.value,
        )
        return {
            "success": True,
            "result": comparison.model_dump(mode="json"),
            "hra_exemption": hra_exemption,
            "error": None,
        }
    except Exception as exc:
        logger.error("compare_regimes_tool failed: %s", exc)
        return {"success": False, "result": None, "hra_exemption": 0.0, "error": str(exc)}
