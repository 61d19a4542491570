"""
regime_tables.py — Statutory slab tables, caps and rebate ceilings per tax year.

Tables are immutable and keyed by financial year so a new year is added by
registering another TaxYearRules entry, never by editing calculation code.

FY 2024-25 (AY 2025-26, pre-Budget 2025 slabs):
  New regime: 3L/7L/10L/12L/15L breakpoints, std deduction ₹75K, 87A cliff at ₹7L
  Old regime: 2.5L/5L/10L breakpoints,       std deduction ₹50K, 87A cliff at ₹5L
"""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

# ===========================================================================
# FY 2024-25 NAMED CONSTANTS
# ===========================================================================

FY_2024_25 = "FY2024-25"
DEFAULT_TAX_YEAR = FY_2024_25

INFINITY = float("inf")

OLD_SLAB_2_5L = 250_000
OLD_SLAB_5L   = 500_000
OLD_SLAB_10L  = 1_000_000

NEW_SLAB_3L  = 300_000
NEW_SLAB_7L  = 700_000
NEW_SLAB_10L = 1_000_000
NEW_SLAB_12L = 1_200_000
NEW_SLAB_15L = 1_500_000

OLD_STD_DEDUCTION = 50_000
NEW_STD_DEDUCTION = 75_000

CAP_80C   = 150_000
CAP_80D   = 25_000      # Self, under 60
CAP_80CCD = 50_000      # NPS 80CCD(1B)

OLD_87A_TAXABLE_CEILING = 500_000
NEW_87A_TAXABLE_CEILING = 700_000

CESS_RATE = 0.04

HRA_METRO_PCT     = 0.50
HRA_NON_METRO_PCT = 0.40
HRA_RENT_EXCESS_PCT = 0.10   # Rent counts only above 10% of basic


# ===========================================================================
# RULE CONTAINERS
# ===========================================================================

@dataclass(frozen=True)
class RegimeRules:
    """Slab table, standard deduction and 87A cliff for one regime in one year."""

    slabs: tuple[tuple[float, float], ...]   # (cumulative upper limit, marginal rate), ascending
    standard_deduction: float
    rebate_taxable_ceiling: float            # taxable income <= ceiling → tax zeroed


@dataclass(frozen=True)
class TaxYearRules:
    """All parameters the engine needs for one financial year."""

    tax_year: str
    old: RegimeRules
    new: RegimeRules
    cap_80c: float
    cap_80d: float
    cap_80ccd: float
    cess_rate: float


FY_2024_25_RULES = TaxYearRules(
    tax_year=FY_2024_25,
    old=RegimeRules(
        slabs=(
            (OLD_SLAB_2_5L, 0.00),   # 0–2.5L: 0%
            (OLD_SLAB_5L,   0.05),   # 2.5–5L: 5%
            (OLD_SLAB_10L,  0.20),   # 5–10L: 20%
            (INFINITY,      0.30),   # >10L: 30%
        ),
        standard_deduction=OLD_STD_DEDUCTION,
        rebate_taxable_ceiling=OLD_87A_TAXABLE_CEILING,
    ),
    new=RegimeRules(
        slabs=(
            (NEW_SLAB_3L,  0.00),    # 0–3L: 0%
            (NEW_SLAB_7L,  0.05),    # 3–7L: 5%
            (NEW_SLAB_10L, 0.10),    # 7–10L: 10%
            (NEW_SLAB_12L, 0.15),    # 10–12L: 15%
            (NEW_SLAB_15L, 0.20),    # 12–15L: 20%
            (INFINITY,     0.30),    # >15L: 30%
        ),
        standard_deduction=NEW_STD_DEDUCTION,
        rebate_taxable_ceiling=NEW_87A_TAXABLE_CEILING,
    ),
    cap_80c=CAP_80C,
    cap_80d=CAP_80D,
    cap_80ccd=CAP_80CCD,
    cess_rate=CESS_RATE,
)

TAX_YEAR_RULES: Mapping[str, TaxYearRules] = MappingProxyType({
    FY_2024_25: FY_2024_25_RULES,
})


def get_tax_year_rules(tax_year: str = DEFAULT_TAX_YEAR) -> TaxYearRules:
    """Look up the rules for a tax year. Raises ValueError for unsupported years."""
    try:
        return TAX_YEAR_RULES[tax_year]
    except KeyError:
        supported = ", ".join(sorted(TAX_YEAR_RULES))
        raise ValueError(
            f"Unsupported tax year '{tax_year}'. Supported: {supported}"
        ) from None


def supported_tax_years() -> list[str]:
    return sorted(TAX_YEAR_RULES)
