"""
schemas.py — ExtractorAgent Pydantic v2 data contracts.

Defines:
  - IncomeRecord, DeductionRecord  (the central data contracts — the tax engine consumes these)
  - ExtractionPayload              (raw AI response shape, every field optional)
  - ExtractionResult, AnalyzeRequest
  - ErrorDetail, ErrorBody, ErrorResponse  (cross-cutting error envelope)

All monetary fields are ANNUAL amounts in INR (whole rupees, floats allowed).
Records are frozen: created once per analysis request, never mutated.
"""
from __future__ import annotations

import math
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_PROFESSIONAL_TAX = 2_400
MAX_INPUT_CHARS = 20_000


# ---------------------------------------------------------------------------
# IncomeRecord — salary structure and other income
# ---------------------------------------------------------------------------

class IncomeRecord(BaseModel):
    """
    Annual income of a salaried taxpayer.

    basic + HRA <= gross is NOT enforced — the extractor may produce inconsistent
    estimates and the engine must still compute a result.
    special_allowance and leave_travel_allowance are tracked but unused by the
    current tax formulas.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    gross_annual_salary: float = Field(default=0, ge=0, description="Total annual gross salary.")
    basic_annual_salary: float = Field(default=0, ge=0, description="Annual basic salary component of gross.")
    annual_hra_received: float = Field(default=0, ge=0, description="Annual HRA component of gross.")
    annual_rent_paid: float = Field(default=0, ge=0, description="Annual rent paid by the taxpayer.")
    other_annual_income: float = Field(default=0, ge=0, description="Interest, dividends, etc.")
    special_allowance: float = Field(default=0, ge=0)
    leave_travel_allowance: float = Field(default=0, ge=0)


# ---------------------------------------------------------------------------
# DeductionRecord — Chapter VI-A claims and professional tax
# ---------------------------------------------------------------------------

class DeductionRecord(BaseModel):
    """
    Deductions claimed by the taxpayer, as supplied (caps are applied by the engine).

    hra_exemption is a computed display value. The engine never reads it; the
    pipeline overwrites it with the Old Regime HRA exemption.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    section_80c_investments: float = Field(default=0, ge=0, description="PPF, ELSS, LIC, EPF. Capped at ₹1,50,000.")
    section_80d_premium: float = Field(default=0, ge=0, description="Health insurance premium. Capped at ₹25,000.")
    section_80ccd_contribution: float = Field(default=0, ge=0, description="NPS contribution. Capped at ₹50,000.")
    professional_tax: float = Field(default=DEFAULT_PROFESSIONAL_TAX, ge=0)
    hra_exemption: float = Field(default=0, ge=0, description="Computed output — ignored on input.")


# ---------------------------------------------------------------------------
# ExtractionPayload — what the AI service is asked to return
# ---------------------------------------------------------------------------

class ExtractionPayload(BaseModel):
    """
    JSON object returned by the extraction prompt.

    Every field is optional: None means "not recoverable from the text".
    Nulls, negatives, booleans and non-numeric strings are all coerced to None so a
    sloppy answer degrades to fallback rules instead of failing validation.
    """
    model_config = ConfigDict(extra="ignore")

    gross_salary: Optional[float] = None
    basic_salary: Optional[float] = None
    hra_received: Optional[float] = None
    rent_paid: Optional[float] = None
    investments_80c: Optional[float] = None
    medical_premium_80d: Optional[float] = None
    nps_80ccd: Optional[float] = None
    other_income: Optional[float] = None

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> Optional[float]:
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, str):
            cleaned = value.replace(",", "").replace("₹", "").strip()
            try:
                value = float(cleaned)
            except ValueError:
                return None
        if not isinstance(value, (int, float)):
            return None
        if math.isnan(value) or math.isinf(value) or value < 0:
            return None
        return float(value)


# ---------------------------------------------------------------------------
# Extraction request / result
# ---------------------------------------------------------------------------

class AnalyzeRequest(BaseModel):
    """Request body for POST /api/extract and POST /api/analyze."""
    model_config = ConfigDict(extra="forbid")

    text: str = Field(..., min_length=1, max_length=MAX_INPUT_CHARS)

    @field_validator("text")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("text must contain non-whitespace characters")
        return value


class ExtractionResult(BaseModel):
    """Normalized records plus the fallback rules that produced any estimated value."""
    model_config = ConfigDict(extra="forbid")

    income: IncomeRecord
    deductions: DeductionRecord
    applied_fallbacks: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Error response models — used by main.py exception handlers (cross-cutting)
# ---------------------------------------------------------------------------

class ErrorDetail(BaseModel):
    """Single field-level validation or business-rule error."""
    model_config = ConfigDict(extra="forbid")

    field: Optional[str] = None   # Dot-notation field path, e.g. "income.gross_annual_salary"
    issue: str


class ErrorBody(BaseModel):
    """Error envelope body."""
    model_config = ConfigDict(extra="forbid")

    code: str                                      # VALIDATION_ERROR, EXTRACTION_FAILED, etc.
    message: str
    details: List[ErrorDetail] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """
    Standard error response format for all TaxLens endpoints.

    Structure: {"error": {"code": "...", "message": "...", "details": [...]}}
    """
    model_config = ConfigDict(extra="forbid")

    error: ErrorBody


__all__ = [
    "DEFAULT_PROFESSIONAL_TAX",
    "MAX_INPUT_CHARS",
    "IncomeRecord",
    "DeductionRecord",
    "ExtractionPayload",
    "AnalyzeRequest",
    "ExtractionResult",
    "ErrorDetail",
    "ErrorBody",
    "ErrorResponse",
]
