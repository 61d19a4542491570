"""
extractor.py — Mistral JSON-mode extraction of income and deduction fields.

Components:
  EXTRACTION_SYSTEM_PROMPT — field list and units the model must return
  parse_extraction_response() — JSON text → ExtractionPayload (raises ExtractionError)
  build_records()          — ExtractionPayload → ExtractionResult via named fallback rules
  extract_financial_data() — async Mistral call wrapped in the shared AI semaphore

Extraction failures are never masked: a missing client, an API/network error or
an unusable response all raise ExtractionError. A fabricated record is never returned.

The raw user text is never logged — only its length.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional

from pydantic import ValidationError

from taxlens.agents.extractor_agent.schemas import (
    DEFAULT_PROFESSIONAL_TAX,
    DeductionRecord,
    ExtractionPayload,
    ExtractionResult,
    IncomeRecord,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Named fallback rules
# ---------------------------------------------------------------------------

BASIC_SALARY_FALLBACK_RATIO = 0.40

FALLBACK_BASIC_FROM_GROSS = "basic_salary_from_gross"      # basic = 40% of gross
FALLBACK_PROFESSIONAL_TAX = "default_professional_tax"     # ₹2,400, never extracted
FALLBACK_ZERO_FOR_MISSING = "zero_for_missing"             # any other unrecovered field → 0


class ExtractionError(RuntimeError):
    """Raised when free text could not be turned into income/deduction records."""


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

EXTRACTION_SYSTEM_PROMPT = """You extract annual financial details of an Indian salaried taxpayer from free text.

Return ONLY a JSON object with these keys (numbers in INR, annual amounts):
- gross_salary: total annual gross salary / CTC
- basic_salary: annual basic salary component
- hra_received: annual House Rent Allowance received from the employer
- rent_paid: annual rent paid by the taxpayer (multiply monthly rent by 12)
- investments_80c: total Section 80C investments (PPF, ELSS, LIC, EPF)
- medical_premium_80d: health insurance premiums paid
- nps_80ccd: contributions to the National Pension System
- other_income: income from other sources (interest, dividends)

Rules:
1. Convert lakh / crore / "k" notation to plain numbers (15 Lakhs = 1500000).
2. If a value is not mentioned, use null. Never guess.
3. Do not add any keys or commentary."""


def build_extraction_prompt(text: str) -> str:
    return f'Extract the financial details from this text:\n\n"""{text}"""'


# ---------------------------------------------------------------------------
# Response parsing and fallback rules
# ---------------------------------------------------------------------------

def parse_extraction_response(content: Optional[str]) -> ExtractionPayload:
    """Decode and validate the model's JSON answer. Raises ExtractionError on any defect."""
    if not content or not content.strip():
        raise ExtractionError("AI service returned an empty extraction response")
    try:
        data: Any = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ExtractionError(f"AI service returned malformed JSON: {exc.msg}") from exc
    if not isinstance(data, dict):
        raise ExtractionError("AI service returned JSON that is not an object")
    try:
        return ExtractionPayload.model_validate(data)
    except ValidationError as exc:
        raise ExtractionError(f"AI response failed schema validation: {exc.error_count()} error(s)") from exc


def build_records(payload: ExtractionPayload) -> ExtractionResult:
    """
    Turn a validated payload into frozen records.

    Fallback rules are applied here only — the tax engine never estimates values.
    Each rule that changed a value is listed in applied_fallbacks.
    """
    applied: list[str] = []
    warnings: list[str] = []

    gross = payload.gross_salary or 0.0

    basic = payload.basic_salary or 0.0
    if basic == 0 and gross > 0:
        basic = round(gross * BASIC_SALARY_FALLBACK_RATIO, 2)
        applied.append(FALLBACK_BASIC_FROM_GROSS)

    optional_fields = (
        payload.gross_salary, payload.hra_received, payload.rent_paid,
        payload.investments_80c, payload.medical_premium_80d,
        payload.nps_80ccd, payload.other_income,
    )
    if any(v is None for v in optional_fields):
        applied.append(FALLBACK_ZERO_FOR_MISSING)

    applied.append(FALLBACK_PROFESSIONAL_TAX)

    income = IncomeRecord(
        gross_annual_salary=gross,
        basic_annual_salary=basic,
        annual_hra_received=payload.hra_received or 0.0,
        annual_rent_paid=payload.rent_paid or 0.0,
        other_annual_income=payload.other_income or 0.0,
    )
    deductions = DeductionRecord(
        section_80c_investments=payload.investments_80c or 0.0,
        section_80d_premium=payload.medical_premium_80d or 0.0,
        section_80ccd_contribution=payload.nps_80ccd or 0.0,
        professional_tax=DEFAULT_PROFESSIONAL_TAX,
    )

    # Soft check: the engine tolerates it, the user still sees it
    if income.basic_annual_salary + income.annual_hra_received > income.gross_annual_salary:
        warnings.append(
            f"Basic salary (₹{income.basic_annual_salary:,.0f}) plus HRA "
            f"(₹{income.annual_hra_received:,.0f}) exceeds gross salary "
            f"(₹{income.gross_annual_salary:,.0f}). Please verify the extracted figures."
        )
    if gross == 0:
        warnings.append("No gross salary was found in the text.")

    return ExtractionResult(
        income=income,
        deductions=deductions,
        applied_fallbacks=applied,
        warnings=warnings,
    )


# ---------------------------------------------------------------------------
# Main async extraction function
# ---------------------------------------------------------------------------

async def extract_financial_data(
    client: Any,
    text: str,
    semaphore: asyncio.Semaphore,
    *,
    model: str,
    temperature: float = 0.0,
    max_tokens: int = 1024,
) -> ExtractionResult:
    """
    Extract IncomeRecord + DeductionRecord from free text via Mistral JSON mode.

    Raises:
        ExtractionError: client not configured, API/network failure, or an
            unusable response. Never returns a fabricated record.
    """
    if client is None:
        raise ExtractionError("AI service is not configured (missing API key)")

    logger.info("Calling Mistral extraction model=%s text_len=%d", model, len(text))

    try:
        async with semaphore:
            response = await client.chat.complete_async(
                model=model,
                messages=[
                    {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
                    {"role": "user", "content": build_extraction_prompt(text)},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
                response_format={"type": "json_object"},
            )
        content = response.choices[0].message.content
    except Exception as exc:
        logger.error("Mistral extraction call failed: %s", exc)
        raise ExtractionError("Failed to extract data. Please try manual entry.") from exc

    payload = parse_extraction_response(content if isinstance(content, str) else None)
    result = build_records(payload)

    logger.info(
        "Extraction complete fallbacks=%s warnings=%d",
        ",".join(result.applied_fallbacks) or "none",
        len(result.warnings),
    )
    return result
