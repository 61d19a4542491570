"""
advisor.py — Mistral-generated tax saving suggestions.

The advisor is informational: it reads the records and both regime totals and
returns an AiAdvice. It must never break an analysis — every failure (missing
client, API error, malformed JSON) is logged and replaced by default_advice().
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from pydantic import ValidationError

from taxlens.agents.advisor_agent.schemas import AiAdvice, Suggestion
from taxlens.agents.evaluator_agent.regime_tables import CAP_80C, CAP_80CCD, CAP_80D
from taxlens.agents.extractor_agent.schemas import DeductionRecord, IncomeRecord

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY = (
    "We couldn't generate personalised advice right now, "
    "but using your full Section 80C limit is always a good start!"
)
MAX_SUGGESTIONS = 3

ADVISOR_SYSTEM_PROMPT = """You are a friendly Indian income tax advisor for salaried individuals.

Return ONLY a JSON object with these keys:
- summary: a short, human-readable summary of the taxpayer's situation
- savings_potential: estimated tax (INR) the taxpayer could still save
- suggestions: a list of objects, each with
    - category: e.g. "80C", "80D", "NPS", "Regime"
    - action: one specific action, e.g. "Invest ₹50,000 more in ELSS"
    - estimated_saving: tax (INR) saved by taking this action

Rules:
1. The tax numbers are provided to you — do NOT recalculate or modify them.
2. Focus on unused limits: 80C, NPS 80CCD(1B), health insurance 80D.
3. Keep the tone encouraging and simple."""


def default_advice() -> AiAdvice:
    return AiAdvice(summary=DEFAULT_SUMMARY, savings_potential=0, suggestions=[])


def build_advice_prompt(
    income: IncomeRecord,
    deductions: DeductionRecord,
    new_total_tax: float,
    old_total_tax: float,
) -> str:
    """Numeric-only profile summary for the model — no free text from the user."""
    return (
        "Analyze this Indian taxpayer's profile for FY 2024-25.\n\n"
        f"Gross salary: ₹{income.gross_annual_salary:,.0f}\n"
        f"Other income: ₹{income.other_annual_income:,.0f}\n"
        f"80C investments: ₹{deductions.section_80c_investments:,.0f} (limit ₹{CAP_80C:,.0f})\n"
        f"80D medical insurance: ₹{deductions.section_80d_premium:,.0f} (limit ₹{CAP_80D:,.0f})\n"
        f"NPS 80CCD(1B): ₹{deductions.section_80ccd_contribution:,.0f} (limit ₹{CAP_80CCD:,.0f})\n"
        f"Rent paid: ₹{income.annual_rent_paid:,.0f}\n\n"
        f"Calculated tax (New Regime): ₹{new_total_tax:,.2f}\n"
        f"Calculated tax (Old Regime): ₹{old_total_tax:,.2f}\n\n"
        f"Provide {MAX_SUGGESTIONS} specific, actionable suggestions to save tax."
    )


def parse_advice_response(content: Any) -> AiAdvice:
    """
    Validate the advice JSON. Malformed suggestion items are dropped individually;
    a blank summary is replaced with DEFAULT_SUMMARY.
    Raises ValueError if the response is not a usable JSON object.
    """
    if not isinstance(content, str) or not content.strip():
        raise ValueError("empty advice response")
    data = json.loads(content)
    if not isinstance(data, dict):
        raise ValueError("advice response is not a JSON object")

    raw_suggestions = data.pop("suggestions", None) or []
    if not isinstance(raw_suggestions, list):
        raw_suggestions = []

    advice = AiAdvice.model_validate({
        "summary": data.get("summary") or "",
        "savings_potential": data.get("savings_potential") or 0,
    })

    suggestions: list[Suggestion] = []
    for item in raw_suggestions:
        try:
            suggestions.append(Suggestion.model_validate(item))
        except ValidationError:
            logger.debug("Dropping malformed suggestion item")

    summary = advice.summary.strip() or DEFAULT_SUMMARY
    return advice.model_copy(update={
        "summary": summary,
        "suggestions": suggestions[:MAX_SUGGESTIONS],
    })


async def generate_advice(
    client: Any,
    income: IncomeRecord,
    deductions: DeductionRecord,
    new_total_tax: float,
    old_total_tax: float,
    semaphore: asyncio.Semaphore,
    *,
    model: str,
    temperature: float = 0.7,
    max_tokens: int = 1024,
) -> AiAdvice:
    """Ask Mistral for saving suggestions. Never raises."""
    if client is None:
        logger.warning("Advisor skipped — AI client not configured, using default advice")
        return default_advice()

    prompt = build_advice_prompt(income, deductions, new_total_tax, old_total_tax)
    logger.info("Calling Mistral advice model=%s", model)

    try:
        async with semaphore:
            response = await client.chat.complete_async(
                model=model,
                messages=[
                    {"role": "system", "content": ADVISOR_SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
                response_format={"type": "json_object"},
            )
        advice = parse_advice_response(response.choices[0].message.content)
    except Exception as exc:
        logger.warning("Advice generation failed, using default advice: %s", exc)
        return default_advice()

    logger.info(
        "Advice generated suggestions=%d savings_potential=%.0f",
        len(advice.suggestions), advice.savings_potential,
    )
    return advice
