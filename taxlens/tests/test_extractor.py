"""
test_extractor.py — ExtractorAgent boundary tests.

Covers JSON parsing and coercion, the named fallback rules, soft warnings and
every failure mode that must surface as ExtractionError.
"""
from __future__ import annotations

import asyncio
import json

import pytest

from taxlens.agents.extractor_agent.extractor import (
    FALLBACK_BASIC_FROM_GROSS,
    FALLBACK_PROFESSIONAL_TAX,
    FALLBACK_ZERO_FOR_MISSING,
    ExtractionError,
    build_records,
    extract_financial_data,
    parse_extraction_response,
)
from taxlens.agents.extractor_agent.schemas import AnalyzeRequest, ExtractionPayload
from taxlens.tests.scenarios import SCENARIO_EXTRACTION, SCENARIO_TEXT, make_mock_mistral


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------

class TestParseExtractionResponse:

    def test_valid_json_object(self):
        payload = parse_extraction_response(json.dumps(SCENARIO_EXTRACTION))
        assert payload.gross_salary == 1_500_000
        assert payload.rent_paid == 180_000

    def test_numeric_strings_are_coerced(self):
        payload = parse_extraction_response(json.dumps({
            "gross_salary": "15,00,000",
            "basic_salary": "₹6,00,000",
        }))
        assert payload.gross_salary == 1_500_000
        assert payload.basic_salary == 600_000

    def test_unusable_values_become_missing(self):
        payload = parse_extraction_response(json.dumps({
            "gross_salary": -5,
            "basic_salary": "about six lakh",
            "hra_received": True,
            "rent_paid": None,
            "investments_80c": [150000],
        }))
        assert payload.gross_salary is None
        assert payload.basic_salary is None
        assert payload.hra_received is None
        assert payload.rent_paid is None
        assert payload.investments_80c is None

    def test_unknown_keys_ignored(self):
        payload = parse_extraction_response(json.dumps({"gross_salary": 100, "pan": "ABCDE1234F"}))
        assert payload.gross_salary == 100

    @pytest.mark.parametrize("content", [None, "", "   ", "not json", "{\"gross_salary\": ", "[1, 2]", "42"])
    def test_malformed_responses_raise(self, content):
        with pytest.raises(ExtractionError):
            parse_extraction_response(content)


# ---------------------------------------------------------------------------
# Fallback rules
# ---------------------------------------------------------------------------

class TestBuildRecords:

    def test_complete_payload_only_applies_professional_tax_default(self):
        result = build_records(ExtractionPayload.model_validate(SCENARIO_EXTRACTION))
        assert result.applied_fallbacks == [FALLBACK_PROFESSIONAL_TAX]
        assert result.income.basic_annual_salary == 600_000
        assert result.deductions.professional_tax == 2_400
        assert result.deductions.section_80c_investments == 120_000
        assert result.deductions.hra_exemption == 0
        assert result.warnings == []

    def test_missing_basic_estimated_as_forty_percent_of_gross(self):
        result = build_records(ExtractionPayload(gross_salary=1_500_000))
        assert result.income.basic_annual_salary == pytest.approx(600_000)
        assert FALLBACK_BASIC_FROM_GROSS in result.applied_fallbacks
        assert FALLBACK_ZERO_FOR_MISSING in result.applied_fallbacks

    def test_zero_basic_also_triggers_fallback(self):
        result = build_records(ExtractionPayload(gross_salary=1_000_000, basic_salary=0))
        assert result.income.basic_annual_salary == pytest.approx(400_000)
        assert FALLBACK_BASIC_FROM_GROSS in result.applied_fallbacks

    def test_no_gross_no_basic_estimate(self):
        result = build_records(ExtractionPayload())
        assert result.income.gross_annual_salary == 0
        assert result.income.basic_annual_salary == 0
        assert FALLBACK_BASIC_FROM_GROSS not in result.applied_fallbacks
        assert any("No gross salary" in w for w in result.warnings)

    def test_missing_fields_default_to_zero(self):
        result = build_records(ExtractionPayload(gross_salary=800_000, basic_salary=320_000))
        assert result.income.annual_hra_received == 0
        assert result.income.annual_rent_paid == 0
        assert result.income.other_annual_income == 0
        assert result.deductions.section_80d_premium == 0
        assert result.deductions.section_80ccd_contribution == 0

    def test_inconsistent_salary_structure_warns_but_succeeds(self):
        result = build_records(ExtractionPayload(
            gross_salary=500_000, basic_salary=400_000, hra_received=200_000,
        ))
        assert result.income.basic_annual_salary == 400_000
        assert any("exceeds gross salary" in w for w in result.warnings)


# ---------------------------------------------------------------------------
# Async extraction with a mocked Mistral client
# ---------------------------------------------------------------------------

class TestExtractFinancialData:

    def test_success_uses_json_mode(self, semaphore):
        client = make_mock_mistral(SCENARIO_EXTRACTION)
        result = asyncio.run(extract_financial_data(
            client, SCENARIO_TEXT, semaphore, model="mistral-small-latest",
        ))
        assert result.income.gross_annual_salary == 1_500_000
        kwargs = client.chat.complete_async.call_args.kwargs
        assert kwargs["model"] == "mistral-small-latest"
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["temperature"] == 0.0
        assert SCENARIO_TEXT in kwargs["messages"][1]["content"]

    def test_missing_client_raises(self, semaphore):
        with pytest.raises(ExtractionError, match="not configured"):
            asyncio.run(extract_financial_data(
                None, SCENARIO_TEXT, semaphore, model="m",
            ))

    def test_network_failure_raises_extraction_error(self, semaphore):
        client = make_mock_mistral(ConnectionError("connection reset"))
        with pytest.raises(ExtractionError) as exc_info:
            asyncio.run(extract_financial_data(
                client, SCENARIO_TEXT, semaphore, model="m",
            ))
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_malformed_ai_response_raises(self, semaphore):
        client = make_mock_mistral("Sure! Here are your numbers: gross 15L")
        with pytest.raises(ExtractionError, match="malformed JSON"):
            asyncio.run(extract_financial_data(
                client, SCENARIO_TEXT, semaphore, model="m",
            ))

    def test_non_string_content_raises(self, semaphore):
        client = make_mock_mistral(None)
        with pytest.raises(ExtractionError, match="empty"):
            asyncio.run(extract_financial_data(
                client, SCENARIO_TEXT, semaphore, model="m",
            ))


# ---------------------------------------------------------------------------
# Request validation
# ---------------------------------------------------------------------------

def test_analyze_request_rejects_blank_text():
    from pydantic import ValidationError

    with pytest.raises(ValidationError):
        AnalyzeRequest(text="   ")
    with pytest.raises(ValidationError):
        AnalyzeRequest(text="")
