"""
End-to-end API tests for the TaxLens HTTP surface.

Tests the full stack: HTTP request → schema validation → agent → HTTP response.
The ASGI transport does not run the lifespan, so the client fixture wires
app.state and the graph registry itself. Every Mistral call is mocked.

Run: pytest taxlens/tests/test_api.py -v
"""
from __future__ import annotations

import asyncio

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from taxlens.agents.advisor_agent.advisor import DEFAULT_SUMMARY
from taxlens.graph.graph import build_graph, set_resources
from taxlens.main import app
from taxlens.tests.scenarios import (
    SCENARIO_ADVICE,
    SCENARIO_EXTRACTION,
    SCENARIO_TEXT,
    make_mock_mistral,
)

SCENARIO_RECORDS = {
    "income": {
        "gross_annual_salary": 1_500_000,
        "basic_annual_salary": 600_000,
        "annual_hra_received": 300_000,
        "annual_rent_paid": 180_000,
    },
    "deductions": {
        "section_80c_investments": 120_000,
        "section_80d_premium": 20_000,
    },
}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def make_client():
    """
    Factory: make_client(mock_mistral) → AsyncClient bound to the app with the
    given (possibly None) Mistral client registered everywhere it is read.
    """
    clients: list[AsyncClient] = []

    async def _make(
        mock_mistral=None,
        with_graph: bool = True,
        raise_app_exceptions: bool = True,
    ) -> AsyncClient:
        semaphore = asyncio.Semaphore(2)
        app.state.mistral = mock_mistral
        app.state.ai_semaphore = semaphore
        set_resources(mistral_client=mock_mistral, ai_semaphore=semaphore)
        app.state.analysis_graph = build_graph() if with_graph else None
        transport = ASGITransport(app=app, raise_app_exceptions=raise_app_exceptions)
        ac = AsyncClient(transport=transport, base_url="http://test")
        clients.append(ac)
        return ac

    yield _make

    for ac in clients:
        await ac.aclose()
    app.state.mistral = None
    app.state.analysis_graph = None
    set_resources(mistral_client=None, ai_semaphore=None)


# ---------------------------------------------------------------------------
# Test Group 1: system endpoints
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_health(make_client) -> None:
    client = await make_client()
    response = await client.get("/api/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert "version" in body


@pytest.mark.asyncio
async def test_tax_years(make_client) -> None:
    client = await make_client()
    response = await client.get("/api/tax-years")
    assert response.status_code == 200
    body = response.json()
    assert body["tax_years"] == ["FY2024-25"]
    assert body["default"] == "FY2024-25"
    assert body["default"] in body["tax_years"]


# ---------------------------------------------------------------------------
# Test Group 2: POST /api/calculate — deterministic, no AI
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_calculate_scenario(make_client) -> None:
    client = await make_client()
    response = await client.post("/api/calculate", json=SCENARIO_RECORDS)
    assert response.status_code == 200, response.text

    result = response.json()
    assert result["recommended_regime"] == "NEW"
    assert result["new_regime"]["total_tax"] == pytest.approx(130_000)
    assert result["old_regime"]["total_tax"] == pytest.approx(175_531.2)
    assert result["savings_amount"] == pytest.approx(45_531.2)
    assert result["tax_year"] == "FY2024-25"


@pytest.mark.asyncio
async def test_calculate_non_metro_raises_old_tax(make_client) -> None:
    client = await make_client()
    # Rent high enough that the 50% / 40% of basic limit binds
    records = {
        **SCENARIO_RECORDS,
        "income": {**SCENARIO_RECORDS["income"], "annual_rent_paid": 360_000},
    }
    metro = (await client.post("/api/calculate", json=records)).json()
    non_metro = (await client.post(
        "/api/calculate", json={**records, "is_metro": False},
    )).json()
    assert non_metro["old_regime"]["total_tax"] > metro["old_regime"]["total_tax"]
    assert non_metro["new_regime"] == metro["new_regime"]


@pytest.mark.asyncio
async def test_calculate_unknown_tax_year_returns_422(make_client) -> None:
    client = await make_client()
    response = await client.post(
        "/api/calculate", json={**SCENARIO_RECORDS, "tax_year": "FY1999-00"},
    )
    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert "FY1999-00" in error["message"]


@pytest.mark.asyncio
async def test_calculate_negative_amount_returns_422(make_client) -> None:
    client = await make_client()
    response = await client.post(
        "/api/calculate", json={"income": {"gross_annual_salary": -100}},
    )
    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    fields = [d["field"] for d in error["details"]]
    assert "income.gross_annual_salary" in fields


@pytest.mark.asyncio
async def test_calculate_unknown_field_returns_422(make_client) -> None:
    client = await make_client()
    response = await client.post(
        "/api/calculate",
        json={"income": {"gross_annual_salary": 900_000, "bonus": 10}},
    )
    assert response.status_code == 422


# ---------------------------------------------------------------------------
# Test Group 3: POST /api/extract
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_extract_success(make_client) -> None:
    client = await make_client(make_mock_mistral(SCENARIO_EXTRACTION))
    response = await client.post("/api/extract", json={"text": SCENARIO_TEXT})
    assert response.status_code == 200, response.text

    body = response.json()
    assert body["income"]["gross_annual_salary"] == 1_500_000
    assert body["deductions"]["professional_tax"] == 2_400
    assert body["applied_fallbacks"] == ["default_professional_tax"]


@pytest.mark.asyncio
async def test_extract_without_ai_client_returns_502(make_client) -> None:
    client = await make_client(None)
    response = await client.post("/api/extract", json={"text": SCENARIO_TEXT})
    assert response.status_code == 502
    assert response.json()["error"]["code"] == "EXTRACTION_FAILED"


@pytest.mark.asyncio
async def test_extract_blank_text_returns_422(make_client) -> None:
    client = await make_client(make_mock_mistral(SCENARIO_EXTRACTION))
    response = await client.post("/api/extract", json={"text": "   "})
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


# ---------------------------------------------------------------------------
# Test Group 4: POST /api/advice — always 200
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_advice_success(make_client) -> None:
    client = await make_client(make_mock_mistral(SCENARIO_ADVICE))
    response = await client.post("/api/advice", json={
        **SCENARIO_RECORDS, "old_total_tax": 175_531.2, "new_total_tax": 130_000,
    })
    assert response.status_code == 200
    assert response.json()["summary"] == SCENARIO_ADVICE["summary"]


@pytest.mark.asyncio
async def test_advice_failure_returns_default(make_client) -> None:
    client = await make_client(make_mock_mistral(RuntimeError("rate limited")))
    response = await client.post("/api/advice", json={
        **SCENARIO_RECORDS, "old_total_tax": 175_531.2, "new_total_tax": 130_000,
    })
    assert response.status_code == 200
    body = response.json()
    assert body["summary"] == DEFAULT_SUMMARY
    assert body["suggestions"] == []


# ---------------------------------------------------------------------------
# Test Group 5: POST /api/analyze — full pipeline
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_analyze_success(make_client) -> None:
    client = await make_client(make_mock_mistral(SCENARIO_EXTRACTION, SCENARIO_ADVICE))
    response = await client.post("/api/analyze", json={"text": SCENARIO_TEXT})
    assert response.status_code == 200, response.text

    body = response.json()
    assert body["comparison"]["recommended_regime"] == "NEW"
    assert body["comparison"]["old_regime"]["total_tax"] == pytest.approx(175_531.2)
    assert body["deductions"]["hra_exemption"] == pytest.approx(120_000)
    assert body["applied_fallbacks"] == ["default_professional_tax"]
    assert body["advice"]["summary"] == SCENARIO_ADVICE["summary"]


@pytest.mark.asyncio
async def test_analyze_extraction_failure_returns_502(make_client) -> None:
    client = await make_client(make_mock_mistral("no json here"))
    response = await client.post("/api/analyze", json={"text": SCENARIO_TEXT})
    assert response.status_code == 502
    body = response.json()
    assert body["error"]["code"] == "EXTRACTION_FAILED"
    assert "comparison" not in body


@pytest.mark.asyncio
async def test_analyze_advice_failure_still_returns_200(make_client) -> None:
    client = await make_client(make_mock_mistral(SCENARIO_EXTRACTION, TimeoutError()))
    response = await client.post("/api/analyze", json={"text": SCENARIO_TEXT})
    assert response.status_code == 200
    body = response.json()
    assert body["comparison"]["new_regime"]["total_tax"] == pytest.approx(130_000)
    assert body["advice"]["summary"] == DEFAULT_SUMMARY


@pytest.mark.asyncio
async def test_analyze_without_graph_returns_503(make_client) -> None:
    client = await make_client(make_mock_mistral(SCENARIO_EXTRACTION), with_graph=False)
    response = await client.post("/api/analyze", json={"text": SCENARIO_TEXT})
    assert response.status_code == 503
    assert response.json()["error"]["code"] == "SERVICE_UNAVAILABLE"


@pytest.mark.asyncio
async def test_analyze_misconfigured_tax_year_is_server_error(make_client, monkeypatch) -> None:
    """A tax year without tables is a server fault, never a client validation error."""
    from taxlens.config import settings

    # Startup validation is bypassed by mutating the singleton directly
    monkeypatch.setattr(settings, "tax_year", "FY2099-00")
    client = await make_client(
        make_mock_mistral(SCENARIO_EXTRACTION, SCENARIO_ADVICE),
        raise_app_exceptions=False,
    )
    response = await client.post("/api/analyze", json={"text": SCENARIO_TEXT})
    assert response.status_code == 500
    assert response.json()["error"]["code"] == "INTERNAL_ERROR"
