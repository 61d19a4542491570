"""
main.py — TaxLens FastAPI application entry point.

Start with: uvicorn taxlens.main:app --reload --port 8000
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from taxlens.agents.extractor_agent.schemas import ErrorBody, ErrorDetail, ErrorResponse
from taxlens.config import settings

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan: AI client, semaphore, compiled graph
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
      1. Mistral client singleton (skipped when no API key is configured)
      2. asyncio.Semaphore bounding concurrent AI calls
      3. LangGraph analysis pipeline
    """
    from mistralai import Mistral

    from taxlens.graph.graph import build_graph, set_resources

    # One client per process; without it extraction fails and advice falls back
    if settings.mistral_api_key:
        app.state.mistral = Mistral(api_key=settings.mistral_api_key)
        logger.info("Mistral client initialized model=%s", settings.mistral_model)
    else:
        app.state.mistral = None
        logger.warning(
            "MISTRAL_API_KEY not set — /api/analyze and /api/extract will return 502, "
            "/api/advice will return default advice"
        )

    # Bound to the running loop, so created here rather than at import
    app.state.ai_semaphore = asyncio.Semaphore(settings.ai_concurrency)
    logger.info("AI semaphore initialized (concurrency=%d)", settings.ai_concurrency)

    # Nodes read the client and semaphore through the graph registry
    set_resources(mistral_client=app.state.mistral, ai_semaphore=app.state.ai_semaphore)
    app.state.analysis_graph = build_graph()
    logger.info("TaxLens LangGraph pipeline compiled and ready")

    logger.info("TaxLens v%s starting up (tax_year=%s)", settings.app_version, settings.tax_year)
    yield

    logger.info("TaxLens shutting down")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------
app = FastAPI(
    title="TaxLens API",
    version=settings.app_version,
    description=(
        "Paste free-form salary details, get Old vs New regime income tax computed "
        "deterministically, plus AI-generated savings suggestions."
    ),
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

# ---------------------------------------------------------------------------
# CORS (frontend origins from settings)
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------
def _make_error_response(
    code: str,
    message: str,
    details: Optional[list[ErrorDetail]] = None,
    status_code: int = 500,
) -> JSONResponse:
    """Serialize an ErrorResponse; every non-2xx answer goes through here."""
    body = ErrorResponse(error=ErrorBody(code=code, message=message, details=details or []))
    return JSONResponse(status_code=status_code, content=body.model_dump())


_STATUS_CODES = {
    400: "BAD_REQUEST",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    413: "PAYLOAD_TOO_LARGE",
    422: "VALIDATION_ERROR",
    429: "RATE_LIMITED",
    502: "EXTRACTION_FAILED",
    503: "SERVICE_UNAVAILABLE",
}


# ---------------------------------------------------------------------------
# Global exception handlers
# ---------------------------------------------------------------------------
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Body validation failures (negative amounts, unknown fields, blank text).
    Every violation is reported, each with its dotted path inside the body,
    e.g. "income.gross_annual_salary".
    """
    details = [
        ErrorDetail(
            field=".".join(str(part) for part in err["loc"] if part != "body") or None,
            issue=err["msg"],
        )
        for err in exc.errors()
    ]
    logger.info("Rejected %s %s: %d invalid field(s)", request.method, request.url.path, len(details))
    return _make_error_response(
        code="VALIDATION_ERROR",
        message="Request validation failed",
        details=details,
        status_code=422,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return _make_error_response(
        code=_STATUS_CODES.get(exc.status_code, f"HTTP_{exc.status_code}"),
        message=str(exc.detail),
        status_code=exc.status_code,
    )


@app.exception_handler(ValueError)
async def value_error_handler(
    request: Request, exc: ValueError
) -> JSONResponse:
    """Engine-level rejections, e.g. a tax year with no registered slab tables."""
    return _make_error_response(
        code="VALIDATION_ERROR",
        message=str(exc),
        status_code=422,
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """
    Last resort. The traceback is logged; the exception text reaches the client
    only when settings.debug is on.
    """
    logger.error(
        "Unhandled exception on %s %s",
        request.method,
        request.url.path,
        exc_info=True,
    )
    details = [ErrorDetail(issue=f"{type(exc).__name__}: {exc}")] if settings.debug else []
    return _make_error_response(
        code="INTERNAL_ERROR",
        message="Internal error while processing the tax request",
        details=details,
        status_code=500,
    )


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------
@app.get("/api/health", tags=["System"])
async def health_check() -> dict:
    """Returns service health status."""
    return {
        "status": "ok",
        "version": settings.app_version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ---------------------------------------------------------------------------
# Agent routers
# ---------------------------------------------------------------------------
from taxlens.agents.advisor_agent.routes import router as advisor_agent_router
from taxlens.agents.evaluator_agent.routes import router as evaluator_agent_router
from taxlens.agents.extractor_agent.routes import router as extractor_agent_router
from taxlens.agents.extractor_agent.schemas import AnalyzeRequest

app.include_router(extractor_agent_router)
app.include_router(evaluator_agent_router)
app.include_router(advisor_agent_router)


# ---------------------------------------------------------------------------
# POST /api/analyze — full LangGraph analysis pipeline
# ---------------------------------------------------------------------------
@app.post("/api/analyze", tags=["analysis_pipeline"])
async def analyze(request: Request, body: AnalyzeRequest) -> JSONResponse:
    """
    Run the full three-agent pipeline:
      ExtractorAgent → EvaluatorAgent → AdvisorAgent

    Returns:
      200: records, regime comparison and advice (possibly the default advice)
      502: EXTRACTION_FAILED — no tax is computed
      503: pipeline not initialised
    """
    graph = getattr(request.app.state, "analysis_graph", None)
    if graph is None:
        return _make_error_response(
            code="SERVICE_UNAVAILABLE",
            message="Analysis pipeline not initialized. Please restart the server.",
            status_code=503,
        )

    initial_state = {
        "input_text": body.text,
        "errors": [],
        "should_stop": False,
        "current_agent": "start",
    }

    result_state = await graph.ainvoke(initial_state)

    if result_state.get("should_stop"):
        return _make_error_response(
            code="EXTRACTION_FAILED",
            message=result_state.get("extraction_error") or "Failed to extract data",
            status_code=502,
        )

    return JSONResponse(
        status_code=200,
        content={
            "income": result_state["income"].model_dump(mode="json"),
            "deductions": result_state["deductions"].model_dump(mode="json"),
            "applied_fallbacks": result_state.get("applied_fallbacks", []),
            "warnings": result_state.get("warnings", []),
            "comparison": result_state["comparison"],
            "advice": result_state["advice"],
        },
    )
