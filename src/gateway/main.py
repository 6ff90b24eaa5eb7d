import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from gateway.metrics import MetricsMiddleware, RequestMetrics
from gateway.schemas import TranslateRequest
from gateway.settings import Settings
from router import (
    LedgerExhaustedError,
    ProviderRegistry,
    RoutingPolicy,
    TranslationFailedError,
    TranslationOrchestrator,
    ValidationError,
)
from state.ledger import UsageLedger

logger = logging.getLogger(__name__)

app = FastAPI(title="Translation Router", version="0.1.0")
app.state.metrics = RequestMetrics()
app.add_middleware(MetricsMiddleware)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()) if isinstance(p, str) and p != "body")
        problems.append(f"{field}: {err.get('msg')}" if field else str(err.get("msg")))
    message = "Invalid request body: " + "; ".join(problems)
    logger.warning("Rejected request to %s: %s", request.url.path, message)
    return JSONResponse(status_code=400, content={"error": message})


@app.on_event("startup")
async def startup_event() -> None:
    settings = Settings.from_env()

    # Build the object graph once and share it through app.state
    registry = ProviderRegistry(timeout=settings.translate_timeout or 30.0)
    ledger = UsageLedger(settings.ledger_path, settings.limits)
    policy = RoutingPolicy(settings.primary_service, settings.fallback_service)
    orchestrator = TranslationOrchestrator(
        registry,
        ledger,
        policy,
        usage_tracking=settings.usage_tracking,
        timeout=settings.translate_timeout,
    )

    app.state.registry = registry
    app.state.ledger = ledger
    app.state.orchestrator = orchestrator

    logger.info(
        "Gateway initialized: primary=%s fallback=%s usage_tracking=%s",
        policy.primary.value,
        policy.fallback.value,
        settings.usage_tracking,
    )


@app.on_event("shutdown")
async def shutdown_event() -> None:
    registry = getattr(app.state, "registry", None)
    if registry is not None:
        await registry.aclose()


@app.get("/health", tags=["health"])  # minimal liveness endpoint
async def health():
    return {"status": "ok"}


@app.get("/api/health", tags=["health"])
async def service_health():
    orchestrator: TranslationOrchestrator = app.state.orchestrator
    try:
        return JSONResponse(await orchestrator.get_health_status())
    except Exception as e:
        logger.exception("Health check failed: %s", e)
        return JSONResponse(status_code=503, content={"error": str(e)})


@app.get("/api/usage")
async def usage_statistics():
    orchestrator: TranslationOrchestrator = app.state.orchestrator
    return JSONResponse(await orchestrator.get_usage_statistics())


@app.get("/api/languages")
async def supported_languages():
    orchestrator: TranslationOrchestrator = app.state.orchestrator
    return JSONResponse(await orchestrator.get_supported_languages())


@app.get("/api/metrics")
async def request_metrics():
    metrics: RequestMetrics = app.state.metrics
    return JSONResponse(metrics.snapshot())


@app.post("/api/translate")
async def translate(req: TranslateRequest):
    orchestrator: TranslationOrchestrator = app.state.orchestrator
    try:
        result = await orchestrator.translate(req.text, req.target_language, req.source_language)
    except ValidationError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    except LedgerExhaustedError as e:
        logger.warning("Usage limits exhausted: %s", e)
        return JSONResponse(status_code=503, content={"error": str(e)})
    except TranslationFailedError as e:
        logger.error("Translation failed on both services: %s", e)
        return JSONResponse(status_code=502, content={"error": str(e)})
    except Exception as e:
        logger.exception("Translation failed: %s", e)
        return JSONResponse(status_code=500, content={"error": str(e)})
    app.state.metrics.observe_translation(req.source_language, req.target_language, len(req.text))
    return JSONResponse(result.model_dump(mode="json", by_alias=True, exclude_none=True))
