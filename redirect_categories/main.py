from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI, status
from fastapi.responses import JSONResponse
from starlette.requests import Request

from redirect_categories.api.router import api_router
from redirect_categories.core.config import get_settings
from redirect_categories.core.telemetry import (
    TelemetryRuntime,
    configure_logging,
    setup_telemetry,
    shutdown_telemetry,
)
from redirect_categories.services.corpus import CorpusUnavailableError, get_corpus

settings = get_settings()
_telemetry_runtime: TelemetryRuntime | None = None
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    global _telemetry_runtime
    try:
        yield
    finally:
        if _telemetry_runtime is not None:
            shutdown_telemetry(_telemetry_runtime)
            _telemetry_runtime = None
        get_corpus.cache_clear()


app = FastAPI(title=settings.app_name, lifespan=lifespan)
configure_logging()
_telemetry_runtime = setup_telemetry(settings, app=app)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    started_at = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started_at) * 1000.0
    logger.info(
        "http request method=%s path=%s status=%s duration_ms=%.2f",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response


@app.exception_handler(CorpusUnavailableError)
async def corpus_unavailable_handler(_: Request, exc: CorpusUnavailableError) -> JSONResponse:
    logger.warning("corpus unavailable: %s", exc)
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"detail": str(exc)})


app.include_router(api_router)
