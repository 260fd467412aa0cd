from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI
from starlette.requests import Request

from jobs_analytics.api.router import api_router
from jobs_analytics.core.config import get_settings
from jobs_analytics.core.telemetry import configure_logging, setup_telemetry, shutdown_telemetry
from jobs_analytics.services.analytics import get_analytics_cache
from jobs_analytics.services.local_store import get_local_store
from jobs_analytics.services.publisher import get_downstream_publisher
from jobs_analytics.services.source import get_source_reader
from jobs_analytics.services.sync import get_sync_service

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging()
    telemetry_runtime = setup_telemetry(get_settings(), component="api")
    await get_local_store().initialize()
    try:
        yield
    finally:
        shutdown_telemetry(telemetry_runtime)
        await get_sync_service().close()
        for factory in (
            get_sync_service,
            get_analytics_cache,
            get_downstream_publisher,
            get_source_reader,
            get_local_store,
        ):
            factory.cache_clear()


app = FastAPI(title=settings.app_name, lifespan=lifespan)


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


app.include_router(api_router)
