from __future__ import annotations

import asyncio
import logging
import random

from opentelemetry import trace

from jobs_analytics.core.config import get_settings
from jobs_analytics.core.telemetry import configure_logging, setup_telemetry, shutdown_telemetry
from jobs_analytics.services.sync import SyncService, get_sync_service

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


async def run_cycle(service: SyncService) -> bool:
    with tracer.start_as_current_span("worker.sync_cycle") as span:
        result = await service.full_bidirectional_sync()
        span.set_attribute("sync.success", result.success)
        if result.success:
            published = result.publish.published if result.publish is not None else 0
            logger.info(
                "scheduled sync finished processed_jobs=%s published=%s",
                result.sync.processed_jobs,
                published,
            )
        else:
            logger.warning("scheduled sync finished with errors sync_error=%s", result.sync.error)
        return result.success


async def run_worker(*, max_cycles: int | None = None) -> None:
    settings = get_settings()
    configure_logging()
    telemetry_runtime = setup_telemetry(settings, component="worker")
    service = get_sync_service()

    interval_seconds = max(1.0, settings.sync_interval_hours * 3600.0)
    backoff = 1.0
    cycles = 0

    try:
        while max_cycles is None or cycles < max_cycles:
            cycles += 1
            last_cycle = max_cycles is not None and cycles >= max_cycles
            try:
                await run_cycle(service)
                backoff = 1.0
                if not last_cycle:
                    await asyncio.sleep(interval_seconds)
            except Exception as exc:
                jitter = random.uniform(0.0, 0.5)
                sleep_for = min(backoff * (2.0 + jitter), settings.max_backoff_seconds)
                logger.exception("worker iteration failed: %s; retry in %.1fs", exc, sleep_for)
                if not last_cycle:
                    await asyncio.sleep(sleep_for)
                backoff = sleep_for
    finally:
        await service.close()
        shutdown_telemetry(telemetry_runtime)


if __name__ == "__main__":
    asyncio.run(run_worker())
