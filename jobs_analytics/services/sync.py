from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

from opentelemetry import trace

from jobs_analytics.core.config import get_settings
from jobs_analytics.services.analytics import AnalyticsCache, get_analytics_cache
from jobs_analytics.services.classification import ClassificationResult, classify
from jobs_analytics.services.enrichment import EnrichedRecord, RawRecord, enrich
from jobs_analytics.services.errors import RepositoryConflictError
from jobs_analytics.services.local_store import LocalStore, get_local_store
from jobs_analytics.services.publisher import DownstreamPublisher, PublishResult, get_downstream_publisher
from jobs_analytics.services.source import SourceReader, get_source_reader
from jobs_analytics.services.taxonomy import DEFAULT_TAXONOMY, Taxonomy

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass(slots=True)
class SyncResult:
    success: bool
    total_jobs: int = 0
    processed_jobs: int = 0
    duration_ms: int = 0
    error: str | None = None


@dataclass(slots=True)
class BidirectionalSyncResult:
    sync: SyncResult
    publish: PublishResult | None = None

    @property
    def success(self) -> bool:
        return self.sync.success and self.publish is not None and self.publish.success


def process_record(raw: RawRecord, *, now: datetime, taxonomy: Taxonomy = DEFAULT_TAXONOMY) -> EnrichedRecord:
    classification = classify(raw.title, raw.description, raw.job_labels, raw.up_grade, taxonomy=taxonomy)
    return enrich(raw, classification, now=now)


class SyncService:
    """Runs source -> local -> downstream synchronization.

    One writer is assumed; the ``syncing`` status in the local store is
    advisory and is not a lock.
    """

    def __init__(
        self,
        *,
        store: LocalStore,
        source: SourceReader,
        publisher: DownstreamPublisher,
        analytics: AnalyticsCache,
        batch_size: int = 500,
        taxonomy: Taxonomy = DEFAULT_TAXONOMY,
    ) -> None:
        self.store = store
        self.source = source
        self.publisher = publisher
        self.analytics = analytics
        self.batch_size = max(1, batch_size)
        self.taxonomy = taxonomy

    async def full_sync(self, *, now: datetime | None = None) -> SyncResult:
        started_at = time.perf_counter()
        with tracer.start_as_current_span("sync.full_sync") as span:
            try:
                await self.store.initialize()
                await self.store.mark_sync_started()

                with tracer.start_as_current_span("sync.extract"):
                    raw_records = await self.source.fetch_latest_postings()
                current = now or datetime.now(timezone.utc)
                with tracer.start_as_current_span("sync.transform"):
                    records = [process_record(raw, now=current, taxonomy=self.taxonomy) for raw in raw_records]
                with tracer.start_as_current_span("sync.load"):
                    written = await self.store.replace_all(records, batch_size=self.batch_size)
                with tracer.start_as_current_span("sync.precompute_analytics"):
                    await self.analytics.precompute(now=current)

                duration_ms = _elapsed_ms(started_at)
                await self.store.mark_sync_completed(total_jobs=written, duration_ms=duration_ms, now=current)
                span.set_attribute("sync.total_jobs", len(raw_records))
                span.set_attribute("sync.processed_jobs", written)
                logger.info(
                    "full sync completed total_jobs=%s processed_jobs=%s duration_ms=%s",
                    len(raw_records),
                    written,
                    duration_ms,
                )
                return SyncResult(
                    success=True,
                    total_jobs=len(raw_records),
                    processed_jobs=written,
                    duration_ms=duration_ms,
                )
            except Exception as exc:
                duration_ms = _elapsed_ms(started_at)
                message = str(exc) or exc.__class__.__name__
                logger.exception("full sync failed duration_ms=%s", duration_ms)
                span.record_exception(exc)
                await self._record_failure(message, duration_ms)
                return SyncResult(success=False, duration_ms=duration_ms, error=message)

    async def sync_to_downstream(self) -> PublishResult:
        with tracer.start_as_current_span("sync.publish") as span:
            try:
                rows = await self.store.fetch_all_jobs()
                result = await self.publisher.publish(rows)
            except Exception as exc:
                logger.exception("downstream sync failed")
                span.record_exception(exc)
                return PublishResult(success=False, error=str(exc) or exc.__class__.__name__)
            span.set_attribute("publish.published", result.published)
            span.set_attribute("publish.failed_batches", result.failed_batches)
            logger.info(
                "downstream sync finished success=%s published=%s failed_batches=%s skipped=%s",
                result.success,
                result.published,
                result.failed_batches,
                result.skipped,
            )
            return result

    async def full_bidirectional_sync(self, *, now: datetime | None = None) -> BidirectionalSyncResult:
        with tracer.start_as_current_span("sync.bidirectional"):
            sync_result = await self.full_sync(now=now)
            if not sync_result.success:
                logger.error("source sync failed; skipping downstream publish error=%s", sync_result.error)
                return BidirectionalSyncResult(sync=sync_result)
            publish_result = await self.sync_to_downstream()
            return BidirectionalSyncResult(sync=sync_result, publish=publish_result)

    async def get_sync_status(self) -> dict[str, Any]:
        await self.store.initialize()
        metadata = await self.store.get_sync_metadata()
        has_data = await self.store.has_data()
        return {
            **metadata,
            "has_data": has_data,
            "needs_sync": not has_data or metadata["status"] in {"never_synced", "failed"},
        }

    async def ensure_not_running(self, *, force: bool = False) -> dict[str, Any]:
        status = await self.get_sync_status()
        if status["status"] == "syncing" and not force:
            raise RepositoryConflictError("sync already in progress")
        return status

    async def classify_job(self, job_id: int) -> ClassificationResult:
        job = await self.store.get_job(job_id)
        return classify(
            job.get("title"),
            job.get("description"),
            job.get("job_labels"),
            job.get("up_grade"),
            taxonomy=self.taxonomy,
        )

    async def close(self) -> None:
        await self.source.close()
        await self.publisher.close()
        await self.store.close()

    async def _record_failure(self, message: str, duration_ms: int) -> None:
        try:
            await self.store.mark_sync_failed(error=message, duration_ms=duration_ms)
        except Exception:
            logger.exception("could not record failed sync status")


def _elapsed_ms(started_at: float) -> int:
    return int((time.perf_counter() - started_at) * 1000)


@lru_cache
def get_sync_service() -> SyncService:
    settings = get_settings()
    return SyncService(
        store=get_local_store(),
        source=get_source_reader(),
        publisher=get_downstream_publisher(),
        analytics=get_analytics_cache(),
        batch_size=settings.sync_batch_size,
    )
