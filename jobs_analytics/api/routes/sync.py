import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status as http_status

from jobs_analytics.schemas.sync import SyncStatusOut, SyncTriggerOut, SyncTriggerRequest
from jobs_analytics.services.errors import RepositoryConflictError, RepositoryUnavailableError
from jobs_analytics.services.sync import get_sync_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/status", response_model=SyncStatusOut)
async def get_sync_status(service=Depends(get_sync_service)) -> SyncStatusOut:
    try:
        status = await service.get_sync_status()
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return SyncStatusOut(**status)


@router.post("", response_model=SyncTriggerOut, status_code=http_status.HTTP_202_ACCEPTED)
async def trigger_sync(
    background_tasks: BackgroundTasks,
    payload: SyncTriggerRequest | None = None,
    service=Depends(get_sync_service),
) -> SyncTriggerOut:
    force = payload.force if payload is not None else False
    try:
        status = await service.ensure_not_running(force=force)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryConflictError as exc:
        raise HTTPException(status_code=http_status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    background_tasks.add_task(service.full_bidirectional_sync)
    logger.info("sync triggered via api force=%s previous_status=%s", force, status["status"])
    return SyncTriggerOut(accepted=True, status="syncing")
