from fastapi import APIRouter, Depends, HTTPException, Query, status as http_status

from jobs_analytics.schemas.jobs import (
    CategoryCorrectionOut,
    CategoryCorrectionRequest,
    ClassificationOut,
    ClassificationStatsOut,
    ClassifyRequest,
    FilterOptionsOut,
    JobListOut,
    JobOut,
    JobSortBy,
    JobStatus,
    SecondaryCategoryOut,
    SortDir,
)
from jobs_analytics.services.errors import (
    RepositoryNotFoundError,
    RepositoryUnavailableError,
    RepositoryValidationError,
)
from jobs_analytics.services.local_store import get_local_store
from jobs_analytics.services.sync import get_sync_service

router = APIRouter()


@router.get("", response_model=JobListOut)
async def list_jobs(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    category: str | None = Query(default=None, min_length=1),
    agency: str | None = Query(default=None, min_length=1),
    search: str | None = Query(default=None, min_length=1),
    job_status: JobStatus | None = Query(default=None, alias="status"),
    country: str | None = Query(default=None, min_length=1),
    grade: str | None = Query(default=None, min_length=1),
    sort_by: JobSortBy = Query(default="posting_date"),
    sort_dir: SortDir = Query(default="desc"),
    store=Depends(get_local_store),
) -> JobListOut:
    try:
        result = await store.list_jobs(
            category=category,
            agency=agency,
            search=search,
            status=job_status,
            country=country,
            grade=grade,
            sort_by=sort_by,
            sort_dir=sort_dir,
            page=page,
            limit=limit,
        )
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return JobListOut(**result)


@router.get("/filters", response_model=FilterOptionsOut)
async def get_filter_options(store=Depends(get_local_store)) -> FilterOptionsOut:
    try:
        options = await store.filter_options()
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return FilterOptionsOut(**options)


@router.get("/stats/classification", response_model=ClassificationStatsOut)
async def get_classification_stats(store=Depends(get_local_store)) -> ClassificationStatsOut:
    try:
        stats = await store.classification_stats()
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return ClassificationStatsOut(**stats)


@router.post("/classify", response_model=ClassificationOut)
async def classify_job(payload: ClassifyRequest, service=Depends(get_sync_service)) -> ClassificationOut:
    try:
        result = await service.classify_job(payload.job_id)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return ClassificationOut(
        job_id=payload.job_id,
        primary=result.primary,
        confidence=result.confidence,
        secondary=[SecondaryCategoryOut(category=category, confidence=score) for category, score in result.secondary],
        reasoning=result.reasoning,
        low_confidence=result.flags.low_confidence,
        ambiguous=result.flags.ambiguous,
        emerging_terms=result.flags.emerging_terms,
    )


@router.get("/{job_id}", response_model=JobOut)
async def get_job(job_id: int, store=Depends(get_local_store)) -> JobOut:
    try:
        row = await store.get_job(job_id)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return JobOut(**row)


@router.get("/{job_id}/corrections", response_model=list[CategoryCorrectionOut])
async def list_job_corrections(job_id: int, store=Depends(get_local_store)) -> list[CategoryCorrectionOut]:
    try:
        await store.get_job(job_id)
        rows = await store.list_corrections(job_id)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return [CategoryCorrectionOut(**row) for row in rows]


@router.put("/{job_id}/category", response_model=JobOut)
async def correct_job_category(
    job_id: int,
    payload: CategoryCorrectionRequest,
    store=Depends(get_local_store),
) -> JobOut:
    try:
        row = await store.correct_category(
            job_id,
            category=payload.category,
            corrected_by=payload.corrected_by,
            reason=payload.reason,
        )
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=http_status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return JobOut(**row)
