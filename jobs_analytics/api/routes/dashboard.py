from fastapi import APIRouter, Depends, HTTPException, status as http_status

from jobs_analytics.schemas.analytics import AnalyticsBundleOut, AnalyticsViewName, AnalyticsViewOut
from jobs_analytics.services.analytics import AnalyticsView, get_analytics_cache
from jobs_analytics.services.errors import RepositoryNotFoundError, RepositoryUnavailableError

router = APIRouter()


def _view_out(view: AnalyticsView) -> AnalyticsViewOut:
    return AnalyticsViewOut(
        view=view.name,
        data=view.data,
        created_at=view.created_at,
        expires_at=view.expires_at,
        from_cache=view.from_cache,
    )


@router.get("/all", response_model=AnalyticsBundleOut)
async def get_all_views(cache=Depends(get_analytics_cache)) -> AnalyticsBundleOut:
    try:
        views = await cache.get_all()
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return AnalyticsBundleOut(views={name: _view_out(view) for name, view in views.items()})


@router.get("/{view}", response_model=AnalyticsViewOut)
async def get_view(view: AnalyticsViewName, cache=Depends(get_analytics_cache)) -> AnalyticsViewOut:
    try:
        result = await cache.get_view(view)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return _view_out(result)
