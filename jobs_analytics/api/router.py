from fastapi import APIRouter

from jobs_analytics.api.routes import dashboard, health, jobs, sync

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(jobs.router, prefix="/jobs", tags=["jobs"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["analytics"])
api_router.include_router(sync.router, prefix="/sync", tags=["sync"])
