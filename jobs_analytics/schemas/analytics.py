from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel

AnalyticsViewName = Literal["overview", "categories", "agencies", "temporal", "workforce", "skills", "competitive"]


class AnalyticsViewOut(BaseModel):
    view: AnalyticsViewName
    data: dict[str, Any]
    created_at: datetime
    expires_at: datetime
    from_cache: bool


class AnalyticsBundleOut(BaseModel):
    views: dict[str, AnalyticsViewOut]
