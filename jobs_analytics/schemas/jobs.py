from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

JobStatus = Literal["active", "closing_soon", "expired", "archived"]
Urgency = Literal["urgent", "normal", "extended"]
LocationType = Literal["HQ", "Field", "Remote"]
JobSortBy = Literal["posting_date", "confidence", "title", "days_remaining"]
SortDir = Literal["asc", "desc"]


class SecondaryCategoryOut(BaseModel):
    category: str
    confidence: int


class JobOut(BaseModel):
    id: int
    title: str | None = None
    description: str | None = None
    job_labels: str | None = None
    short_agency: str | None = None
    long_agency: str | None = None
    duty_station: str | None = None
    duty_country: str | None = None
    duty_continent: str | None = None
    country_code: str | None = None
    up_grade: str | None = None
    pipeline: str | None = None
    department: str | None = None
    posting_date: datetime | None = None
    apply_until: datetime | None = None
    url: str | None = None
    languages: str | None = None
    archived: bool = False
    primary_category: str | None = None
    secondary_categories: list[SecondaryCategoryOut] = Field(default_factory=list)
    classification_confidence: float | None = None
    classification_reasoning: list[str] = Field(default_factory=list)
    is_low_confidence: bool = False
    is_ambiguous_category: bool = False
    emerging_terms: list[str] = Field(default_factory=list)
    seniority_level: str | None = None
    location_type: LocationType | None = None
    skill_domains: list[str] = Field(default_factory=list)
    status: JobStatus | None = None
    urgency: Urgency | None = None
    is_active: bool = False
    is_expired: bool = False
    days_remaining: int | None = None
    application_window_days: int | None = None
    formatted_posting_date: str | None = None
    formatted_apply_until: str | None = None
    processed_at: datetime | None = None
    is_user_corrected: bool = False
    user_corrected_by: str | None = None
    user_corrected_at: datetime | None = None


class JobListOut(BaseModel):
    jobs: list[JobOut]
    total: int
    page: int
    limit: int
    total_pages: int


class FilterOptionOut(BaseModel):
    value: str
    count: int


class FilterOptionsOut(BaseModel):
    categories: list[FilterOptionOut] = Field(default_factory=list)
    agencies: list[FilterOptionOut] = Field(default_factory=list)
    countries: list[FilterOptionOut] = Field(default_factory=list)
    grades: list[FilterOptionOut] = Field(default_factory=list)
    statuses: list[FilterOptionOut] = Field(default_factory=list)


class CategoryCorrectionRequest(BaseModel):
    category: str = Field(min_length=1)
    corrected_by: str = Field(min_length=1, max_length=200)
    reason: str | None = Field(default=None, max_length=2000)


class ClassifyRequest(BaseModel):
    job_id: int


class ClassificationOut(BaseModel):
    job_id: int
    primary: str
    confidence: int
    secondary: list[SecondaryCategoryOut] = Field(default_factory=list)
    reasoning: list[str] = Field(default_factory=list)
    low_confidence: bool = False
    ambiguous: bool = False
    emerging_terms: list[str] = Field(default_factory=list)


class CategoryCorrectionOut(BaseModel):
    job_id: int
    original_category: str | None = None
    corrected_category: str
    corrected_by: str
    reason: str | None = None
    created_at: datetime


class CategoryStatOut(BaseModel):
    category: str
    count: int
    avg_confidence: float


class ClassificationStatsOut(BaseModel):
    total: int
    classified: int
    user_corrected: int
    avg_confidence: float
    low_confidence_count: int
    distribution: list[CategoryStatOut] = Field(default_factory=list)
