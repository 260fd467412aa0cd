from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from functools import lru_cache
from typing import Any

from jobs_analytics.core.config import get_settings
from jobs_analytics.services.errors import RepositoryNotFoundError
from jobs_analytics.services.local_store import LocalStore, get_local_store

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "dashboard:"
TOP_SKILLS_LIMIT = 50
TOP_CATEGORY_SKILLS_LIMIT = 10


@dataclass(slots=True)
class AnalyticsView:
    name: str
    data: dict[str, Any]
    created_at: datetime
    expires_at: datetime
    from_cache: bool


def cache_key(view: str) -> str:
    return f"{CACHE_KEY_PREFIX}{view}"


def months_ago(now: datetime, months: int) -> str:
    """Calendar date ``months`` before ``now`` as YYYY-MM-DD, clamped to month end."""
    year = now.year
    month = now.month - months
    while month <= 0:
        month += 12
        year -= 1
    day = now.day
    while day > 28:
        try:
            return date(year, month, day).isoformat()
        except ValueError:
            day -= 1
    return date(year, month, day).isoformat()


def _percentage(part: float, total: float) -> float:
    return (part / total) * 100 if total > 0 else 0.0


async def compute_overview(store: LocalStore, now: datetime) -> dict[str, Any]:
    stats = await store.fetchrow(
        """
        select
          count(*) as total_jobs,
          count(distinct short_agency) as total_agencies,
          count(distinct duty_country) as total_countries,
          count(distinct department) as total_departments,
          sum(case when status = 'active' then 1 else 0 end) as active_jobs,
          sum(case when status = 'closing_soon' then 1 else 0 end) as closing_soon,
          sum(case when status in ('expired', 'archived') then 1 else 0 end) as expired_jobs,
          avg(classification_confidence) as avg_confidence,
          avg(application_window_days) as avg_window
        from jobs
        """
    ) or {}
    top_categories = await store.fetch(
        """
        select primary_category as category, count(*) as count
        from jobs
        where primary_category is not null
        group by primary_category
        order by count desc, category
        limit 10
        """
    )
    top_agencies = await store.fetch(
        """
        select short_agency as agency, count(*) as count
        from jobs
        where short_agency is not null and short_agency != ''
        group by short_agency
        order by count desc, agency
        limit 10
        """
    )
    monthly_trends = await store.fetch(
        """
        select strftime('%Y-%m', posting_date) as month, count(*) as count
        from jobs
        where posting_date >= ?
        group by strftime('%Y-%m', posting_date)
        order by month
        """,
        [months_ago(now, 6)],
    )

    total_with_category = sum(row["count"] for row in top_categories)
    growth = 0.0
    if len(monthly_trends) >= 2:
        current = monthly_trends[-1]["count"]
        previous = monthly_trends[-2]["count"]
        growth = _percentage(current - previous, previous)

    return {
        "total_jobs": stats.get("total_jobs") or 0,
        "total_agencies": stats.get("total_agencies") or 0,
        "total_countries": stats.get("total_countries") or 0,
        "total_departments": stats.get("total_departments") or 0,
        "active_jobs": stats.get("active_jobs") or 0,
        "closing_soon": stats.get("closing_soon") or 0,
        "expired_jobs": stats.get("expired_jobs") or 0,
        "avg_confidence": round(stats.get("avg_confidence") or 0),
        "avg_application_window": round(stats.get("avg_window") or 0),
        "top_categories": [
            {**row, "percentage": _percentage(row["count"], total_with_category)} for row in top_categories
        ],
        "top_agencies": top_agencies,
        "monthly_trends": monthly_trends,
        "month_over_month_growth": round(growth, 1),
    }


async def compute_categories(store: LocalStore, now: datetime) -> dict[str, Any]:
    categories = await store.fetch(
        """
        select
          primary_category as category,
          count(*) as total,
          avg(classification_confidence) as avg_confidence,
          count(distinct short_agency) as agencies_count,
          count(distinct duty_country) as countries_count
        from jobs
        where primary_category is not null
        group by primary_category
        order by total desc, category
        """
    )
    by_seniority = await store.fetch(
        """
        select primary_category as category, seniority_level, count(*) as count
        from jobs
        where primary_category is not null and seniority_level is not null
        group by primary_category, seniority_level
        order by category, seniority_level
        """
    )
    trends = await store.fetch(
        """
        select primary_category as category, strftime('%Y-%m', posting_date) as month, count(*) as count
        from jobs
        where posting_date >= ? and primary_category is not null
        group by primary_category, strftime('%Y-%m', posting_date)
        order by category, month
        """,
        [months_ago(now, 6)],
    )
    total_jobs = sum(row["total"] for row in categories)
    return {
        "categories": [
            {
                "category": row["category"],
                "total": row["total"],
                "percentage": _percentage(row["total"], total_jobs),
                "avg_confidence": round(row["avg_confidence"] or 0),
                "agencies_count": row["agencies_count"],
                "countries_count": row["countries_count"],
            }
            for row in categories
        ],
        "category_by_seniority": by_seniority,
        "category_trends": trends,
        "total_categories": len(categories),
    }


async def compute_agencies(store: LocalStore, now: datetime) -> dict[str, Any]:
    agencies = await store.fetch(
        """
        select
          short_agency as agency,
          count(*) as total_jobs,
          count(distinct primary_category) as categories_count,
          count(distinct duty_country) as countries_count,
          avg(application_window_days) as avg_window
        from jobs
        where short_agency is not null and short_agency != ''
        group by short_agency
        order by total_jobs desc, agency
        """
    )
    by_category = await store.fetch(
        """
        select short_agency as agency, primary_category as category, count(*) as count
        from jobs
        where short_agency is not null and primary_category is not null
        group by short_agency, primary_category
        order by agency, category
        """
    )
    trends = await store.fetch(
        """
        select short_agency as agency, strftime('%Y-%m', posting_date) as month, count(*) as count
        from jobs
        where posting_date >= ? and short_agency is not null
        group by short_agency, strftime('%Y-%m', posting_date)
        order by agency, month
        """,
        [months_ago(now, 6)],
    )
    total_jobs = sum(row["total_jobs"] for row in agencies)
    return {
        "agencies": [
            {
                "agency": row["agency"],
                "total_jobs": row["total_jobs"],
                "market_share": _percentage(row["total_jobs"], total_jobs),
                "categories_count": row["categories_count"],
                "countries_count": row["countries_count"],
                "avg_window": round(row["avg_window"] or 0),
            }
            for row in agencies
        ],
        "agency_by_category": by_category,
        "agency_trends": trends,
        "total_agencies": len(agencies),
    }


async def compute_temporal(store: LocalStore, now: datetime) -> dict[str, Any]:
    cutoff = months_ago(now, 12)
    monthly = await store.fetch(
        """
        select
          strftime('%Y-%m', posting_date) as month,
          count(*) as total,
          count(distinct short_agency) as agencies,
          count(distinct primary_category) as categories
        from jobs
        where posting_date >= ?
        group by strftime('%Y-%m', posting_date)
        order by month
        """,
        [cutoff],
    )
    seasonal = await store.fetch(
        """
        select strftime('%m', posting_date) as month_num, count(*) as count
        from jobs
        where posting_date is not null
        group by strftime('%m', posting_date)
        order by month_num
        """
    )
    category_series = await store.fetch(
        """
        select strftime('%Y-%m', posting_date) as month, primary_category as category, count(*) as count
        from jobs
        where posting_date >= ? and primary_category is not null
        group by strftime('%Y-%m', posting_date), primary_category
        order by month, category
        """,
        [cutoff],
    )
    agency_series = await store.fetch(
        """
        select strftime('%Y-%m', posting_date) as month, short_agency as agency, count(*) as count
        from jobs
        where posting_date >= ? and short_agency is not null
        group by strftime('%Y-%m', posting_date), short_agency
        order by month, agency
        """,
        [cutoff],
    )
    return {
        "monthly_postings": monthly,
        "seasonal_patterns": seasonal,
        "category_time_series": category_series,
        "agency_time_series": agency_series,
    }


async def compute_workforce(store: LocalStore, now: datetime) -> dict[str, Any]:
    async def distribution(column: str, limit: int | None = None) -> list[dict[str, Any]]:
        limit_sql = f"limit {int(limit)}" if limit else ""
        return await store.fetch(
            f"""
            select {column}, count(*) as count
            from jobs
            where {column} is not null and {column} != ''
            group by {column}
            order by count desc, {column}
            {limit_sql}
            """
        )

    experience = await store.fetchrow(
        """
        select
          avg(bachelor_min_exp) as avg_bachelor_exp,
          avg(master_min_exp) as avg_master_exp,
          min(bachelor_min_exp) as min_bachelor_exp,
          max(bachelor_min_exp) as max_bachelor_exp
        from jobs
        where bachelor_min_exp is not null
        """
    ) or {}
    return {
        "grade_distribution": await distribution("up_grade"),
        "seniority_distribution": await distribution("seniority_level"),
        "location_type_distribution": await distribution("location_type"),
        "country_distribution": await distribution("duty_country", 20),
        "experience_stats": {
            "avg_bachelor_exp": round(experience.get("avg_bachelor_exp") or 0),
            "avg_master_exp": round(experience.get("avg_master_exp") or 0),
            "min_bachelor_exp": experience.get("min_bachelor_exp") or 0,
            "max_bachelor_exp": experience.get("max_bachelor_exp") or 0,
        },
    }


def split_labels(raw: str | None) -> list[str]:
    return [label.strip() for label in (raw or "").split(",") if label.strip()]


async def compute_skills(store: LocalStore, now: datetime) -> dict[str, Any]:
    rows = await store.fetch(
        """
        select primary_category, job_labels
        from jobs
        where job_labels is not null and job_labels != ''
        order by id
        """
    )
    overall: Counter[str] = Counter()
    by_category: dict[str, Counter[str]] = {}
    for row in rows:
        skills = split_labels(row["job_labels"])
        overall.update(skills)
        category = row["primary_category"]
        if category:
            by_category.setdefault(category, Counter()).update(skills)

    return {
        "top_skills": [{"skill": skill, "count": count} for skill, count in overall.most_common(TOP_SKILLS_LIMIT)],
        "total_unique_skills": len(overall),
        "avg_skills_per_job": round(sum(overall.values()) / len(rows), 1) if rows else 0,
        "top_skills_by_category": [
            {
                "category": category,
                "skills": [
                    {"skill": skill, "count": count} for skill, count in counter.most_common(TOP_CATEGORY_SKILLS_LIMIT)
                ],
            }
            for category, counter in sorted(by_category.items())
        ],
    }


def market_concentration(volumes: list[int]) -> dict[str, float]:
    total = sum(volumes)
    if total == 0:
        return {"herfindahl_index": 0.0, "top3_share": 0.0, "top5_share": 0.0, "top10_share": 0.0}
    shares = sorted((volume / total * 100 for volume in volumes), reverse=True)
    return {
        "herfindahl_index": round(sum(share * share for share in shares) / 10000, 3),
        "top3_share": sum(shares[:3]),
        "top5_share": sum(shares[:5]),
        "top10_share": sum(shares[:10]),
    }


async def compute_competitive(store: LocalStore, now: datetime) -> dict[str, Any]:
    positioning = await store.fetch(
        """
        select
          short_agency as agency,
          count(*) as volume,
          count(distinct primary_category) as diversity,
          count(distinct duty_country) as reach,
          avg(application_window_days) as avg_window
        from jobs
        where short_agency is not null and short_agency != ''
        group by short_agency
        order by volume desc, agency
        """
    )
    dominance = await store.fetch(
        """
        select primary_category as category, short_agency as agency, count(*) as count
        from jobs
        where primary_category is not null and short_agency is not null
        group by primary_category, short_agency
        order by category, count desc, agency
        """
    )

    leaders: dict[str, dict[str, Any]] = {}
    for row in dominance:
        entry = leaders.get(row["category"])
        if entry is None:
            leaders[row["category"]] = {
                "category": row["category"],
                "leading_agency": row["agency"],
                "leading_count": row["count"],
                "total_in_category": row["count"],
            }
        else:
            entry["total_in_category"] += row["count"]

    total_volume = sum(row["volume"] for row in positioning)
    return {
        "agency_positioning": [
            {
                "agency": row["agency"],
                "volume": row["volume"],
                "market_share": _percentage(row["volume"], total_volume),
                "category_diversity": row["diversity"],
                "geographic_reach": row["reach"],
                "avg_application_window": round(row["avg_window"] or 0),
            }
            for row in positioning
        ],
        "category_leaders": list(leaders.values()),
        "market_concentration": market_concentration([row["volume"] for row in positioning]),
    }


VIEW_BUILDERS: dict[str, Callable[[LocalStore, datetime], Awaitable[dict[str, Any]]]] = {
    "overview": compute_overview,
    "categories": compute_categories,
    "agencies": compute_agencies,
    "temporal": compute_temporal,
    "workforce": compute_workforce,
    "skills": compute_skills,
    "competitive": compute_competitive,
}
VIEWS = tuple(VIEW_BUILDERS)


class AnalyticsCache:
    """Read-through cache of the dashboard views kept in the local store."""

    def __init__(self, store: LocalStore, *, ttl: timedelta = timedelta(hours=24)) -> None:
        self.store = store
        self.ttl = ttl

    async def precompute(self, *, now: datetime | None = None) -> list[str]:
        current = now or datetime.now(timezone.utc)
        written: list[str] = []
        for view in VIEWS:
            await self._refresh(view, current)
            written.append(view)
        logger.info("analytics precomputed views=%s ttl_hours=%.1f", len(written), self.ttl.total_seconds() / 3600)
        return written

    async def get_view(self, view: str, *, now: datetime | None = None) -> AnalyticsView:
        if view not in VIEW_BUILDERS:
            raise RepositoryNotFoundError(f"unknown analytics view: {view}")
        current = now or datetime.now(timezone.utc)
        entry = await self.store.cache_get(cache_key(view), now=current)
        if entry is not None and entry.fresh:
            return AnalyticsView(
                name=view,
                data=entry.data,
                created_at=entry.created_at,
                expires_at=entry.expires_at,
                from_cache=True,
            )
        logger.info("analytics cache miss view=%s stale=%s", view, entry is not None)
        return await self._refresh(view, current)

    async def get_all(self, *, now: datetime | None = None) -> dict[str, AnalyticsView]:
        current = now or datetime.now(timezone.utc)
        return {view: await self.get_view(view, now=current) for view in VIEWS}

    async def _refresh(self, view: str, now: datetime) -> AnalyticsView:
        data = await VIEW_BUILDERS[view](self.store, now)
        entry = await self.store.cache_put(cache_key(view), data, ttl=self.ttl, now=now)
        return AnalyticsView(
            name=view,
            data=data,
            created_at=entry.created_at,
            expires_at=entry.expires_at,
            from_cache=False,
        )


@lru_cache
def get_analytics_cache() -> AnalyticsCache:
    settings = get_settings()
    return AnalyticsCache(get_local_store(), ttl=timedelta(hours=settings.analytics_ttl_hours))
