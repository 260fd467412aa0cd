from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "un-jobs-analytics"
    environment: str = "dev"
    source_database_url: str | None = None
    source_pool_min_size: int = 1
    source_pool_max_size: int = 4
    downstream_database_url: str | None = None
    downstream_pool_min_size: int = 1
    downstream_pool_max_size: int = 5
    database_connect_timeout_seconds: float = 10.0
    database_command_timeout_seconds: float = 60.0
    local_db_path: str = "data/jobs_cache.db"
    sync_batch_size: int = 500
    publish_batch_size: int = 500
    publish_verbose_failures: int = 3
    analytics_ttl_hours: int = 24
    sync_interval_hours: float = 24.0
    max_backoff_seconds: float = 900.0
    otel_enabled: bool = True
    otel_service_name: str = "un-jobs-analytics"
    otel_exporter_otlp_endpoint: str | None = None
    otel_trace_sample_ratio: float = 1.0

    model_config = SettingsConfigDict(env_prefix="UNJ_", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
