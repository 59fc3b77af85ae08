"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Anchor Scheduler"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "postgresql+psycopg2://anchor@localhost:5432/anchor"
    auto_create_tables: bool = False
    # IANA zone that defines where one calendar day ends and the next begins.
    local_timezone: str = "UTC"
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "anchor-scheduler"
    calendar_sync_enabled: bool = True
    calendar_provider: str = "memory"
    calendar_timeout_seconds: float = 10.0
    notifications_enabled: bool = False
    notifications_provider: str = "noop"
    scheduler_enabled: bool = False
    scheduler_timezone: str = "UTC"
    reconcile_interval_minutes: int = 15
    status_tick_seconds: int = 60
    jobs_run_on_startup: bool = False


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
