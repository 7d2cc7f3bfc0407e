"""Application configuration, loaded from environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration loaded from env vars (or ``.env`` file)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    source_base_url: str = "https://localhost/api/v2"
    source_username: str = ""
    source_password: SecretStr = SecretStr("")
    source_verify_tls: bool = True
    source_timeout_seconds: float | None = None
    commit_fetch_timeout_seconds: float = 80.0

    database_url: str = "sqlite+aiosqlite:///./commit_metrics.db"
    database_echo: bool = False

    max_concurrent_branches: int = 5
    max_commits_per_branch: int = 100_000
    commit_pacing_seconds: float = 0.2
    collection_interval_minutes: float = 10.0
    collect_on_startup: bool = True

    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton application settings (cached after first call)."""
    return Settings()
