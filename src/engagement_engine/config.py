"""Application configuration via pydantic-settings.

Reads from .env file or environment variables. All settings are validated
at startup - if a setting has the wrong type, the app fails fast with a
clear error message.

Usage:
    from engagement_engine.config import get_settings
    settings = get_settings()
    print(settings.ledger_base_url)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration for the Engagement Engine."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = True
    app_log_level: str = "DEBUG"
    app_host: str = "0.0.0.0"
    app_port: int = 8000

    # --- Audit event log (PostgreSQL) ---
    database_url: str = (
        "postgresql+asyncpg://engagement:engagement_dev"
        "@localhost:5432/engagement_engine"
    )
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_pool_timeout: int = 30
    db_echo_sql: bool = False
    audit_log_enabled: bool = True

    # --- External services ---
    # When True, the ledger, escrow, NDA and assessment backends are replaced
    # by in-memory implementations (local development, demos, simulation.py).
    simulate_external_services: bool = True

    ledger_base_url: str = "http://localhost:9001"
    ledger_api_token: str = ""
    escrow_api_url: str = "http://localhost:9002"
    escrow_api_token: str = ""
    nda_api_url: str = "http://localhost:9003"
    nda_api_token: str = ""
    assessment_api_url: str = "http://localhost:9004"
    assessment_api_token: str = ""
    notification_url: str = ""  # empty = notifications disabled

    # --- Retry / timeout defaults (per external call) ---
    retry_max_retries: int = 3
    retry_base_delay_seconds: float = 0.5
    retry_max_delay_seconds: float = 8.0
    external_timeout_seconds: float = 10.0
    # Notifications are best-effort; keep their retry budget small.
    notification_max_retries: int = 1

    # --- Workspace access cache ---
    workspace_cache_max_entries: int = 10_000

    # --- NDA ---
    default_nda_document_id: str = "nda-standard-v1"

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton of the application settings."""
    return Settings()
