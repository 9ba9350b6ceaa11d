"""Application configuration loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration is loaded from environment variables (or .env file)."""

    # --- App ---
    app_name: str = "Health Sync"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    environment: str = "development"  # development | staging | production

    # --- Remote record store ---
    remote_base_url: str = "http://localhost:8080/api"
    request_timeout_seconds: float = 30.0

    # --- Availability probe ---
    probe_timeout_seconds: float = 60.0
    probe_retry_delay_seconds: float = 5.0
    probe_max_retries: int = 12
    probe_user_id: str = "healthcheck"
    probe_on_startup: bool = True

    # --- CORS ---
    cors_origins: list[str] = ["http://localhost:3000"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "env_prefix": "HEALTHSYNC_"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
