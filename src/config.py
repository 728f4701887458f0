"""Application configuration loaded from environment variables."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration is loaded from environment variables (or .env file)."""

    # --- App ---
    app_name: str = "FlowCycle"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    environment: str = "development"  # development | staging | production

    # --- Storage ---
    storage_backend: Literal["memory", "postgres"] = "memory"
    database_url: str | None = None  # postgres DSN for asyncpg
    database_pool_min_size: int = 2
    database_pool_max_size: int = 10
    database_command_timeout: float = 30.0
    database_auto_migrate: bool = True

    # --- Cycle predictions ---
    default_cycle_length: int = 28
    default_period_length: int = 5
    rolling_average_cycles: int = 6
    luteal_phase_days: int = 14
    fertile_window_days: int = 6
    min_cycle_days: int = 21
    max_cycle_days: int = 45

    # --- CORS ---
    cors_origins: list[str] = ["http://localhost:3000"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
