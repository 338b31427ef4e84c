"""
Application configuration, loaded from environment variables / .env.
"""
from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[1]

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class AppConfig(BaseSettings):
    """Estimator settings. Every field can be set as ESTIMATOR_<NAME>."""

    # Data files
    data_dir: Path = PROJECT_ROOT / "data"
    history_dir: Path = PROJECT_ROOT / "data" / "history"
    quotations_dir: Path = PROJECT_ROOT / "data" / "quotations"

    # Pricing
    gst_rate: float = 18.0
    logistics_percentage: float = 7.5
    tile_coverage_sqft: float = 4.0
    mandatory_fixture_ids: list[str] = ["fx-other-execution-charges"]

    # Settings cache (seconds, 0 disables)
    settings_cache_ttl: float = 300.0

    # HTTP server (main_web.py)
    host: str = "127.0.0.1"
    port: int = 8000
    reload: bool = False

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="ESTIMATOR_",
        env_file=".env",
        extra="ignore",
    )


@lru_cache
def get_config() -> AppConfig:
    return AppConfig()


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or get_config().log_level).upper(),
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(),
        ],
    )
