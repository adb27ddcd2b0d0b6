"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///data/listings.db"


class ConfigError(RuntimeError):
    """Raised when mandatory configuration is missing."""


@dataclass(frozen=True)
class Settings:
    google_api_key: str = ""
    database_url: str = DEFAULT_DATABASE_URL
    location_lat: float = 29.7858
    location_lng: float = -95.8244
    search_radius: int = 15000
    search_type: str = "restaurant"
    max_retries: int = 3
    retry_delay: float = 5.0
    rate_limit_delay: float = 0.1
    page_token_delay: float = 2.0
    stale_days: int = 30
    sync_enabled: bool = True
    default_city: str = "Katy"
    default_state: str = "TX"
    log_level: str = "INFO"
    log_dir: str = "./logs"
    log_retention_days: int = 30
    alert_enabled: bool = False
    alert_webhook_url: Optional[str] = None
    worker_port: int = 9000


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    google_api_key = os.getenv("GOOGLE_API_KEY", "")
    database_url = os.getenv("DATABASE_URL", "")
    rate_limit_delay_ms = int(os.getenv("RATE_LIMIT_DELAY_MS", "100"))
    alert_webhook_url = os.getenv("ALERT_WEBHOOK_URL") or None

    if not database_url:
        logger.warning("DATABASE_URL is not set; falling back to %s", DEFAULT_DATABASE_URL)
        database_url = DEFAULT_DATABASE_URL
    if not google_api_key:
        logger.warning("GOOGLE_API_KEY is not configured; Google Places requests will fail.")

    return Settings(
        google_api_key=google_api_key,
        database_url=database_url,
        location_lat=float(os.getenv("LOCATION_LAT", "29.7858")),
        location_lng=float(os.getenv("LOCATION_LNG", "-95.8244")),
        search_radius=int(os.getenv("SEARCH_RADIUS", "15000")),
        search_type=os.getenv("SEARCH_TYPE", "restaurant"),
        max_retries=int(os.getenv("MAX_RETRIES", "3")),
        retry_delay=float(os.getenv("RETRY_DELAY", "5")),
        rate_limit_delay=rate_limit_delay_ms / 1000.0,
        page_token_delay=float(os.getenv("PAGE_TOKEN_DELAY", "2")),
        stale_days=int(os.getenv("STALE_DAYS", "30")),
        sync_enabled=_env_flag("SYNC_ENABLED", "true"),
        default_city=os.getenv("DEFAULT_CITY", "Katy"),
        default_state=os.getenv("DEFAULT_STATE", "TX"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_dir=os.getenv("LOG_DIR", "./logs"),
        log_retention_days=int(os.getenv("LOG_RETENTION_DAYS", "30")),
        alert_enabled=_env_flag("ALERT_ENABLED", "false"),
        alert_webhook_url=alert_webhook_url,
        worker_port=int(os.getenv("WORKER_PORT", "9000")),
    )


def require_api_key(settings: Settings) -> str:
    if not settings.google_api_key:
        raise ConfigError("GOOGLE_API_KEY is required")
    return settings.google_api_key
