"""Configuration settings for the Remonta contractor directory."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

load_dotenv()


# Pagination
DEFAULT_LIMIT = 10
MAX_LIMIT = 100  # Hard cap per request, larger values are clamped
DEFAULT_OFFSET = 0

# Short public caching for search responses
SEARCH_CACHE_CONTROL = "public, s-maxage=60, stale-while-revalidate=120"


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Unified settings with YAML override support."""

    # Storage
    database_url: str = field(default_factory=lambda: os.environ.get("DATABASE_URL", ""))

    # Geocoding (Google Geocoding API key)
    geomap_api_key: str = field(default_factory=lambda: os.environ.get("GEOMAP_API", ""))
    geocode_timeout: int = 10
    geocode_cache_ttl: int = 7 * 24 * 60 * 60  # 7 days, suburbs rarely move
    geocode_cache_size: int = 1000

    # Search behaviour
    default_limit: int = DEFAULT_LIMIT
    max_limit: int = MAX_LIMIT
    cache_control: str = SEARCH_CACHE_CONTROL
    parallel_fetch: bool = True
    bounding_box_prefilter: bool = False
    # Report the ranked page size as pagination.total when distance ranking ran
    report_ranked_total: bool = True

    # Rate limiting (per client IP)
    rate_limit_enabled: bool = field(
        default_factory=lambda: _env_bool("RATE_LIMIT_ENABLED", True)
    )
    rate_limit_requests: int = 100
    rate_limit_window_seconds: int = 60

    # CORS
    allowed_origins: str = field(default_factory=lambda: os.environ.get("ALLOWED_ORIGINS", "*"))


def load_config(path: Optional[str] = None) -> Settings:
    """
    Load settings from YAML file with environment overrides.

    Priority: environment > config file > defaults

    Args:
        path: Path to YAML config file (optional)

    Returns:
        Settings instance with merged configuration
    """
    settings = Settings()

    if path:
        config_path = Path(path)
        if config_path.exists():
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}

            for key, value in data.items():
                if hasattr(settings, key):
                    setattr(settings, key, value)

    # Environment overrides (always win)
    if os.environ.get("DATABASE_URL"):
        settings.database_url = os.environ["DATABASE_URL"]
    if os.environ.get("GEOMAP_API"):
        settings.geomap_api_key = os.environ["GEOMAP_API"]
    if os.environ.get("RATE_LIMIT_ENABLED"):
        settings.rate_limit_enabled = _env_bool("RATE_LIMIT_ENABLED", True)
    if os.environ.get("ALLOWED_ORIGINS"):
        settings.allowed_origins = os.environ["ALLOWED_ORIGINS"]

    return settings
