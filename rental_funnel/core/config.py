"""Application configuration helpers.

Everything is environment driven. `HOOK_URL` is optional: when it is missing
the lead hook answers 204 and forwards nothing.
"""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_LISTINGS_UPSTREAM_URL = "https://rentallistings.elitepropertymanagementsd.com/api/listings"
DEFAULT_LISTING_BASE_URL = "https://rentallistings.elitepropertymanagementsd.com/listings"

LISTINGS_PATH = "/.netlify/functions/listings"
LEAD_HOOK_PATH = "/.netlify/functions/lead-hook"


class ConfigError(RuntimeError):
    """Raised when a configuration value cannot be parsed."""


@dataclass(frozen=True)
class Settings:
    listings_upstream_url: str = DEFAULT_LISTINGS_UPSTREAM_URL
    listing_base_url: str = DEFAULT_LISTING_BASE_URL
    hook_url: str = ""
    hook_source: str = "elite-rental-funnel"
    listings_cache_seconds: int = 600
    funnel_origin: str = "http://localhost:8080"
    form_name: str = "lead"
    request_timeout: Optional[float] = None
    port: int = 8080


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


def _get_optional_float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number of seconds, got {raw!r}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    listings_upstream_url = os.getenv("LISTINGS_UPSTREAM_URL") or DEFAULT_LISTINGS_UPSTREAM_URL
    listing_base_url = (os.getenv("LISTING_BASE_URL") or DEFAULT_LISTING_BASE_URL).rstrip("/")
    hook_url = os.getenv("HOOK_URL", "").strip()
    hook_source = os.getenv("HOOK_SOURCE") or "elite-rental-funnel"
    listings_cache_seconds = _get_int("LISTINGS_CACHE_SECONDS", 600)
    funnel_origin = (os.getenv("FUNNEL_ORIGIN") or "http://localhost:8080").rstrip("/")
    form_name = os.getenv("FORM_NAME") or "lead"
    request_timeout = _get_optional_float("REQUEST_TIMEOUT")
    port = _get_int("PORT", 8080)

    if not hook_url:
        logger.info("HOOK_URL is not configured; lead hook forwarding is disabled.")
    if listings_cache_seconds <= 0:
        logger.warning("LISTINGS_CACHE_SECONDS=%s; listings responses will not be cached.", listings_cache_seconds)

    return Settings(
        listings_upstream_url=listings_upstream_url,
        listing_base_url=listing_base_url,
        hook_url=hook_url,
        hook_source=hook_source,
        listings_cache_seconds=listings_cache_seconds,
        funnel_origin=funnel_origin,
        form_name=form_name,
        request_timeout=request_timeout,
        port=port,
    )
