"""Client for the upstream property-management listings feed."""

import logging
from typing import Any, Optional

import requests

logger = logging.getLogger(__name__)
_SESSION = requests.Session()

USER_AGENT = "rental-funnel/listings"


class ListingsApiError(RuntimeError):
    """Raised when the listings feed cannot be loaded or decoded."""


def fetch_listings(url: str, timeout: Optional[float] = None) -> requests.Response:
    """Issue a single GET against the listings feed and return the raw response.

    Non-2xx statuses are returned, not raised; callers decide how to surface them.
    """
    logger.info("Fetching listings from %s", url)
    return _SESSION.get(
        url,
        headers={"Accept": "application/json", "User-Agent": USER_AGENT},
        timeout=timeout,
    )


def is_success(response: requests.Response) -> bool:
    return 200 <= response.status_code < 300


def get_listings_json(url: str, timeout: Optional[float] = None, session: Optional[requests.Session] = None) -> Any:
    """GET a listings endpoint and return the decoded JSON body."""
    http = session or _SESSION
    try:
        response = http.get(url, headers={"Accept": "application/json", "User-Agent": USER_AGENT}, timeout=timeout)
    except requests.RequestException as exc:
        raise ListingsApiError(f"Listings request failed: {exc}") from exc
    if not is_success(response):
        logger.error("Listings API error: status=%s url=%s", response.status_code, url)
        raise ListingsApiError(f"Listings API error: {response.status_code}")
    try:
        return response.json()
    except ValueError as exc:
        raise ListingsApiError(f"Listings API returned invalid JSON: {exc}") from exc
