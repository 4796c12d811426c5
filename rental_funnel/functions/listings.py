"""Listings proxy: re-serves the upstream feed from our own origin.

The browser cannot call the upstream API directly because of CORS, and a
short shared cache keeps bursts of paid traffic from hammering it.
"""

import json
import logging
from typing import Any, Dict, Optional, Tuple

from rental_funnel.core.config import Settings, get_settings
from rental_funnel.vendors import listings_api

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json; charset=utf-8"

FunctionResponse = Tuple[str, int, Dict[str, str]]


def json_body(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, separators=(",", ":"))


def _no_store(body: str, status: int) -> FunctionResponse:
    return body, status, {"Content-Type": JSON_CONTENT_TYPE, "Cache-Control": "no-store"}


def proxy_listings(settings: Optional[Settings] = None) -> FunctionResponse:
    """Fetch the upstream listings once and return (body, status, headers)."""
    settings = settings or get_settings()

    try:
        response = listings_api.fetch_listings(settings.listings_upstream_url, timeout=settings.request_timeout)
        if not listings_api.is_success(response):
            logger.warning("Upstream listings returned status=%s", response.status_code)
            return _no_store(json_body({"error": "Upstream error", "status": response.status_code}), response.status_code)
        body = response.text
    except Exception as exc:  # noqa: BLE001
        logger.exception("Listings proxy failed: %s", exc)
        return _no_store(json_body({"error": "Function error", "message": str(exc)}), 500)

    logger.info("Serving %d bytes of listings", len(body))
    return (
        body,
        200,
        {
            "Content-Type": JSON_CONTENT_TYPE,
            "Cache-Control": f"public, max-age={settings.listings_cache_seconds}",
        },
    )
