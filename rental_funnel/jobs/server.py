"""HTTP entrypoint hosting the listings proxy and the lead hook."""

from __future__ import annotations

import logging
import os
from typing import Any

from flask import Flask, jsonify, request

from rental_funnel.core.config import LEAD_HOOK_PATH, LISTINGS_PATH, get_settings
from rental_funnel.functions.lead_hook import forward_lead
from rental_funnel.functions.listings import proxy_listings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = Flask(__name__)


@app.get("/")
def root() -> Any:
    """Liveness check for the function host."""
    return "ok", 200


@app.get("/healthz")
def healthcheck() -> Any:
    """Lightweight health endpoint; reads settings only, never calls upstream."""
    settings = get_settings()
    return (
        jsonify(
            {
                "status": "ok",
                "hook_configured": bool(settings.hook_url),
                "revision": os.getenv("K_REVISION", "unknown"),
            }
        ),
        200,
    )


@app.get(LISTINGS_PATH)
def listings() -> Any:
    """Proxy the upstream listings feed."""
    return proxy_listings()


@app.route(
    LEAD_HOOK_PATH,
    methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    provide_automatic_options=False,
)
def lead_hook() -> Any:
    """Forward a submitted lead to HOOK_URL; non-POST methods get a 405."""
    return forward_lead(
        request.method,
        request.get_data(as_text=True),
        content_type=request.headers.get("Content-Type"),
    )


def main() -> None:
    """Bind on 0.0.0.0 using PORT (defaults to 8080 for local runs)."""
    port = get_settings().port
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
