"""Best-effort lead webhook forwarder.

Whatever happens while forwarding, the caller gets a 200: the funnel must
never fail because a downstream CRM hook is down.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests

from rental_funnel.core.config import Settings, get_settings
from rental_funnel.functions.listings import JSON_CONTENT_TYPE, FunctionResponse, json_body

logger = logging.getLogger(__name__)
_SESSION = requests.Session()

USER_AGENT = "rental-funnel/lead-hook"


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a trailing Z."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_payload(body: Optional[str], content_type: Optional[str]) -> Any:
    if "application/json" in (content_type or "").lower():
        return json.loads(body) if body else {}
    return {"raw": body or ""}


def build_envelope(payload: Any, source: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    return {"source": source, "receivedAt": utc_timestamp(now), "payload": payload}


def forward_lead(
    method: str,
    body: Optional[str],
    content_type: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> FunctionResponse:
    """Handle one lead-hook invocation and return (body, status, headers)."""
    if method.upper() != "POST":
        return "Method Not Allowed", 405, {"Allow": "POST"}

    settings = settings or get_settings()
    if not settings.hook_url:
        return "", 204, {}

    headers = {"Content-Type": JSON_CONTENT_TYPE}
    try:
        payload = parse_payload(body, content_type)
        envelope = build_envelope(payload, settings.hook_source)
        response = _SESSION.post(
            settings.hook_url,
            data=json_body(envelope).encode("utf-8"),
            headers={"Content-Type": JSON_CONTENT_TYPE, "User-Agent": USER_AGENT},
            timeout=settings.request_timeout,
        )
        ok = 200 <= response.status_code < 300
        if not ok:
            logger.warning("Lead hook destination returned status=%s", response.status_code)
        return json_body({"ok": ok, "status": response.status_code}), 200, headers
    except Exception as exc:  # noqa: BLE001
        logger.warning("Lead hook forward failed: %s", exc)
        return json_body({"ok": False, "error": str(exc)}), 200, headers
