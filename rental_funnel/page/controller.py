"""Funnel page controller: listing dropdown, attribution fields and submission.

The controller owns the page's view state and only mutates it through its
transitions (load, select, submit). Network calls go through a
requests.Session; the final redirect is handed to an injected `navigate`
callable so the same flow can drive a browser shim or a test double.
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
from urllib.parse import parse_qs, urlsplit

import requests

from rental_funnel.core.config import LEAD_HOOK_PATH, LISTINGS_PATH, Settings, get_settings
from rental_funnel.core.models import AttributionSnapshot, ListingOption
from rental_funnel.etl.transform import build_option_set
from rental_funnel.functions.lead_hook import utc_timestamp
from rental_funnel.vendors.listings_api import ListingsApiError, get_listings_json

logger = logging.getLogger(__name__)

_executor = ThreadPoolExecutor(max_workers=2)

PLACEHOLDER_LABEL = "Select an address…"
LOAD_FAILED_LABEL = "Unable to load listings, refresh to try again"
LOAD_FAILED_HELP = "We could not load the live listing dropdown."
SELECT_ERROR = "Please select an address."
SUBMIT_ERROR = "Sorry, something went wrong submitting the form. Please try again."
SUBMIT_LABEL = "Continue to Listing"
SUBMITTING_LABEL = "Submitting…"

ATTRIBUTION_MAX_LENGTH = 500

# Hidden field name -> query parameters tried in order.
ATTRIBUTION_PARAMS: Dict[str, Tuple[str, ...]] = {
    "utm_source": ("utm_source",),
    "utm_medium": ("utm_medium",),
    "utm_campaign": ("utm_campaign",),
    "utm_term": ("utm_term",),
    "utm_content": ("utm_content",),
    "fbclid": ("fbclid",),
    "gclid": ("gclid",),
    "msclkid": ("msclkid",),
    "ttclid": ("ttclid",),
    "ad_id": ("ad_id", "adid", "ad"),
    "adset_id": ("adset_id", "adsetid", "adset"),
    "campaign_id": ("campaign_id", "campaignid", "campaign"),
}

Beacon = Callable[[str, bytes, str], bool]


class FormSubmitError(RuntimeError):
    """Raised when the native form endpoint rejects a submission."""


class ControllerState(str, Enum):
    LOADING = "loading"
    READY = "ready"
    SUBMITTING = "submitting"
    FAILED = "failed"
    NAVIGATED = "navigated"


@dataclass
class SelectOption:
    value: str
    label: str
    url: str = ""
    disabled: bool = False


@dataclass
class FunnelViewState:
    """Everything the page renders: dropdown, hidden inputs, messages, button."""

    options: List[SelectOption] = field(default_factory=list)
    selected_index: int = 0
    hidden_fields: Dict[str, str] = field(default_factory=dict)
    help_text: str = ""
    error_text: str = ""
    submit_disabled: bool = False
    submit_label: str = SUBMIT_LABEL

    @property
    def selected(self) -> Optional[SelectOption]:
        if 0 <= self.selected_index < len(self.options):
            return self.options[self.selected_index]
        return None


def _truncate(value: Optional[str]) -> str:
    return (value or "")[:ATTRIBUTION_MAX_LENGTH]


def capture_attribution(page_url: str, referrer: Optional[str] = None) -> AttributionSnapshot:
    """Read UTM/click-id parameters from the page URL into a bounded snapshot."""
    query = parse_qs(urlsplit(page_url or "").query)
    values: Dict[str, str] = {}
    for field_name, params in ATTRIBUTION_PARAMS.items():
        found = next((query[param][0] for param in params if query.get(param) and query[param][0]), "")
        values[field_name] = _truncate(found)
    return AttributionSnapshot(referrer=_truncate(referrer), landing_page=_truncate(page_url), **values)


def _fire_lead_hook_safe(session: requests.Session, url: str, body: bytes, timeout: Optional[float]) -> None:
    try:
        response = session.post(url, data=body, headers={"Content-Type": "application/json"}, timeout=timeout)
        logger.debug("Lead hook answered status=%s", response.status_code)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Lead hook call failed: %s", exc)


class FunnelPageController:
    """Drives one page load of the funnel, from listings fetch to redirect."""

    def __init__(
        self,
        navigate: Callable[[str], None],
        *,
        settings: Optional[Settings] = None,
        session: Optional[requests.Session] = None,
        executor: Optional[Executor] = None,
        beacon: Optional[Beacon] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.session = session or requests.Session()
        self.executor = executor or _executor
        self.beacon = beacon
        self.clock = clock
        self._navigate = navigate

        self.view = FunnelViewState(
            hidden_fields={"listingId": "", "listingUrl": "", **AttributionSnapshot().as_fields(), "submitted_at": ""}
        )
        self.attribution: Optional[AttributionSnapshot] = None
        self.state = ControllerState.LOADING
        self.history: List[ControllerState] = [ControllerState.LOADING]
        self.last_error: Optional[Exception] = None

    # ---------- URLs ----------

    @property
    def listings_url(self) -> str:
        return self.settings.funnel_origin + LISTINGS_PATH

    @property
    def lead_hook_url(self) -> str:
        return self.settings.funnel_origin + LEAD_HOOK_PATH

    @property
    def form_endpoint_url(self) -> str:
        return self.settings.funnel_origin + "/"

    # ---------- Transitions ----------

    def _transition(self, state: ControllerState) -> None:
        logger.debug("Funnel state %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def load_listings(self) -> List[ListingOption]:
        """Populate the dropdown from the listings proxy and move to READY."""
        if self.state is not ControllerState.LOADING:
            raise RuntimeError(f"Listings are loaded once per page; state is {self.state.value}")

        options: List[ListingOption] = []
        try:
            payload = get_listings_json(self.listings_url, timeout=self.settings.request_timeout, session=self.session)
            options = build_option_set(payload, self.settings.listing_base_url)
        except ListingsApiError as exc:
            logger.error("Could not load listings: %s", exc)
            self.last_error = exc
            self.view.options = [SelectOption(value="", label=LOAD_FAILED_LABEL, disabled=True)]
            self.view.help_text = LOAD_FAILED_HELP
        else:
            self.view.options = [SelectOption(value="", label=PLACEHOLDER_LABEL, disabled=True)]
            self.view.options.extend(
                SelectOption(value=option.listing_id, label=option.label, url=option.url) for option in options
            )
            self.view.help_text = f"Loaded {len(options)} listings."
        self.view.selected_index = 0

        self._sync_listing_fields()
        self._transition(ControllerState.READY)
        return options

    def capture_attribution(self, page_url: str, referrer: Optional[str] = None) -> AttributionSnapshot:
        """Capture attribution once; later calls keep the first snapshot."""
        if self.attribution is not None:
            logger.debug("Attribution already captured; ignoring %s", page_url)
            return self.attribution
        self.attribution = capture_attribution(page_url, referrer)
        self.view.hidden_fields.update(self.attribution.as_fields())
        return self.attribution

    def select(self, listing_id: str) -> SelectOption:
        if self.state is not ControllerState.READY:
            raise RuntimeError(f"Cannot change selection while {self.state.value}")
        for index, option in enumerate(self.view.options):
            if option.value == listing_id:
                self.view.selected_index = index
                self._sync_listing_fields()
                return option
        raise ValueError(f"Unknown listing id: {listing_id!r}")

    def submit(self, visitor_fields: Optional[Mapping[str, Any]] = None) -> bool:
        """Submit the lead form; returns True when the browser was redirected."""
        if self.state is not ControllerState.READY:
            raise RuntimeError(f"Cannot submit while {self.state.value}")

        self._transition(ControllerState.SUBMITTING)
        self.view.error_text = ""

        # the selection may never have changed from its default
        self._sync_listing_fields()
        listing_url = self.view.hidden_fields["listingUrl"]
        if not listing_url:
            self.view.error_text = SELECT_ERROR
            self._transition(ControllerState.READY)
            return False

        try:
            self._set_submitting(True)
            self.view.hidden_fields["submitted_at"] = utc_timestamp(self.clock() if self.clock else None)
            fields = self._form_fields(visitor_fields)
            self._submit_form(fields)
            self._send_lead_hook(dict(fields))
            self._navigate(listing_url)
        except Exception as exc:  # noqa: BLE001
            logger.error("Form submission failed: %s", exc)
            self.last_error = exc
            self._transition(ControllerState.FAILED)
            self.view.error_text = SUBMIT_ERROR
            self._set_submitting(False)
            self._transition(ControllerState.READY)
            return False

        self._transition(ControllerState.NAVIGATED)
        return True

    # ---------- Internals ----------

    def _sync_listing_fields(self) -> None:
        selected = self.view.selected
        self.view.hidden_fields["listingId"] = selected.value if selected else ""
        self.view.hidden_fields["listingUrl"] = selected.url if selected else ""

    def _set_submitting(self, submitting: bool) -> None:
        self.view.submit_disabled = submitting
        self.view.submit_label = SUBMITTING_LABEL if submitting else SUBMIT_LABEL

    def _form_fields(self, visitor_fields: Optional[Mapping[str, Any]]) -> List[Tuple[str, str]]:
        fields = [("form-name", self.settings.form_name)]
        fields.extend((str(key), "" if value is None else str(value)) for key, value in (visitor_fields or {}).items())
        fields.extend(self.view.hidden_fields.items())
        return fields

    def _submit_form(self, fields: List[Tuple[str, str]]) -> None:
        response = self.session.post(
            self.form_endpoint_url,
            data=fields,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            allow_redirects=False,
            timeout=self.settings.request_timeout,
        )
        # the hosting platform answers 200 or a 3xx redirect on success
        if not 200 <= response.status_code < 400:
            raise FormSubmitError(f"Form submit failed: {response.status_code}")

    def _send_lead_hook(self, fields: Dict[str, str]) -> None:
        body = json.dumps(fields).encode("utf-8")
        if self.beacon is not None:
            try:
                if self.beacon(self.lead_hook_url, body, "application/json"):
                    return
            except Exception as exc:  # noqa: BLE001
                logger.warning("Beacon send failed, falling back to background request: %s", exc)
        try:
            self.executor.submit(_fire_lead_hook_safe, self.session, self.lead_hook_url, body, self.settings.request_timeout)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not start lead hook request: %s", exc)
