"""Utilities for turning the upstream listings feed into dropdown options."""

import logging
import re
from typing import Any, List, Optional

from rental_funnel.core.models import Listing, ListingAddress, ListingOption

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def safe_text(value: Any) -> str:
    if value is None:
        return ""
    return _WHITESPACE.sub(" ", str(value)).strip()


def format_address(address: Optional[ListingAddress], unit_number: Optional[str] = None) -> str:
    if address is None:
        return f"Unit {unit_number}" if unit_number else "Unknown address"
    city_state = ", ".join(part for part in (address.city, address.state) if part)
    return " ".join(part for part in (address.line1, city_state, address.postal_code) if part)


def listing_url(listing_id: str, base_url: str) -> str:
    return f"{base_url.rstrip('/')}/{listing_id}"


def to_listing_option(listing: Listing, base_url: str) -> Optional[ListingOption]:
    if not listing.listing_id:
        return None
    return ListingOption(
        listing_id=listing.listing_id,
        label=safe_text(format_address(listing.address, listing.unit_number)),
        url=listing_url(listing.listing_id, base_url),
    )


def build_option_set(payload: Any, base_url: str) -> List[ListingOption]:
    """Build the sorted option set from a decoded listings payload.

    Records without an identifier are dropped. Anything other than a JSON
    array is treated as an empty feed.
    """
    if not isinstance(payload, list):
        logger.warning("Listings payload is not a list (got %s); showing no options.", type(payload).__name__)
        return []

    options: List[ListingOption] = []
    for raw in payload:
        option = to_listing_option(Listing.from_record(raw), base_url)
        if option is None:
            logger.debug("Skipping listing without id: %s", str(raw)[:200])
            continue
        options.append(option)

    return sorted(options, key=lambda option: option.label)
