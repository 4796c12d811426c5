"""Core data models shared by the listings proxy and the funnel page."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional


def _text_or_none(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


@dataclass(slots=True)
class ListingAddress:
    """Street address of a unit as exposed by the upstream feed."""

    line1: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None

    @classmethod
    def from_record(cls, raw: Any) -> Optional["ListingAddress"]:
        if not isinstance(raw, dict):
            return None
        return cls(
            line1=_text_or_none(raw.get("AddressLine1")),
            city=_text_or_none(raw.get("City")),
            state=_text_or_none(raw.get("State")),
            postal_code=_text_or_none(raw.get("PostalCode")),
        )


@dataclass(slots=True)
class Listing:
    """Upstream listing record reduced to the fields the funnel uses.

    Every level of the upstream shape is optional; anything that is not a
    mapping where one is expected is treated as absent.
    """

    listing_id: Optional[str] = None
    address: Optional[ListingAddress] = None
    unit_number: Optional[str] = None

    @classmethod
    def from_record(cls, raw: Any) -> "Listing":
        record = raw if isinstance(raw, dict) else {}
        unit = record.get("Unit")
        if not isinstance(unit, dict):
            unit = {}
        raw_id = unit.get("Id")
        return cls(
            listing_id=str(raw_id) if raw_id else None,
            address=ListingAddress.from_record(unit.get("Address")),
            unit_number=_text_or_none(unit.get("UnitNumber")),
        )


@dataclass(frozen=True, slots=True)
class ListingOption:
    """One selectable entry of the listing dropdown."""

    listing_id: str
    label: str
    url: str


@dataclass(frozen=True, slots=True)
class AttributionSnapshot:
    """Marketing context captured once when the page loads."""

    referrer: str = ""
    landing_page: str = ""
    utm_source: str = ""
    utm_medium: str = ""
    utm_campaign: str = ""
    utm_term: str = ""
    utm_content: str = ""
    fbclid: str = ""
    gclid: str = ""
    msclkid: str = ""
    ttclid: str = ""
    ad_id: str = ""
    adset_id: str = ""
    campaign_id: str = ""

    def as_fields(self) -> Dict[str, str]:
        return asdict(self)
