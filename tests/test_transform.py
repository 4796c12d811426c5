from dataclasses import fields

from rental_funnel.core.models import Listing, ListingAddress
from rental_funnel.etl import transform

BASE_URL = "https://listings.example.com/listings"


def _record(listing_id, line1=None, city=None, state=None, postal_code=None, unit_number=None, address=True):
    unit = {"Id": listing_id}
    if address:
        unit["Address"] = {"AddressLine1": line1, "City": city, "State": state, "PostalCode": postal_code}
    if unit_number is not None:
        unit["UnitNumber"] = unit_number
    return {"Unit": unit}


def test_format_address_full():
    address = ListingAddress(line1="12 Ocean Ave", city="San Diego", state="CA", postal_code="92101")
    assert transform.format_address(address) == "12 Ocean Ave San Diego, CA 92101"


def test_format_address_partial_parts_are_skipped():
    assert transform.format_address(ListingAddress(line1="12 Ocean Ave", state="CA")) == "12 Ocean Ave CA"
    assert transform.format_address(ListingAddress(city="San Diego")) == "San Diego"
    assert transform.format_address(ListingAddress()) == ""


def test_format_address_fallbacks_without_address():
    assert transform.format_address(None, "4B") == "Unit 4B"
    assert transform.format_address(None) == "Unknown address"


def test_safe_text_collapses_whitespace():
    assert transform.safe_text("  12   Ocean\tAve \n") == "12 Ocean Ave"
    assert transform.safe_text(None) == ""


def test_listing_from_record_tolerates_bad_shapes():
    assert Listing.from_record(None).listing_id is None
    assert Listing.from_record({"Unit": "nope"}).address is None

    listing = Listing.from_record({"Unit": {"Id": 42, "Address": ["not", "a", "dict"], "UnitNumber": 7}})
    assert listing.listing_id == "42"
    assert listing.address is None
    assert listing.unit_number == "7"


def test_listing_keeps_only_funnel_fields():
    assert [item.name for item in fields(Listing)] == ["listing_id", "address", "unit_number"]


def test_build_option_set_drops_records_without_id():
    payload = [
        _record(None, line1="1 Missing St"),
        _record("", line1="2 Empty St"),
        {"Unit": {}},
        "garbage",
        _record(10, line1="3 Kept St", city="San Diego", state="CA", postal_code="92101"),
    ]

    options = transform.build_option_set(payload, BASE_URL)

    assert [option.listing_id for option in options] == ["10"]
    assert options[0].label == "3 Kept St San Diego, CA 92101"
    assert options[0].url == f"{BASE_URL}/10"


def test_build_option_set_sorts_by_label_and_is_stable():
    payload = [
        _record("c", line1="900 Zed Rd"),
        _record("a", address=False, unit_number="2"),
        _record("b", line1="100 Alpha St"),
        _record("d", address=False),
        _record("e", address=False),
    ]

    options = transform.build_option_set(payload, BASE_URL + "/")

    assert [option.label for option in options] == [
        "100 Alpha St",
        "900 Zed Rd",
        "Unit 2",
        "Unknown address",
        "Unknown address",
    ]
    assert [option.listing_id for option in options][-2:] == ["d", "e"]
    assert all(option.url == f"{BASE_URL}/{option.listing_id}" for option in options)


def test_build_option_set_non_list_payload(caplog):
    with caplog.at_level("WARNING"):
        assert transform.build_option_set({"error": "nope"}, BASE_URL) == []
    assert "not a list" in " ".join(caplog.messages)
