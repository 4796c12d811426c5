"""CLI job that prints the listing options the funnel page would show."""

import argparse
import json
import logging
import sys
from dataclasses import asdict
from typing import List, Optional

from rental_funnel.core.config import get_settings
from rental_funnel.core.models import ListingOption
from rental_funnel.etl.transform import build_option_set
from rental_funnel.vendors.listings_api import ListingsApiError, get_listings_json

logger = logging.getLogger(__name__)


def load_options(upstream_url: str, listing_base_url: str, timeout: Optional[float] = None) -> List[ListingOption]:
    payload = get_listings_json(upstream_url, timeout=timeout)
    options = build_option_set(payload, listing_base_url)
    logger.info("Built %d listing options from %s", len(options), upstream_url)
    return options


def render_options(options: List[ListingOption], as_json: bool = False) -> str:
    if as_json:
        return json.dumps([asdict(option) for option in options], indent=2)
    return "\n".join(f"{option.label}\t{option.url}" for option in options)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Print live listing options for the rental funnel")
    parser.add_argument(
        "--upstream",
        dest="upstream_url",
        default=get_settings().listings_upstream_url,
        help="Listings feed to read (defaults to LISTINGS_UPSTREAM_URL)",
    )
    parser.add_argument("--json", dest="as_json", action="store_true", help="Emit a JSON array instead of lines")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    args = build_parser().parse_args(argv)
    settings = get_settings()

    try:
        options = load_options(args.upstream_url, settings.listing_base_url, timeout=settings.request_timeout)
    except ListingsApiError as exc:
        logger.error("Could not load listings: %s", exc)
        return 1

    output = render_options(options, as_json=args.as_json)
    if output:
        print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
