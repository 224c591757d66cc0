"""CLI job to run one place search and print the results as JSON."""

import argparse
import dataclasses
import json
import logging
import sys
from typing import List, Optional

from place_finder.core.config import ConfigError, get_settings
from place_finder.jobs.search import search_places

logger = logging.getLogger(__name__)


def run_search_job(*, query: str, detect_vendors: bool = False, max_detail_fetches: Optional[int] = None) -> List[dict]:
    settings = get_settings()
    overrides = {}
    if detect_vendors:
        overrides["vendor_detection_enabled"] = True
    if max_detail_fetches is not None:
        if max_detail_fetches < 0:
            raise ValueError("max_detail_fetches must not be negative")
        overrides["max_detail_fetches"] = max_detail_fetches
    if overrides:
        settings = dataclasses.replace(settings, **overrides)

    results = search_places(query, settings=settings)
    logger.info("Completed search: %d results", len(results))
    return [result.to_dict() for result in results]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Search Google Places for a business or place")
    parser.add_argument("query", help="Free-text query, e.g. 'starbucks.com' or 'coffee in Austin'")
    parser.add_argument(
        "--vendors",
        dest="detect_vendors",
        action="store_true",
        help="Detect the website platform of every result that has a website",
    )
    parser.add_argument(
        "--max-details",
        dest="max_detail_fetches",
        type=int,
        default=get_settings().max_detail_fetches,
        help="Maximum number of detail lookups per search term",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        results = run_search_job(
            query=args.query,
            detect_vendors=args.detect_vendors,
            max_detail_fetches=args.max_detail_fetches,
        )
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc
    except ValueError as exc:
        parser.error(str(exc))

    json.dump(results, sys.stdout, indent=2)
    sys.stdout.write("\n")


if __name__ == "__main__":
    main()
