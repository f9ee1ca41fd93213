"""CLI job to find businesses by industry and location."""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from typing import List, Optional

from business_prospector.core.config import ConfigError, MapsConfig, load_config, validate_config
from business_prospector.core.maps_client import DEFAULT_MAX_RESULTS, MapsClient
from business_prospector.errors import ProspectorError

logger = logging.getLogger(__name__)


async def run_search(
    config: MapsConfig,
    *,
    industry: str,
    location: str,
    max_results: int = DEFAULT_MAX_RESULTS,
    prefer_api: Optional[bool] = None,
) -> List[dict]:
    async with MapsClient(config) as client:
        results = await client.search_businesses(industry, location, max_results=max_results, prefer_api=prefer_api)
    logger.info("Found %d businesses for %r in %r", len(results), industry, location)
    return [asdict(result) for result in results]


async def run_details(config: MapsConfig, *, place_id: Optional[str], url: Optional[str]) -> dict:
    async with MapsClient(config) as client:
        details = await client.get_business_details(place_id, url)
    return asdict(details)


def describe_config(config: MapsConfig) -> dict:
    """Summarize which sources are usable and how requests will be paced.

    The request queue lives inside a running client, so a one-shot command can
    only report the configured limits, not live queue depth.
    """
    errors = validate_config(config)
    if errors:
        raise ConfigError(f"Invalid configuration: {', '.join(errors)}")
    return {
        "api_configured": config.has_api_key,
        "scraping_enabled": config.scraping.enabled,
        "use_api_first": config.use_api_first,
        "rate_limiting": asdict(config.rate_limiting),
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="prospector",
        description="Find businesses for sales prospecting via Google Places with a Maps scraping fallback",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    search = subparsers.add_parser("search", help="Find businesses by industry and location")
    search.add_argument("industry", help='Industry to search for, e.g. "cleaning services"')
    search.add_argument("location", help='Location to search in, e.g. "Tampa, FL"')
    search.add_argument(
        "--max-results",
        dest="max_results",
        type=int,
        default=DEFAULT_MAX_RESULTS,
        help="Maximum number of businesses to return",
    )
    source = search.add_mutually_exclusive_group()
    source.add_argument("--prefer-api", dest="prefer_api", action="store_true", default=None)
    source.add_argument("--prefer-scraper", dest="prefer_api", action="store_false")

    details = subparsers.add_parser("details", help="Fetch details for one business")
    details.add_argument("--place-id", dest="place_id", help="Google Places place_id")
    details.add_argument("--url", dest="url", help="Google Maps place URL used by the scraper")

    subparsers.add_parser("status", help="Show available sources and the configured request pacing")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    args = build_parser().parse_args(argv)

    try:
        config = load_config()
        if args.command == "search":
            output = asyncio.run(
                run_search(
                    config,
                    industry=args.industry,
                    location=args.location,
                    max_results=args.max_results,
                    prefer_api=args.prefer_api,
                )
            )
        elif args.command == "details":
            output = asyncio.run(run_details(config, place_id=args.place_id, url=args.url))
        else:
            output = describe_config(config)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return 2
    except ProspectorError as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1

    json.dump(output, sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
