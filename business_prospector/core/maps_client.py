"""Single entry point that picks a data source, falls back and normalizes results."""

from __future__ import annotations

import logging
from typing import List, Optional

from business_prospector.core.config import ConfigError, MapsConfig, validate_config
from business_prospector.core.rate_limiter import ExponentialBackoffRateLimiter, QueueStatus
from business_prospector.errors import (
    DetailsUnavailableError,
    InputValidationError,
    InvalidRecordError,
    NoSearchMethodsError,
    RobotsDisallowedError,
)
from business_prospector.etl import transform
from business_prospector.models import UnifiedBusinessDetails, UnifiedBusinessResult
from business_prospector.schemas import validate_business_details, validate_business_result
from business_prospector.vendors.google_places import GooglePlacesClient
from business_prospector.vendors.maps_scraper import GoogleMapsScraper

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 20

# Failures that mean "do not ask the other source either".
_NO_FALLBACK_ERRORS = (InputValidationError, RobotsDisallowedError)


class MapsClient:
    """Searches businesses through the Places API and/or the Maps scraper.

    One rate limiter is shared by both sources, so every outbound request
    waits in the same FIFO line and is retried with the same backoff policy.
    """

    def __init__(
        self,
        config: MapsConfig,
        *,
        rate_limiter: Optional[ExponentialBackoffRateLimiter] = None,
        places_client: Optional[GooglePlacesClient] = None,
        scraper: Optional[GoogleMapsScraper] = None,
    ) -> None:
        errors = validate_config(config)
        if errors:
            raise ConfigError(f"Invalid configuration: {', '.join(errors)}")

        self.config = config
        self._rate_limiter = rate_limiter or ExponentialBackoffRateLimiter(config.rate_limiting)

        self._places_client = places_client
        if self._places_client is None and config.has_api_key:
            self._places_client = GooglePlacesClient(config.google_places_api_key, rate_limiter=self._rate_limiter)

        self._scraper = scraper
        if self._scraper is None and config.scraping.enabled:
            self._scraper = GoogleMapsScraper(config.scraping, rate_limiter=self._rate_limiter)

    async def search_businesses(
        self,
        query: str,
        location: str,
        *,
        max_results: int = DEFAULT_MAX_RESULTS,
        prefer_api: Optional[bool] = None,
    ) -> List[UnifiedBusinessResult]:
        if not query or not query.strip():
            raise InputValidationError("Query is required")
        if not location or not location.strip():
            raise InputValidationError("Location is required")

        if prefer_api is None:
            prefer_api = self.config.use_api_first
        api_attempted = False

        if prefer_api and self._places_client is not None:
            api_attempted = True
            try:
                results = await self._search_with_api(query, location)
            except Exception as exc:
                logger.warning("API search failed, falling back to scraper: %s", exc)
            else:
                if results or self._scraper is None:
                    return self._finalize(results, max_results)
                logger.info("API search returned no results for %r in %r; trying scraper", query, location)

        if self._scraper is not None:
            try:
                results = await self._search_with_scraper(query, location)
            except _NO_FALLBACK_ERRORS:
                raise
            except Exception as exc:
                if api_attempted or self._places_client is None:
                    raise
                logger.warning("Scraper search failed, falling back to API: %s", exc)
                results = await self._search_with_api(query, location)
            return self._finalize(results, max_results)

        if not api_attempted and self._places_client is not None:
            return self._finalize(await self._search_with_api(query, location), max_results)

        raise NoSearchMethodsError()

    async def get_business_details(
        self,
        business_id: Optional[str],
        business_url: Optional[str] = None,
    ) -> UnifiedBusinessDetails:
        if business_id and business_id.strip() and self._places_client is not None:
            try:
                details = await self._rate_limiter.retry_with_backoff(
                    lambda: self._places_client.get_business_details(business_id)
                )
                return self._checked_details(transform.from_place_details(details))
            except Exception as exc:
                logger.warning("API details fetch failed for %s, trying scraper: %s", business_id, exc)

        if business_url and business_url.strip() and self._scraper is not None:
            try:
                details = await self._rate_limiter.retry_with_backoff(
                    lambda: self._scraper.get_business_details(business_url)
                )
            except Exception as exc:
                logger.warning("Scraper details fetch failed for %s: %s", business_url, exc)
                raise
            return self._checked_details(transform.from_scraped_details(details))

        raise DetailsUnavailableError()

    async def cleanup(self) -> None:
        if self._scraper is not None:
            await self._scraper.cleanup()

    def get_queue_status(self) -> QueueStatus:
        return self._rate_limiter.get_queue_status()

    async def __aenter__(self) -> "MapsClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.cleanup()

    # ---------- Internals ----------

    async def _search_with_api(self, query: str, location: str) -> List[UnifiedBusinessResult]:
        results = await self._rate_limiter.retry_with_backoff(
            lambda: self._places_client.search_businesses(query, location)
        )
        return transform.unify_place_results(results)

    async def _search_with_scraper(self, query: str, location: str) -> List[UnifiedBusinessResult]:
        results = await self._rate_limiter.retry_with_backoff(lambda: self._scraper.search_businesses(query, location))
        return transform.unify_scraped_results(results)

    @staticmethod
    def _checked_details(details: UnifiedBusinessDetails) -> UnifiedBusinessDetails:
        outcome = validate_business_details(details)
        if not outcome.is_valid:
            raise InvalidRecordError(f"Invalid {details.source} business details: {', '.join(outcome.errors)}")
        return details

    @staticmethod
    def _finalize(results: List[UnifiedBusinessResult], max_results: int) -> List[UnifiedBusinessResult]:
        accepted = []
        for result in results:
            outcome = validate_business_result(result)
            if not outcome.is_valid:
                logger.debug("Dropping invalid %s result %r: %s", result.source, result.name, outcome.errors)
                continue
            accepted.append(result)
        return accepted[:max_results]
