"""Client for the Google Places text search and details endpoints."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Protocol

import requests

from business_prospector.errors import (
    BusinessNotFoundError,
    InputValidationError,
    PlacesApiError,
    translate_request_error,
)
from business_prospector.models import GeoLocation, PlaceDetails, PlaceSearchResult, ReviewExcerpt

logger = logging.getLogger(__name__)

_BASE_URL = "https://maps.googleapis.com/maps/api/place"
_REQUEST_TIMEOUT = 10
_DETAIL_FIELDS = (
    "place_id,name,formatted_address,formatted_phone_number,website,"
    "opening_hours,rating,user_ratings_total,reviews,geometry"
)


class RateLimiter(Protocol):
    async def wait_for_next_request(self) -> None:
        ...


class DefaultRateLimiter:
    """Keeps at least ``min_interval_ms`` between two requests of one client."""

    def __init__(self, min_interval_ms: float = 100) -> None:
        self.min_interval_ms = min_interval_ms
        self._last_request = 0.0

    async def wait_for_next_request(self) -> None:
        # Reserve the slot before sleeping so concurrent callers queue up behind it.
        now = time.monotonic()
        slot = max(now, self._last_request + self.min_interval_ms / 1000)
        self._last_request = slot
        if slot > now:
            await asyncio.sleep(slot - now)


def _require(value: Optional[str], label: str) -> str:
    if not value or not value.strip():
        raise InputValidationError(f"{label} is required")
    return value


class GooglePlacesClient:
    def __init__(
        self,
        api_key: str,
        rate_limiter: Optional[RateLimiter] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._api_key = _require(api_key, "API key")
        self._rate_limiter = rate_limiter or DefaultRateLimiter()
        self._session = session or requests.Session()

    async def search_businesses(self, query: str, location: str) -> List[PlaceSearchResult]:
        _require(query, "Query")
        _require(location, "Location")

        await self._rate_limiter.wait_for_next_request()
        params = {"query": f"{query} in {location}", "key": self._api_key, "type": "establishment"}
        payload = await self._get("textsearch", params)

        status = payload.get("status")
        if status == "ZERO_RESULTS":
            return []
        if status != "OK":
            raise self._status_error("text_search", payload)

        return [_to_search_result(raw) for raw in payload.get("results") or [] if _is_complete(raw)]

    async def get_business_details(self, place_id: str) -> PlaceDetails:
        _require(place_id, "Place ID")

        await self._rate_limiter.wait_for_next_request()
        params = {"place_id": place_id, "key": self._api_key, "fields": _DETAIL_FIELDS}
        payload = await self._get("details", params)

        status = payload.get("status")
        if status == "NOT_FOUND":
            raise BusinessNotFoundError()
        if status != "OK":
            raise self._status_error("place_details", payload)

        result = payload.get("result") or {}
        if not result.get("name") or not result.get("formatted_address"):
            logger.error("place_details returned no name or address for %s", place_id)
            raise BusinessNotFoundError()
        return _to_details(result)

    async def _get(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{_BASE_URL}/{endpoint}/json"
        try:
            response = await asyncio.to_thread(self._session.get, url, params=params, timeout=_REQUEST_TIMEOUT)
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.error("%s request failed: %s", endpoint, exc)
            raise translate_request_error(exc, "Google Places") from exc
        return response.json()

    @staticmethod
    def _status_error(operation: str, payload: Dict[str, Any]) -> PlacesApiError:
        status = payload.get("status")
        error_message = payload.get("error_message")
        logger.error("%s failed: status=%s, error_message=%s", operation, status, error_message)
        if status == "REQUEST_DENIED":
            return PlacesApiError(f"Google Places API error: {error_message}", status=status)
        return PlacesApiError(f"Google Places API error: {error_message or status}", status=status)


def _is_complete(raw: Any) -> bool:
    if not isinstance(raw, dict):
        return False
    location = (raw.get("geometry") or {}).get("location") or {}
    return bool(
        raw.get("place_id")
        and raw.get("name")
        and raw.get("formatted_address")
        and location.get("lat") is not None
        and location.get("lng") is not None
    )


def _to_search_result(raw: Dict[str, Any]) -> PlaceSearchResult:
    location = raw["geometry"]["location"]
    return PlaceSearchResult(
        id=raw["place_id"],
        name=raw["name"],
        address=raw["formatted_address"],
        location=GeoLocation(latitude=location["lat"], longitude=location["lng"]),
        rating=raw.get("rating"),
        review_count=raw.get("user_ratings_total"),
        types=raw.get("types"),
        business_status=raw.get("business_status"),
        price_level=raw.get("price_level"),
    )


def _to_details(raw: Dict[str, Any]) -> PlaceDetails:
    geometry = (raw.get("geometry") or {}).get("location") or {}
    location = None
    if geometry.get("lat") is not None and geometry.get("lng") is not None:
        location = GeoLocation(latitude=geometry["lat"], longitude=geometry["lng"])

    reviews = raw.get("reviews")
    return PlaceDetails(
        id=raw.get("place_id"),
        name=raw.get("name"),
        address=raw.get("formatted_address"),
        location=location,
        phone=raw.get("formatted_phone_number"),
        website=raw.get("website"),
        opening_hours=(raw.get("opening_hours") or {}).get("weekday_text"),
        rating=raw.get("rating"),
        review_count=raw.get("user_ratings_total"),
        reviews=[
            ReviewExcerpt(rating=review.get("rating"), text=review.get("text"), time=review.get("time"))
            for review in reviews
        ]
        if reviews is not None
        else None,
    )
