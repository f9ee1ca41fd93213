"""Core data models shared by the Places client, the Maps scraper and the orchestrator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Union

SOURCE_API = "api"
SOURCE_SCRAPER = "scraper"


@dataclass(slots=True)
class GeoLocation:
    latitude: float
    longitude: float


@dataclass(slots=True)
class ReviewExcerpt:
    rating: Optional[float]
    text: Optional[str]
    time: Optional[int]


# ---------- Google Places API ----------


@dataclass(slots=True)
class PlaceSearchResult:
    """Text search hit as returned by the Places API, with the API's guarantees."""

    id: str
    name: str
    address: str
    location: GeoLocation
    rating: Optional[float] = None
    review_count: Optional[int] = None
    types: Optional[List[str]] = None
    business_status: Optional[str] = None
    price_level: Optional[int] = None


@dataclass(slots=True)
class PlaceDetails:
    id: str
    name: str
    address: str
    location: Optional[GeoLocation] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    opening_hours: Optional[List[str]] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    reviews: Optional[List[ReviewExcerpt]] = None


# ---------- Google Maps scraper ----------


@dataclass(slots=True)
class ScrapedBusinessResult:
    name: str
    address: str
    rating: Optional[float] = None
    review_count: Optional[int] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    business_url: Optional[str] = None


@dataclass(slots=True)
class ScrapedBusinessDetails:
    name: str
    address: str
    phone: Optional[str] = None
    website: Optional[str] = None
    hours: Optional[List[str]] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    price_level: Optional[str] = None
    photos: Optional[List[str]] = None


# ---------- Unified ----------


@dataclass(slots=True)
class UnifiedBusinessResult:
    """Source-agnostic business record tagged with where it came from."""

    name: str
    address: str
    source: str
    id: Optional[str] = None
    location: Optional[GeoLocation] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    types: Optional[List[str]] = None
    business_status: Optional[str] = None
    price_level: Optional[Union[int, str]] = None
    url: Optional[str] = None


@dataclass(slots=True)
class UnifiedBusinessDetails(UnifiedBusinessResult):
    opening_hours: Optional[List[str]] = None
    reviews: Optional[List[ReviewExcerpt]] = None
    photos: Optional[List[str]] = None
