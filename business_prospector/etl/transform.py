"""Utilities for turning source-native records into unified, provenance-tagged ones."""

from typing import Iterable, List

from business_prospector.models import (
    SOURCE_API,
    SOURCE_SCRAPER,
    PlaceDetails,
    PlaceSearchResult,
    ScrapedBusinessDetails,
    ScrapedBusinessResult,
    UnifiedBusinessDetails,
    UnifiedBusinessResult,
)


def from_place_result(result: PlaceSearchResult) -> UnifiedBusinessResult:
    return UnifiedBusinessResult(
        id=result.id,
        name=result.name,
        address=result.address,
        location=result.location,
        rating=result.rating,
        review_count=result.review_count,
        types=result.types,
        business_status=result.business_status,
        price_level=result.price_level,
        source=SOURCE_API,
    )


def from_scraped_result(result: ScrapedBusinessResult) -> UnifiedBusinessResult:
    return UnifiedBusinessResult(
        name=result.name,
        address=result.address,
        rating=result.rating,
        review_count=result.review_count,
        phone=result.phone,
        website=result.website,
        url=result.business_url,
        source=SOURCE_SCRAPER,
    )


def from_place_details(details: PlaceDetails) -> UnifiedBusinessDetails:
    return UnifiedBusinessDetails(
        id=details.id,
        name=details.name,
        address=details.address,
        location=details.location,
        phone=details.phone,
        website=details.website,
        opening_hours=details.opening_hours,
        rating=details.rating,
        review_count=details.review_count,
        reviews=details.reviews,
        source=SOURCE_API,
    )


def from_scraped_details(details: ScrapedBusinessDetails) -> UnifiedBusinessDetails:
    return UnifiedBusinessDetails(
        name=details.name,
        address=details.address,
        phone=details.phone,
        website=details.website,
        opening_hours=details.hours,
        rating=details.rating,
        review_count=details.review_count,
        price_level=details.price_level,
        photos=details.photos,
        source=SOURCE_SCRAPER,
    )


def unify_place_results(results: Iterable[PlaceSearchResult]) -> List[UnifiedBusinessResult]:
    return [from_place_result(result) for result in results]


def unify_scraped_results(results: Iterable[ScrapedBusinessResult]) -> List[UnifiedBusinessResult]:
    return [from_scraped_result(result) for result in results]
