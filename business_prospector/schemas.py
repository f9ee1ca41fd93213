"""Pydantic gate applied to unified records before they leave the orchestrator."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, is_dataclass
from typing import Any, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, Field, ValidationError, model_validator

from business_prospector.models import SOURCE_API


class GeoLocationSchema(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class BusinessResultSchema(BaseModel):
    """Shape every search result must have, whichever source produced it."""

    id: Optional[str] = None
    name: str = Field(..., min_length=1, description="Business name")
    address: str = Field(..., min_length=1, description="Formatted address")
    location: Optional[GeoLocationSchema] = None
    rating: Optional[float] = Field(None, ge=0, le=5, description="Star rating (0-5)")
    review_count: Optional[int] = Field(None, ge=0)
    phone: Optional[str] = None
    website: Optional[str] = None
    types: Optional[List[str]] = None
    business_status: Optional[str] = None
    price_level: Optional[Union[int, str]] = None
    url: Optional[str] = None
    source: Literal["api", "scraper"]

    @model_validator(mode="after")
    def _api_results_have_id(self) -> "BusinessResultSchema":
        if self.source == SOURCE_API and not self.id:
            raise ValueError("id is required for api results")
        return self


class ReviewSchema(BaseModel):
    rating: Optional[float] = Field(None, ge=0, le=5)
    text: Optional[str] = None
    time: Optional[int] = None


class BusinessDetailsSchema(BusinessResultSchema):
    opening_hours: Optional[List[str]] = None
    reviews: Optional[List[ReviewSchema]] = None
    photos: Optional[List[str]] = None


@dataclass(frozen=True)
class ValidationOutcome:
    is_valid: bool
    errors: List[str] = field(default_factory=list)


def _as_mapping(record: Any) -> Mapping[str, Any]:
    if is_dataclass(record) and not isinstance(record, type):
        return asdict(record)
    return record


def _validate(schema: type, record: Any) -> ValidationOutcome:
    try:
        schema.model_validate(_as_mapping(record))
    except ValidationError as exc:
        errors = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error["loc"]) or "record"
            errors.append(f"{location}: {error['msg']}")
        return ValidationOutcome(is_valid=False, errors=errors)
    return ValidationOutcome(is_valid=True)


def validate_business_result(record: Any) -> ValidationOutcome:
    return _validate(BusinessResultSchema, record)

def validate_business_details(record: Any) -> ValidationOutcome:
    return _validate(BusinessDetailsSchema, record)
