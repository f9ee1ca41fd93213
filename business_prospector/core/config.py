"""Application configuration helpers.

Settings are read from the environment once by the entrypoints and then passed
explicitly to :class:`business_prospector.core.maps_client.MapsClient`; nothing in the
core reads environment state on its own.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from dotenv import load_dotenv

from business_prospector.errors import ProspectorError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class ConfigError(ProspectorError):
    """Raised when the configuration cannot drive any search."""


@dataclass(frozen=True)
class ScrapingConfig:
    enabled: bool = True
    headless: bool = True
    timeout_ms: int = 30000
    max_retries: int = 3
    respect_robots: bool = True
    user_agent: str = DEFAULT_USER_AGENT
    viewport_width: int = 1920
    viewport_height: int = 1080

    @property
    def viewport(self) -> Dict[str, int]:
        return {"width": self.viewport_width, "height": self.viewport_height}


@dataclass(frozen=True)
class RateLimitingConfig:
    requests_per_second: float = 10
    max_retries: int = 3
    base_delay_ms: float = 1000
    max_delay_ms: float = 30000
    backoff_multiplier: float = 2.0


@dataclass(frozen=True)
class MapsConfig:
    google_places_api_key: Optional[str] = None
    use_api_first: bool = True
    scraping: ScrapingConfig = field(default_factory=ScrapingConfig)
    rate_limiting: RateLimitingConfig = field(default_factory=RateLimitingConfig)

    @property
    def has_api_key(self) -> bool:
        return bool(self.google_places_api_key)


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes"}


def _parse_int(value: Optional[str], default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Ignoring non-integer config value %r; using %s", value, default)
        return default


def _parse_float(value: Optional[str], default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("Ignoring non-numeric config value %r; using %s", value, default)
        return default


def load_config() -> MapsConfig:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    api_key = os.getenv("GOOGLE_PLACES_API_KEY") or None
    if not api_key:
        logger.warning("GOOGLE_PLACES_API_KEY is not configured; only scraping will be available.")

    scraping = ScrapingConfig(
        enabled=_parse_bool(os.getenv("SCRAPING_ENABLED"), True),
        headless=_parse_bool(os.getenv("SCRAPING_HEADLESS"), True),
        timeout_ms=_parse_int(os.getenv("SCRAPING_TIMEOUT"), 30000),
        max_retries=_parse_int(os.getenv("SCRAPING_MAX_RETRIES"), 3),
        respect_robots=_parse_bool(os.getenv("SCRAPING_RESPECT_ROBOTS"), True),
        user_agent=os.getenv("SCRAPING_USER_AGENT") or DEFAULT_USER_AGENT,
        viewport_width=_parse_int(os.getenv("SCRAPING_VIEWPORT_WIDTH"), 1920),
        viewport_height=_parse_int(os.getenv("SCRAPING_VIEWPORT_HEIGHT"), 1080),
    )
    rate_limiting = RateLimitingConfig(
        requests_per_second=_parse_float(os.getenv("RATE_LIMIT_REQUESTS_PER_SECOND"), 10),
        max_retries=_parse_int(os.getenv("RATE_LIMIT_MAX_RETRIES"), 3),
        base_delay_ms=_parse_float(os.getenv("RATE_LIMIT_BASE_DELAY"), 1000),
        max_delay_ms=_parse_float(os.getenv("RATE_LIMIT_MAX_DELAY"), 30000),
        backoff_multiplier=_parse_float(os.getenv("RATE_LIMIT_BACKOFF_MULTIPLIER"), 2.0),
    )

    return MapsConfig(
        google_places_api_key=api_key,
        use_api_first=_parse_bool(os.getenv("USE_API_FIRST"), True),
        scraping=scraping,
        rate_limiting=rate_limiting,
    )


def validate_config(config: MapsConfig) -> List[str]:
    """Return every problem found in ``config``; an empty list means it is usable."""
    errors: List[str] = []

    if not config.has_api_key and not config.scraping.enabled:
        errors.append("Either Google Places API key or web scraping must be enabled")

    limits = config.rate_limiting
    if limits.requests_per_second <= 0:
        errors.append("Rate limiting requests per second must be positive")
    if limits.max_retries < 0:
        errors.append("Rate limiting max retries must be non-negative")
    if limits.base_delay_ms <= 0:
        errors.append("Rate limiting base delay must be positive")
    if limits.max_delay_ms <= 0:
        errors.append("Rate limiting max delay must be positive")
    if limits.backoff_multiplier <= 1:
        errors.append("Rate limiting backoff multiplier must be greater than 1")

    scraping = config.scraping
    if scraping.enabled:
        if scraping.timeout_ms <= 0:
            errors.append("Scraping timeout must be positive")
        if scraping.max_retries < 0:
            errors.append("Scraping max retries must be non-negative")
        if not scraping.user_agent or not scraping.user_agent.strip():
            errors.append("Scraping user agent is required")
        if scraping.viewport_width <= 0 or scraping.viewport_height <= 0:
            errors.append("Scraping viewport dimensions must be positive")

    return errors
