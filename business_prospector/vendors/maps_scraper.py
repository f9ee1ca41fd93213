"""Google Maps web UI scraper used when the Places API is missing or failing."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Dict, List, Optional
from urllib.parse import quote_plus

import requests
from bs4 import BeautifulSoup
from playwright.async_api import Browser, Page, Playwright, Route, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from business_prospector.core.config import ScrapingConfig
from business_prospector.errors import (
    DetailsNotFoundError,
    ErrorKind,
    InputValidationError,
    RobotsDisallowedError,
    ScrapingTimeoutError,
    TransportError,
)
from business_prospector.models import ScrapedBusinessDetails, ScrapedBusinessResult
from business_prospector.vendors.google_places import RateLimiter

logger = logging.getLogger(__name__)

MAPS_SEARCH_URL = "https://www.google.com/maps/search/"
ROBOTS_URL = "https://www.google.com/robots.txt"
ROBOTS_TIMEOUT = 5
ROBOTS_AGENTS = {"*", "googlebot"}
BLOCKING_PATHS = {"/maps", "/"}
BLOCKED_RESOURCE_TYPES = {"image", "stylesheet", "font", "media"}
BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
]

RESULTS_SELECTOR = '[data-value="Search results"]'
RESULT_ITEM_SELECTOR = "[data-result-index]"
NAME_SELECTOR = '[data-value="Business name"]'
ADDRESS_SELECTOR = '[data-value="Address"]'
RATING_SELECTOR = '[data-value="Rating"]'
REVIEWS_SELECTOR = '[data-value="Reviews"]'
PHONE_SELECTOR = '[data-value="Phone"]'
WEBSITE_SELECTOR = '[data-value="Website"]'
PLACE_LINK_SELECTOR = 'a[href*="/place/"]'
HOURS_SELECTOR = '[data-value*="hours"]'
PRICE_LEVEL_SELECTOR = '[data-value="Price level"]'
PHOTO_SELECTOR = '[data-value="Photo"] img'

_LEADING_NUMBER = re.compile(r"^\s*([+-]?\d+(?:\.\d+)?)")


def build_search_url(query: str, location: str) -> str:
    return MAPS_SEARCH_URL + quote_plus(f"{query} {location}")


def robots_allows(robots_txt: str) -> bool:
    """Return False when a group for ``*`` or GoogleBot disallows ``/maps`` or ``/``.

    Only exact path values block; prefixes such as ``/maps/api`` do not.
    """
    agents: List[str] = []
    in_rules = False
    for raw_line in robots_txt.splitlines():
        line = raw_line.split("#", 1)[0].strip()
        if ":" not in line:
            continue
        key, _, value = line.partition(":")
        key = key.strip().lower()
        value = value.strip()

        if key == "user-agent":
            if in_rules:
                agents = []
                in_rules = False
            agents.append(value.lower())
        elif key in {"disallow", "allow"}:
            in_rules = True
            if key == "disallow" and value in BLOCKING_PATHS and ROBOTS_AGENTS.intersection(agents):
                return False
    return True


def _text(node: Any, selector: str) -> Optional[str]:
    element = node.select_one(selector)
    if element is None:
        return None
    return element.get_text(strip=True) or None


def _attr(node: Any, selector: str, attribute: str) -> Optional[str]:
    element = node.select_one(selector)
    if element is None:
        return None
    return element.get(attribute) or None


def extract_search_results(html: str) -> List[Dict[str, Any]]:
    """Pull one raw record per rendered result card that has a name and an address."""
    soup = BeautifulSoup(html, "html.parser")
    records: List[Dict[str, Any]] = []
    for card in soup.select(RESULT_ITEM_SELECTOR):
        name = _text(card, NAME_SELECTOR)
        address = _text(card, ADDRESS_SELECTOR)
        if not name or not address:
            continue
        records.append(
            {
                "name": name,
                "address": address,
                "rating": _text(card, RATING_SELECTOR),
                "review_count": _text(card, REVIEWS_SELECTOR),
                "phone": _text(card, PHONE_SELECTOR),
                "website": _attr(card, WEBSITE_SELECTOR, "href"),
                "business_url": _attr(card, PLACE_LINK_SELECTOR, "href"),
            }
        )
    return records


def extract_business_details(html: str) -> Optional[Dict[str, Any]]:
    soup = BeautifulSoup(html, "html.parser")
    name = _text(soup, NAME_SELECTOR)
    address = _text(soup, ADDRESS_SELECTOR)
    if not name or not address:
        return None

    hours = [element.get_text(strip=True) for element in soup.select(HOURS_SELECTOR)]
    photos = [img.get("src") for img in soup.select(PHOTO_SELECTOR)]
    return {
        "name": name,
        "address": address,
        "phone": _text(soup, PHONE_SELECTOR),
        "website": _attr(soup, WEBSITE_SELECTOR, "href"),
        "rating": _text(soup, RATING_SELECTOR),
        "review_count": _text(soup, REVIEWS_SELECTOR),
        "hours": [entry for entry in hours if entry],
        "price_level": _text(soup, PRICE_LEVEL_SELECTOR),
        "photos": [src for src in photos if src],
    }


def _safe_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    match = _LEADING_NUMBER.match(str(value))
    if not match:
        return None
    return float(match.group(1))


def _safe_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    digits = "".join(ch for ch in str(value) if ch.isdigit())
    return int(digits) if digits else None


def to_scraped_result(raw: Dict[str, Any]) -> ScrapedBusinessResult:
    return ScrapedBusinessResult(
        name=raw["name"],
        address=raw["address"],
        rating=_safe_float(raw.get("rating")),
        review_count=_safe_int(raw.get("review_count")),
        phone=raw.get("phone") or None,
        website=raw.get("website") or None,
        business_url=raw.get("business_url") or None,
    )


def to_scraped_details(raw: Dict[str, Any]) -> ScrapedBusinessDetails:
    return ScrapedBusinessDetails(
        name=raw["name"],
        address=raw["address"],
        phone=raw.get("phone") or None,
        website=raw.get("website") or None,
        hours=raw.get("hours") or None,
        rating=_safe_float(raw.get("rating")),
        review_count=_safe_int(raw.get("review_count")),
        price_level=raw.get("price_level") or None,
        photos=raw.get("photos") or None,
    )


async def _block_heavy_resources(route: Route) -> None:
    if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
        await route.abort()
    else:
        await route.continue_()


class GoogleMapsScraper:
    """Drives one shared headless Chromium to read businesses off Google Maps."""

    def __init__(
        self,
        config: Optional[ScrapingConfig] = None,
        rate_limiter: Optional[RateLimiter] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config or ScrapingConfig()
        self._rate_limiter = rate_limiter
        self._session = session or requests.Session()
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._launching: Optional[asyncio.Task] = None

    async def search_businesses(self, query: str, location: str) -> List[ScrapedBusinessResult]:
        if not query or not query.strip():
            raise InputValidationError("Query is required")
        if not location or not location.strip():
            raise InputValidationError("Location is required")

        await self._check_robots()

        page = await self._open_page()
        try:
            url = build_search_url(query, location)
            logger.info("Scraping Maps search %s", url)
            await self._goto(page, url)
            await self._wait_for(page, RESULTS_SELECTOR, "search results")
            records = extract_search_results(await page.content())
        finally:
            await page.close()

        logger.info("Extracted %d businesses from Maps search", len(records))
        return [to_scraped_result(record) for record in records]

    async def get_business_details(self, business_url: str) -> ScrapedBusinessDetails:
        if not business_url or not business_url.strip():
            raise InputValidationError("Business URL is required")

        page = await self._open_page()
        try:
            await self._goto(page, business_url)
            await self._wait_for(page, NAME_SELECTOR, "business name")
            details = extract_business_details(await page.content())
        finally:
            await page.close()

        if details is None:
            raise DetailsNotFoundError()
        return to_scraped_details(details)

    async def cleanup(self) -> None:
        if self._launching is not None and not self._launching.done():
            await asyncio.wait([self._launching])
        self._launching = None
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    async def __aenter__(self) -> "GoogleMapsScraper":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.cleanup()

    # ---------- Internals ----------

    async def _check_robots(self) -> None:
        if not self.config.respect_robots:
            return
        try:
            response = await asyncio.to_thread(
                self._session.get,
                ROBOTS_URL,
                headers={"User-Agent": self.config.user_agent},
                timeout=ROBOTS_TIMEOUT,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Could not fetch robots.txt from %s, proceeding: %s", ROBOTS_URL, exc)
            return
        if not robots_allows(response.text):
            raise RobotsDisallowedError()

    async def _launch_browser(self) -> Browser:
        if self._browser is not None:
            return self._browser
        if self._launching is None:
            self._launching = asyncio.ensure_future(self._start_browser())
        launching = self._launching
        try:
            return await asyncio.shield(launching)
        except Exception:
            if self._launching is launching:
                self._launching = None
            raise

    async def _start_browser(self) -> Browser:
        logger.info("Launching Chromium (headless=%s)", self.config.headless)
        playwright = await async_playwright().start()
        try:
            browser = await playwright.chromium.launch(headless=self.config.headless, args=BROWSER_ARGS)
        except Exception:
            await playwright.stop()
            raise
        self._playwright = playwright
        self._browser = browser
        return browser

    async def _open_page(self) -> Page:
        if self._rate_limiter is not None:
            await self._rate_limiter.wait_for_next_request()
        browser = await self._launch_browser()
        page = await browser.new_page(user_agent=self.config.user_agent, viewport=self.config.viewport)
        try:
            page.set_default_timeout(self.config.timeout_ms)
            page.set_default_navigation_timeout(self.config.timeout_ms)
            await page.route("**/*", _block_heavy_resources)
        except Exception:
            await page.close()
            raise
        return page

    async def _goto(self, page: Page, url: str) -> None:
        try:
            await page.goto(url, wait_until="networkidle")
        except PlaywrightError as exc:
            raise TransportError(f"Google Maps navigation failed: {exc}", kind=ErrorKind.TRANSIENT_NETWORK) from exc

    async def _wait_for(self, page: Page, selector: str, label: str) -> None:
        try:
            await page.wait_for_selector(selector, timeout=self.config.timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise ScrapingTimeoutError(
                f"Timed out after {self.config.timeout_ms}ms waiting for {label}"
            ) from exc
