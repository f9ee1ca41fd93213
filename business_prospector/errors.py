"""Exception hierarchy shared by the Places client, the scraper and the orchestrator.

Every error raised by this package carries an explicit :class:`ErrorKind` so the
backoff controller can decide on retries without inspecting arbitrary fields.
"""

from __future__ import annotations

import asyncio
import enum
from typing import Optional

import requests

RETRYABLE_STATUS_CODES = frozenset({429, 503, 504})
RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again later."


class ErrorKind(str, enum.Enum):
    TRANSIENT_NETWORK = "transient_network"
    TRANSIENT_RATE_LIMIT = "transient_rate_limit"
    PERMANENT = "permanent"

    @property
    def is_transient(self) -> bool:
        return self is not ErrorKind.PERMANENT


class ProspectorError(RuntimeError):
    """Base class for every failure surfaced by the prospector core."""

    kind: ErrorKind = ErrorKind.PERMANENT

    def __init__(self, message: str, *, kind: Optional[ErrorKind] = None) -> None:
        super().__init__(message)
        if kind is not None:
            self.kind = kind


class InputValidationError(ProspectorError, ValueError):
    """Raised before any I/O when a required argument is empty or blank."""


class PlacesApiError(ProspectorError):
    """Raised when the Places API answers with a non-successful status."""

    def __init__(self, message: str, *, status: Optional[str] = None, kind: Optional[ErrorKind] = None) -> None:
        super().__init__(message, kind=kind)
        self.status = status


class BusinessNotFoundError(PlacesApiError):
    def __init__(self) -> None:
        super().__init__("Business not found", status="NOT_FOUND")


class RateLimitExceededError(ProspectorError):
    kind = ErrorKind.TRANSIENT_RATE_LIMIT

    def __init__(self, message: str = RATE_LIMIT_MESSAGE) -> None:
        super().__init__(message)
        self.status_code = 429


class TransportError(ProspectorError):
    """Network or HTTP failure talking to a remote service."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, kind: Optional[ErrorKind] = None) -> None:
        super().__init__(message, kind=kind)
        self.status_code = status_code


class RobotsDisallowedError(ProspectorError):
    def __init__(self) -> None:
        super().__init__("Scraping not allowed by robots.txt")


class ScrapingError(ProspectorError):
    """Raised when the Maps web UI does not render what the scraper expects."""


class ScrapingTimeoutError(ScrapingError):
    pass


class DetailsNotFoundError(ScrapingError):
    def __init__(self) -> None:
        super().__init__("Business details not found")


class InvalidRecordError(ProspectorError):
    """Raised when a normalized record fails the output schema."""


class NoSearchMethodsError(ProspectorError):
    def __init__(self) -> None:
        super().__init__("No search methods available. Please configure API key or enable scraping.")


class DetailsUnavailableError(ProspectorError):
    def __init__(self) -> None:
        super().__init__("Unable to fetch business details. No valid business ID or URL provided.")


def translate_request_error(exc: requests.RequestException, service: str) -> ProspectorError:
    """Map a raw ``requests`` failure onto a tagged :class:`ProspectorError`."""
    if isinstance(exc, requests.HTTPError):
        status_code = exc.response.status_code if exc.response is not None else None
        if status_code == 429:
            return RateLimitExceededError()
        kind = ErrorKind.TRANSIENT_NETWORK if status_code in RETRYABLE_STATUS_CODES else ErrorKind.PERMANENT
        return TransportError(f"{service} request failed with HTTP {status_code}", status_code=status_code, kind=kind)
    if isinstance(exc, (requests.Timeout, requests.ConnectionError)):
        return TransportError(f"{service} network error: {exc}", kind=ErrorKind.TRANSIENT_NETWORK)
    return TransportError(f"{service} request failed: {exc}", kind=ErrorKind.PERMANENT)


def is_retryable(exc: BaseException) -> bool:
    """Decide whether the backoff controller should try an operation again.

    Tagged errors are decided by their kind alone. Anything else falls back to
    HTTP status, exception type and a case-sensitive message check.
    """
    if isinstance(exc, ProspectorError):
        return exc.kind.is_transient

    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        if exc.response.status_code in RETRYABLE_STATUS_CODES:
            return True
    if isinstance(exc, (requests.Timeout, requests.ConnectionError)):
        return True
    if isinstance(exc, (ConnectionResetError, TimeoutError, asyncio.TimeoutError)):
        return True

    message = str(exc)
    return "timeout" in message or "network" in message
