import asyncio

import pytest

from business_prospector.core.config import ConfigError
from business_prospector.core.rate_limiter import QueueStatus
from business_prospector.errors import InputValidationError, NoSearchMethodsError
from business_prospector.jobs import server
from business_prospector.models import UnifiedBusinessDetails, UnifiedBusinessResult


class FakeMapsClient:
    def __init__(self):
        self.calls = []
        self.search_error = None

    async def search_businesses(self, query, location, *, max_results, prefer_api):
        self.calls.append(("search", query, location, max_results, prefer_api))
        if self.search_error is not None:
            raise self.search_error
        return [UnifiedBusinessResult(id="p1", name="Acme", address="1 Main St", source="api")]

    async def get_business_details(self, business_id, business_url=None):
        self.calls.append(("details", business_id, business_url))
        return UnifiedBusinessDetails(name="Acme", address="1 Main St", source="scraper", photos=["a.jpg"])

    def get_queue_status(self):
        return QueueStatus(queue_length=2, processing=True, requests_per_second=10)


@pytest.fixture(autouse=True)
def fake_client(monkeypatch):
    client = FakeMapsClient()
    monkeypatch.setattr(server, "_get_client", lambda: client)
    monkeypatch.setattr(server, "_run", asyncio.run)
    return client


def test_health_endpoint():
    response = server.app.test_client().get("/healthz")
    assert response.status_code == 200
    assert response.get_json()["status"] == "ok"


def test_queue_status_endpoint():
    response = server.app.test_client().get("/queue-status")
    assert response.status_code == 200
    assert response.get_json()["data"] == {"queue_length": 2, "processing": True, "requests_per_second": 10}


def test_search_validates_payload(fake_client):
    client = server.app.test_client()

    assert client.post("/search", json={}).status_code == 400
    assert client.post("/search", json={"industry": "plumbers", "location": " "}).status_code == 400
    assert client.post("/search", json={"industry": "plumbers", "location": "Tampa", "max_results": "bad"}).status_code == 400
    assert client.post("/search", json={"industry": "plumbers", "location": "Tampa", "max_results": 0}).status_code == 400
    assert fake_client.calls == []


def test_search_returns_results(fake_client):
    response = server.app.test_client().post(
        "/search",
        json={"industry": " plumbers ", "location": "Tampa, FL", "max_results": 5, "prefer_api": False},
    )

    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data[0]["id"] == "p1"
    assert data[0]["source"] == "api"
    assert fake_client.calls == [("search", "plumbers", "Tampa, FL", 5, False)]


def test_search_defaults(fake_client):
    server.app.test_client().post("/search", json={"industry": "plumbers", "location": "Tampa"})

    assert fake_client.calls == [("search", "plumbers", "Tampa", 20, None)]


def test_search_failure_maps_to_bad_gateway(fake_client):
    fake_client.search_error = NoSearchMethodsError()

    response = server.app.test_client().post("/search", json={"industry": "plumbers", "location": "Tampa"})

    assert response.status_code == 502
    assert "No search methods available" in response.get_json()["error"]


def test_search_validation_error_maps_to_bad_request(fake_client):
    fake_client.search_error = InputValidationError("Query is required")

    response = server.app.test_client().post("/search", json={"industry": "plumbers", "location": "Tampa"})

    assert response.status_code == 400


def test_details_requires_identifier():
    assert server.app.test_client().post("/details", json={}).status_code == 400


def test_details_returns_record(fake_client):
    response = server.app.test_client().post("/details", json={"url": "https://maps.example/place"})

    assert response.status_code == 200
    assert response.get_json()["data"]["photos"] == ["a.jpg"]
    assert fake_client.calls == [("details", None, "https://maps.example/place")]


@pytest.mark.parametrize("prefer_api", ["false", 0, 1, "yes"])
def test_search_rejects_non_boolean_prefer_api(fake_client, prefer_api):
    response = server.app.test_client().post(
        "/search",
        json={"industry": "plumbers", "location": "Tampa", "prefer_api": prefer_api},
    )

    assert response.status_code == 400
    assert response.get_json()["error"] == "prefer_api must be a boolean"
    assert fake_client.calls == []


def test_configuration_errors_are_reported_as_json(monkeypatch):
    def broken_client():
        raise ConfigError("Invalid configuration: Either Google Places API key or web scraping must be enabled")

    monkeypatch.setattr(server, "_get_client", broken_client)
    client = server.app.test_client()

    responses = [
        client.post("/search", json={"industry": "plumbers", "location": "Tampa"}),
        client.post("/details", json={"place_id": "p1"}),
        client.get("/queue-status"),
    ]

    for response in responses:
        assert response.status_code == 500
        assert response.get_json()["error"].startswith("Invalid configuration")
