import argparse
import json

import pytest

from business_prospector.core.config import MapsConfig, ScrapingConfig
from business_prospector.errors import NoSearchMethodsError
from business_prospector.jobs import search
from business_prospector.models import UnifiedBusinessDetails, UnifiedBusinessResult


class FakeMapsClient:
    instances = []

    def __init__(self, config):
        self.config = config
        self.calls = []
        self.cleaned = False
        self.error = None
        FakeMapsClient.instances.append(self)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.cleaned = True

    async def search_businesses(self, query, location, *, max_results, prefer_api):
        self.calls.append((query, location, max_results, prefer_api))
        if self.error is not None:
            raise self.error
        return [UnifiedBusinessResult(name="Acme", address="1 Main St", source="scraper")]

    async def get_business_details(self, business_id, business_url=None):
        self.calls.append((business_id, business_url))
        return UnifiedBusinessDetails(id=business_id, name="Acme", address="1 Main St", source="api")


@pytest.fixture(autouse=True)
def fake_client(monkeypatch):
    FakeMapsClient.instances = []
    monkeypatch.setattr(search, "MapsClient", FakeMapsClient)
    monkeypatch.setattr(search, "load_config", lambda: MapsConfig(google_places_api_key="key"))
    return FakeMapsClient


def test_build_parser_search_defaults():
    parser = search.build_parser()
    args = parser.parse_args(["search", "cleaning services", "Tampa, FL"])

    assert isinstance(parser, argparse.ArgumentParser)
    assert args.industry == "cleaning services"
    assert args.location == "Tampa, FL"
    assert args.max_results == 20
    assert args.prefer_api is None


def test_build_parser_source_preference():
    parser = search.build_parser()

    assert parser.parse_args(["search", "a", "b", "--prefer-api"]).prefer_api is True
    assert parser.parse_args(["search", "a", "b", "--prefer-scraper"]).prefer_api is False
    with pytest.raises(SystemExit):
        parser.parse_args(["search", "a", "b", "--prefer-api", "--prefer-scraper"])


def test_main_search_prints_results(capsys):
    exit_code = search.main(["search", "cleaning services", "Tampa, FL", "--max-results", "5", "--prefer-scraper"])

    assert exit_code == 0
    output = json.loads(capsys.readouterr().out)
    assert output[0]["name"] == "Acme"
    assert output[0]["source"] == "scraper"
    client = FakeMapsClient.instances[0]
    assert client.calls == [("cleaning services", "Tampa, FL", 5, False)]
    assert client.cleaned is True


def test_main_details_prints_record(capsys):
    exit_code = search.main(["details", "--place-id", "p1"])

    assert exit_code == 0
    assert json.loads(capsys.readouterr().out)["id"] == "p1"
    assert FakeMapsClient.instances[0].calls == [("p1", None)]


def test_main_status_reports_configured_pacing(capsys):
    assert search.main(["status"]) == 0

    assert json.loads(capsys.readouterr().out) == {
        "api_configured": True,
        "scraping_enabled": True,
        "use_api_first": True,
        "rate_limiting": {
            "requests_per_second": 10,
            "max_retries": 3,
            "base_delay_ms": 1000,
            "max_delay_ms": 30000,
            "backoff_multiplier": 2.0,
        },
    }
    assert FakeMapsClient.instances == []


def test_main_status_rejects_unusable_configuration(monkeypatch):
    config = MapsConfig(scraping=ScrapingConfig(enabled=False))
    monkeypatch.setattr(search, "load_config", lambda: config)

    assert search.main(["status"]) == 2


def test_main_reports_search_failure(monkeypatch):
    class FailingClient(FakeMapsClient):
        async def search_businesses(self, query, location, *, max_results, prefer_api):
            raise NoSearchMethodsError()

    monkeypatch.setattr(search, "MapsClient", FailingClient)

    assert search.main(["search", "plumbers", "Tampa"]) == 1


def test_main_reports_config_error(monkeypatch):
    monkeypatch.undo()
    monkeypatch.setattr(search, "load_config", lambda: MapsConfig(scraping=ScrapingConfig(enabled=False)))

    assert search.main(["search", "plumbers", "Tampa"]) == 2
