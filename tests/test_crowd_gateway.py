import asyncio
from typing import Dict, List

import httpx
import pytest

from trip_optimizer.tools.crowd_gateway import (
    CrowdForecast,
    HttpCrowdGateway,
    StaticCrowdGateway,
    fetch_forecast,
)


class DummyResponse:
    def __init__(self, status_code: int, payload=None):
        self.status_code = status_code
        self._payload = payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise RuntimeError(f"HTTP {self.status_code}")
        return None

    def json(self):
        return self._payload


class DummyAsyncClient:
    def __init__(self, response: DummyResponse, requests: List[tuple], *args, **kwargs):
        self.response = response
        self.requests = requests

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    async def get(self, url, params=None, headers=None):
        self.requests.append((url, params, headers))
        return self.response


def _patch_client(monkeypatch, response: DummyResponse) -> List[tuple]:
    requests: List[tuple] = []
    monkeypatch.setattr(httpx, "AsyncClient", lambda *a, **kw: DummyAsyncClient(response, requests, *a, **kw))
    return requests


def test_http_gateway_reads_crowd_level(monkeypatch):
    async def run() -> None:
        requests = _patch_client(monkeypatch, DummyResponse(200, {"crowd_level": 6.5}))
        gateway = HttpCrowdGateway("https://crowds.example.com/", api_key="secret")

        value = await gateway.forecast("epcot", "2025-03-02")

        assert value == 6.5
        url, params, headers = requests[0]
        assert url == "https://crowds.example.com/predictions"
        assert params == {"destination_id": "epcot", "date": "2025-03-02"}
        assert headers["Authorization"] == "Bearer secret"

    asyncio.run(run())


def test_http_gateway_treats_404_as_absent(monkeypatch):
    async def run() -> None:
        _patch_client(monkeypatch, DummyResponse(404))
        gateway = HttpCrowdGateway("https://crowds.example.com")

        assert await gateway.forecast("epcot", "2025-03-02") is None

    asyncio.run(run())


def test_http_gateway_raises_on_server_error(monkeypatch):
    async def run() -> None:
        _patch_client(monkeypatch, DummyResponse(500))
        gateway = HttpCrowdGateway("https://crowds.example.com")

        with pytest.raises(RuntimeError):
            await gateway.forecast("epcot", "2025-03-02")

    asyncio.run(run())


def test_http_gateway_requires_base_url(monkeypatch):
    monkeypatch.setattr("trip_optimizer.config.CROWD_API_BASE_URL", "")

    async def run() -> None:
        with pytest.raises(RuntimeError, match="CROWD_API_BASE_URL"):
            await HttpCrowdGateway().forecast("epcot", "2025-03-02")

    asyncio.run(run())


class FlakyGateway:
    def __init__(self):
        self.calls: List[tuple] = []

    async def forecast(self, destination_id: str, date: str):
        self.calls.append((destination_id, date))
        if destination_id == "epcot":
            return 3.0
        if destination_id == "magic-kingdom":
            raise ConnectionError("upstream down")
        if destination_id == "animal-kingdom":
            await asyncio.sleep(1)
            return 1.0
        if destination_id == "typhoon-lagoon":
            return 14.0
        return None


def test_fetch_forecast_degrades_failures_to_absence():
    gateway = FlakyGateway()
    destinations = ["animal-kingdom", "epcot", "hollywood-studios", "magic-kingdom", "typhoon-lagoon"]
    dates = ["2025-03-02", "2025-03-03"]

    forecast = asyncio.run(fetch_forecast(gateway, destinations, dates, timeout=0.05))

    assert len(gateway.calls) == 10
    assert forecast.lookup("epcot", "2025-03-02") == 3.0
    assert forecast.lookup("typhoon-lagoon", "2025-03-03") == 10.0
    assert forecast.lookup("magic-kingdom", "2025-03-02") is None
    assert forecast.lookup("animal-kingdom", "2025-03-02") is None
    assert forecast.score_for("hollywood-studios", "2025-03-02") == (5.0, False)


class CountingGateway:
    def __init__(self):
        self.in_flight = 0
        self.peak = 0
        self.calls = 0

    async def forecast(self, destination_id: str, date: str):
        self.calls += 1
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        await asyncio.sleep(0.01)
        self.in_flight -= 1
        return 4.0


def test_fetch_forecast_caps_lookups_in_flight():
    gateway = CountingGateway()
    destinations = [f"park-{idx}" for idx in range(12)]
    dates = [f"2025-03-{day:02d}" for day in range(1, 15)]

    forecast = asyncio.run(fetch_forecast(gateway, destinations, dates, timeout=1.0, max_concurrency=4))

    assert gateway.calls == 168
    assert gateway.peak == 4
    assert len(forecast.scores) == 168


def test_fetch_forecast_uses_configured_concurrency(monkeypatch):
    monkeypatch.setattr("trip_optimizer.config.CROWD_API_MAX_CONCURRENCY", 2)
    gateway = CountingGateway()

    asyncio.run(fetch_forecast(gateway, ["epcot", "animal-kingdom", "magic-kingdom"], ["2025-03-02"], timeout=1.0))

    assert gateway.calls == 3
    assert gateway.peak == 2


def test_static_gateway_and_entry_parsing():
    entries: List[Dict[str, object]] = [
        {"destination_id": "epcot", "date": "2025-03-02T09:00:00", "crowd_level": 4},
        {"destination_id": "", "date": "2025-03-02", "crowd_level": 4},
        {"destination_id": "epcot", "date": "not a date", "crowd_level": 2},
    ]
    forecast = CrowdForecast.from_entries(entries)
    gateway = StaticCrowdGateway(forecast)

    assert dict(forecast.scores) == {("epcot", "2025-03-02"): 4.0}
    assert asyncio.run(gateway.forecast("epcot", "2025-03-02")) == 4.0
    assert asyncio.run(gateway.forecast("epcot", "2025-03-03")) is None
    assert forecast.score_for(None, "2025-03-02") == (5.0, False)
