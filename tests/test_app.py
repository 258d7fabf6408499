from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from datastore.weather_store import WeatherStore, build_engine
from services.errors import StoreFailure
from services.identity import DeviceIdentityAllocator
from services.weather import WeatherService


@pytest.fixture
def weather_service(tmp_path) -> WeatherService:
    store = WeatherStore(build_engine(f"sqlite:///{tmp_path / 'weather.db'}"))
    return WeatherService(store=store, allocator=DeviceIdentityAllocator(store))


@pytest.fixture
def api_client(weather_service: WeatherService, monkeypatch) -> Iterator[TestClient]:
    def build_test_service() -> WeatherService:
        return weather_service

    build_test_service.cache_clear = lambda: None  # type: ignore[attr-defined]

    monkeypatch.setattr("app.main.build_default_service", build_test_service)
    monkeypatch.setattr("app.api.build_default_service", build_test_service)

    app = create_app()
    with TestClient(app) as client:
        yield client


def test_home_page_renders(api_client: TestClient) -> None:
    response = api_client.get("/")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "Weather Station" in response.text
    assert 'data-duration="168h"' in response.text


def test_health(api_client: TestClient) -> None:
    response = api_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_empty_store_returns_empty_history(api_client: TestClient) -> None:
    response = api_client.get("/data")

    assert response.status_code == 200
    assert response.json() == {"LatestData": None, "HistoricalData": []}


def test_first_contact_allocates_id_and_persists_reading(api_client: TestClient) -> None:
    response = api_client.post("/data", json={"temperature": 21.5, "pressure": 1012.3})

    assert response.status_code == 201
    payload = response.json()
    assert set(payload.keys()) == {"id"}
    device_id = payload["id"]
    assert len(device_id) == 36

    data = api_client.get("/data", params={"duration": "1h", "limit": "10"}).json()

    latest = data["LatestData"]
    assert latest["uuid"] == device_id
    assert latest["temperature"] == 21.5
    assert latest["pressure"] == 1012.3
    assert isinstance(latest["id"], str)
    assert [row["uuid"] for row in data["HistoricalData"]] == [device_id]


def test_known_device_gets_created_with_empty_body(api_client: TestClient) -> None:
    response = api_client.post(
        "/data",
        json={"uuid": "3f2b9c1e-8a61-4d8e-9a55-0b7e6f1c2d3a", "temperature": 18.0, "pressure": 990.0},
    )

    assert response.status_code == 201
    assert response.content == b""


def test_client_timestamp_is_replaced_by_server_time(api_client: TestClient) -> None:
    before = datetime.now(timezone.utc)
    api_client.post(
        "/data",
        json={
            "uuid": "sensor-1",
            "temperature": 18.0,
            "pressure": 990.0,
            "timestamp": "2001-01-01T00:00:00Z",
        },
    )

    latest = api_client.get("/data").json()["LatestData"]

    stored_at = datetime.fromisoformat(latest["timestamp"])
    assert stored_at >= before - timedelta(seconds=1)


@pytest.mark.parametrize(
    "body",
    [
        {"pressure": 1000.0},
        {"temperature": "warm", "pressure": 1000.0},
        {"uuid": 42, "temperature": 1.0, "pressure": 1000.0},
    ],
)
def test_malformed_body_returns_bad_request(api_client: TestClient, body: dict) -> None:
    response = api_client.post("/data", json=body)

    assert response.status_code == 400
    assert response.json() == {"detail": "Failed to parse request body"}


def test_non_json_body_returns_bad_request(api_client: TestClient) -> None:
    response = api_client.post(
        "/data", content=b"not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400


@pytest.mark.parametrize("duration", ["5", "200", "abc", "24m"])
def test_invalid_duration_returns_bad_request(api_client: TestClient, duration: str) -> None:
    response = api_client.get("/data", params={"duration": duration})

    assert response.status_code == 400
    assert response.json() == {"detail": "Invalid duration"}


@pytest.mark.parametrize("limit", ["0", "-1", "many"])
def test_invalid_limit_returns_bad_request(api_client: TestClient, limit: str) -> None:
    response = api_client.get("/data", params={"limit": limit})

    assert response.status_code == 400
    assert response.json() == {"detail": "Invalid limit value"}


def test_invalid_parameters_do_not_touch_store(
    api_client: TestClient, weather_service: WeatherService, monkeypatch
) -> None:
    def unexpected(*_args, **_kwargs):
        raise AssertionError("store should not be queried")

    monkeypatch.setattr(weather_service.store, "latest_reading", unexpected)
    monkeypatch.setattr(weather_service.store, "readings_since", unexpected)

    assert api_client.get("/data", params={"duration": "5"}).status_code == 400
    assert api_client.get("/data", params={"limit": "x"}).status_code == 400


def test_downsamples_a_day_of_readings(
    api_client: TestClient, weather_service: WeatherService
) -> None:
    store = weather_service.store
    now = datetime.now(timezone.utc)
    store.insert_reading("old-device", 1.0, 1.0, now - timedelta(hours=30))
    start = now - timedelta(hours=24) + timedelta(minutes=5)
    spacing = (timedelta(hours=24) - timedelta(minutes=10)) / 249
    seeded = [
        store.insert_reading("device-a", 10.0 + index, 1000.0, start + spacing * index)
        for index in range(250)
    ]

    response = api_client.get("/data", params={"duration": "24h", "limit": "50"})

    assert response.status_code == 200
    history = response.json()["HistoricalData"]
    assert len(history) == 50
    assert history[0]["id"] == str(seeded[0].id)
    assert history[-1]["id"] == str(seeded[-1].id)
    assert response.json()["LatestData"]["id"] == str(seeded[-1].id)


def test_store_failure_returns_generic_server_error(
    api_client: TestClient, weather_service: WeatherService, monkeypatch
) -> None:
    def broken():
        raise StoreFailure("Failed to fetch latest reading.")

    monkeypatch.setattr(weather_service.store, "latest_reading", broken)

    response = api_client.get("/data")

    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to fetch weather data"}


def test_insert_failure_returns_server_error(
    api_client: TestClient, weather_service: WeatherService, monkeypatch
) -> None:
    def broken(**_kwargs):
        raise StoreFailure("Failed to insert reading.")

    monkeypatch.setattr(weather_service.store, "insert_reading", broken)

    response = api_client.post("/data", json={"uuid": "sensor-1", "temperature": 1.0, "pressure": 2.0})

    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to insert weather data"}


def test_cors_headers_on_regular_responses(api_client: TestClient) -> None:
    response = api_client.get("/data")

    assert response.headers["access-control-allow-origin"] == "*"
    assert response.headers["access-control-allow-methods"] == "GET, POST, OPTIONS"
    assert response.headers["access-control-allow-headers"] == "Content-Type"


def test_options_short_circuits_without_body(api_client: TestClient) -> None:
    response = api_client.options("/data")

    assert response.status_code == 200
    assert response.content == b""
    assert response.headers["access-control-allow-origin"] == "*"


def test_cors_headers_on_error_responses(api_client: TestClient) -> None:
    response = api_client.get("/data", params={"duration": "5"})

    assert response.status_code == 400
    assert response.headers["access-control-allow-origin"] == "*"


@pytest.mark.parametrize(
    "raw_body",
    [
        b'{"uuid": "sensor-1", "temperature": Infinity, "pressure": 1000.0}',
        b'{"uuid": "sensor-1", "temperature": 20.0, "pressure": -Infinity}',
        b'{"uuid": "sensor-1", "temperature": NaN, "pressure": 1000.0}',
    ],
)
def test_non_finite_measurements_are_rejected(api_client: TestClient, raw_body: bytes) -> None:
    response = api_client.post(
        "/data", content=raw_body, headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400
    assert response.json() == {"detail": "Failed to parse request body"}
    assert api_client.get("/data").json()["LatestData"] is None
