import json
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from weather_bot.core.config import Settings
from weather_bot.main import build_runtime, create_app

from .conftest import FakeBus, FakeChat


@pytest.fixture
def config(tmp_path) -> Settings:
    state_path = tmp_path / "data.json"
    state_path.write_text(
        json.dumps(
            {
                "WeatherHistory": [
                    {"temperature": 18, "humidity": 60, "pressure": 1000},
                    {"temperature": 19, "humidity": 55, "pressure": 1002},
                ],
                "Users": [1, 2, 3],
            }
        ),
        encoding="utf-8",
    )
    return Settings(state_path=state_path, telegram_bot_token=None, mqtt_broker_url=None)


@pytest.fixture
def client(config) -> Iterator[TestClient]:
    runtime = build_runtime(config, bus=FakeBus(), chat=FakeChat())
    with TestClient(create_app(runtime)) as test_client:
        yield test_client


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_status_reflects_restored_state(client) -> None:
    response = client.get("/status")

    assert response.status_code == 200
    body = response.json()
    assert body["subscribers"] == 3
    assert body["history_length"] == 2
    assert body["latest_measurement"]["temperature"] == 19.0
    assert body["bus_connected"] is True
    assert body["chat_enabled"] is False


def test_status_history_limit(client) -> None:
    response = client.get("/status/history", params={"limit": 1})

    assert response.status_code == 200
    assert [r["temperature"] for r in response.json()] == [19.0]
    assert client.get("/status/history", params={"limit": -1}).status_code == 422


def test_status_without_runtime_is_unavailable() -> None:
    app = create_app()

    with TestClient(app) as test_client:
        app.state.runtime = None
        response = test_client.get("/status")

    assert response.status_code == 503


def test_runtime_without_credentials_uses_offline_transports(config) -> None:
    runtime = build_runtime(config)

    assert runtime.telegram is None
    assert runtime.bus.connected is False
