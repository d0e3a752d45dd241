from weather_bot.core.config import Settings


def test_environment_overrides_apply(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("MQTT_BROKER_URL", "mqtt://broker.local:1884")
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123:abc")
    monkeypatch.setenv("ENRICHMENT_ENABLED", "true")
    monkeypatch.setenv("PAYLOAD_SCHEMA", "weather")
    monkeypatch.setenv("STATE_PATH", str(tmp_path / "state.json"))

    config = Settings()

    assert config.mqtt_broker_url == "mqtt://broker.local:1884"
    assert config.telegram_bot_token == "123:abc"
    assert config.enrichment_enabled is True
    assert config.payload_schema == "weather"
    assert config.state_path == tmp_path / "state.json"


def test_inbound_topic_includes_bot_name() -> None:
    assert Settings(bot_name=None).inbound_topic == "measurements"
    assert Settings(bot_name="garden_bot").inbound_topic == "measurements/garden_bot"
