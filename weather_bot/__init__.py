"""Weather Telemetry Bot: relays MQTT weather telemetry to Telegram subscribers."""

__version__ = "0.1.0"
