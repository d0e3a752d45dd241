# weather_bot/core/config.py
# -*- coding: utf-8 -*-
"""
Weather Telemetry Bot — Configuration
-------------------------------------
Central configuration for the relay service, including:

- app metadata and the status API host/port
- MQTT broker connection and topic names
- Telegram bot token
- the core variant (enrichment on/off, payload schema)
- text-generation backends (OpenAI-compatible online, Ollama local)
- the persisted state file

Every field can be overridden from the environment or from `.env` at the
project root, e.g. MQTT_BROKER_URL, TELEGRAM_BOT_TOKEN, OPENAI_API_KEY.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

# This file is: weather_bot/core/config.py
PACKAGE_DIR: Path = Path(__file__).resolve().parents[1]   # .../weather_bot
ROOT_DIR: Path = PACKAGE_DIR.parent                       # project root

PayloadSchema = Literal["weather", "envelope"]


# ---------------------------------------------------------------------------
# Settings model
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    """
    Global configuration for the relay.

    Instantiated once at import time as `settings`; components that need
    to be tested in isolation receive the values they use as arguments.
    """

    model_config = SettingsConfigDict(
        env_file=ROOT_DIR / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- App / status API ---------------------------------------------------
    app_name: str = "Weather Telemetry Bot"
    environment: Literal["development", "production", "test"] = "development"
    debug: bool = False

    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # --- MQTT bus -----------------------------------------------------------
    # ENV: MQTT_BROKER_URL=mqtt://broker.local:1883
    mqtt_broker_url: str | None = Field(
        default=None,
        description="Broker URL, mqtt:// or mqtts:// (env: MQTT_BROKER_URL).",
    )
    mqtt_username: str | None = None
    mqtt_password: str | None = None
    mqtt_client_id: str | None = None
    mqtt_reconnect_interval_s: float = 5.0

    # Inbound topic is "<measurements_topic>/<bot_name>" when bot_name is set.
    measurements_topic: str = "measurements"
    bot_name: str | None = None
    request_topic: str = "measurements/RequestSetting"
    bus_sender: str = "telegramBot"

    # --- Telegram -----------------------------------------------------------
    telegram_bot_token: str | None = Field(
        default=None,
        description="Bot token from BotFather (env: TELEGRAM_BOT_TOKEN).",
    )
    device_page_size: int = Field(default=10, ge=1, le=100)

    # --- Core variant -------------------------------------------------------
    enrichment_enabled: bool = False
    payload_schema: PayloadSchema = "envelope"

    # --- Generation: OpenAI-compatible online backend -----------------------
    openai_enabled: bool = True
    openai_api_key: str | None = Field(
        default=None,
        description="API key for the online backend (env: OPENAI_API_KEY).",
    )
    openai_base_url: str = "https://api.openai.com/v1/chat/completions"

    # Priority-ordered model list, first -> last.
    openai_model_candidates: list[str] = ["gpt-3.5-turbo"]
    openai_temperature: float = 0.6
    openai_max_tokens: int = 1000
    openai_timeout_s: float = 30.0

    # --- Generation: local Ollama backend ----------------------------------
    ollama_enabled: bool = False
    ollama_url: str | None = Field(
        default=None,
        description="Ollama chat endpoint, e.g. http://localhost:11434/api/chat.",
    )
    ollama_model: str | None = None
    ollama_timeout_s: float = 60.0

    # --- Notification text --------------------------------------------------
    notification_language: str = "Ukrainian"
    notification_max_chars: int = 200

    # --- Persistence --------------------------------------------------------
    state_path: Path = Path("data.json")

    @property
    def inbound_topic(self) -> str:
        if self.bot_name:
            return f"{self.measurements_topic}/{self.bot_name}"
        return self.measurements_topic


# Single global settings instance used by the rest of the service.
settings = Settings()


if __name__ == "__main__":
    # Quick check of what was picked up from the environment / .env
    print("Weather Telemetry Bot — Settings self-test")
    print(f"ROOT_DIR        : {ROOT_DIR}")
    print(f"Environment     : {settings.environment}")
    print(f"Broker URL      : {settings.mqtt_broker_url!r}")
    print(f"Inbound topic   : {settings.inbound_topic}")
    print(f"Request topic   : {settings.request_topic}")
    print(f"Telegram token  : {bool(settings.telegram_bot_token)}")
    print(f"Schema          : {settings.payload_schema}")
    print(f"Enrichment      : {settings.enrichment_enabled}")
    print(f"OpenAI key set  : {bool(settings.openai_api_key)}, models={settings.openai_model_candidates}")
    print(f"Ollama          : enabled={settings.ollama_enabled}, url={settings.ollama_url!r}")
    print(f"State path      : {settings.state_path}")
