# weather_bot/main.py
# -*- coding: utf-8 -*-
"""
Weather Telemetry Bot — service entrypoint
------------------------------------------
This file wires everything together:

- Sets up central logging.
- Builds the relay runtime: state (history + subscribers), composer,
  dispatcher, MQTT bridge and Telegram bot.
- Creates the FastAPI app whose lifespan loads the persisted state and
  starts/stops both transports on the same event loop.
- Mounts the read-only /status router plus / and /health.

Typical run command:

    uvicorn weather_bot.main:app --host 0.0.0.0 --port 8000

"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from weather_bot.core.composer import NotificationComposer, TextGenerator
from weather_bot.core.config import Settings, settings
from weather_bot.core.dispatcher import BusPublisher, ChatSink, Dispatcher
from weather_bot.routers.status import router as status_router
from weather_bot.runtime_state import MeasurementStore, StateGateway, SubscriberRegistry
from weather_bot.transports.mqtt_bridge import MqttBridge, OfflineBusPublisher
from weather_bot.transports.telegram_bot import OfflineChatSink, TelegramBot
from weather_bot.utils import get_logger, setup_logging

setup_logging(debug=settings.debug)
logger = get_logger(__name__)


@dataclass
class RelayRuntime:
    """Everything one relay instance owns."""

    dispatcher: Dispatcher
    gateway: StateGateway
    bus: BusPublisher
    telegram: Optional[TelegramBot] = None
    _bus_task: Optional[asyncio.Task] = field(default=None, repr=False)

    async def start(self) -> None:
        self.gateway.restore(self.dispatcher.store, self.dispatcher.registry)

        if isinstance(self.bus, MqttBridge):
            self._bus_task = asyncio.create_task(self.bus.run(self.dispatcher.handle_bus_message))
        else:
            logger.warning("MQTT_BROKER_URL is not set; the relay will not receive measurements.")

        if self.telegram is not None:
            try:
                await self.telegram.start()
            except Exception:  # noqa: BLE001
                logger.exception("Failed to start the Telegram bot; continuing without chat.")
                self.telegram = None
        else:
            logger.warning("TELEGRAM_BOT_TOKEN is not set; notifications will not be delivered.")

    async def stop(self) -> None:
        if self._bus_task is not None:
            self._bus_task.cancel()
            try:
                await self._bus_task
            except asyncio.CancelledError:
                pass
            self._bus_task = None
        if isinstance(self.bus, MqttBridge):
            await self.bus.drain()
        if self.telegram is not None:
            await self.telegram.stop()


def build_runtime(
    config: Settings = settings,
    *,
    bus: Optional[BusPublisher] = None,
    chat: Optional[ChatSink] = None,
    generator: Optional[TextGenerator] = None,
) -> RelayRuntime:
    """
    Assemble a runtime from settings. `bus`, `chat` and `generator` replace
    the real collaborators (used by tests).
    """
    store = MeasurementStore()
    registry = SubscriberRegistry()
    gateway = StateGateway(config.state_path)

    telegram: Optional[TelegramBot] = None
    if chat is None:
        if config.telegram_bot_token:
            telegram = TelegramBot(config.telegram_bot_token, schema=config.payload_schema)
            chat = telegram
        else:
            chat = OfflineChatSink()

    if bus is None:
        if config.mqtt_broker_url:
            bus = MqttBridge(
                config.mqtt_broker_url,
                config.inbound_topic,
                username=config.mqtt_username,
                password=config.mqtt_password,
                client_id=config.mqtt_client_id,
                reconnect_interval_s=config.mqtt_reconnect_interval_s,
            )
        else:
            bus = OfflineBusPublisher()

    composer = NotificationComposer(
        store,
        enrichment_enabled=config.enrichment_enabled,
        generator=generator,
        language=config.notification_language,
        max_chars=config.notification_max_chars,
    )
    dispatcher = Dispatcher(
        registry=registry,
        store=store,
        composer=composer,
        gateway=gateway,
        bus=bus,
        chat=chat,
        request_topic=config.request_topic,
        sender=config.bus_sender,
        schema=config.payload_schema,
        device_page_size=config.device_page_size,
    )
    if telegram is not None:
        telegram.attach(dispatcher)

    return RelayRuntime(dispatcher=dispatcher, gateway=gateway, bus=bus, telegram=telegram)


def create_app(runtime: Optional[RelayRuntime] = None) -> FastAPI:
    """
    Application factory.

    Without `runtime`, one is built from the global settings when the
    lifespan starts.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        relay = runtime or build_runtime(settings)
        app.state.runtime = relay
        await relay.start()
        logger.info(
            "Relay started (schema=%s, enrichment=%s, inbound topic=%r)",
            relay.dispatcher.schema,
            relay.dispatcher.composer.enrichment_enabled,
            settings.inbound_topic,
        )
        try:
            yield
        finally:
            await relay.stop()
            app.state.runtime = None

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(status_router)

    @app.get("/", tags=["meta"])
    async def root():
        return {
            "name": settings.app_name,
            "environment": settings.environment,
            "message": "Weather telemetry relay is running.",
        }

    @app.get("/health", tags=["meta"])
    async def health_check():
        return {
            "status": "ok",
            "environment": settings.environment,
            "enrichment_enabled": settings.enrichment_enabled,
            "payload_schema": settings.payload_schema,
        }

    return app


# ASGI app for uvicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "weather_bot.main:app",
        host=settings.api_host,
        port=settings.api_port,
    )
