# weather_bot/core/dispatcher.py
# -*- coding: utf-8 -*-
"""
Weather Telemetry Bot — Command/reply dispatcher
------------------------------------------------
Routes every event the relay sees to the right state change and output:

Bus -> relay
    measurement    store, compose, broadcast, republish, persist
    device list    pop one list requester, send them a device picker
    device info    pop one info requester, send them the info report
    anything else  logged and dropped

Chat -> relay
    /start         subscribe (persist if new), welcome reply
    /help          static help text
    /list          queue the requester, ask the device side for its list
    /info          queue the requester, ask the device side for info
    device tap     ask the device side to switch device, acknowledge

Requests never wait for their replies. The two FIFO queues pair the n-th
request with the n-th reply of the same kind, whatever else arrives in
between. Queue pops happen before the first await of a bus handler, so
the pairing follows the order in which messages were scheduled.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence, Union

from weather_bot.core.classifier import MalformedPayloadError, classify_raw
from weather_bot.core.composer import NotificationComposer
from weather_bot.core.config import PayloadSchema
from weather_bot.core.types import (
    ChoiceOption,
    ClassifiedMessage,
    DeviceInfoReport,
    DeviceList,
    Measurement,
    Unrecognized,
)
from weather_bot.models.records import RequestCommand, RequestSetting
from weather_bot.runtime_state import (
    MeasurementStore,
    StateGateway,
    SubscriberId,
    SubscriberRegistry,
)

logger = logging.getLogger(__name__)

DEVICE_CALLBACK_PREFIX = "choose_device_"

WELCOME_TEXT = "Hi! From now on you will receive updates whenever the weather readings change."
NO_DEVICES_TEXT = "No devices are available right now."
CHOOSE_DEVICE_TEXT = "Choose a device:"

HELP_LINES = {
    "weather": [
        "/start - subscribe to weather updates",
        "/help - show this message",
    ],
    "envelope": [
        "/start - subscribe to weather updates",
        "/list - choose the device to follow",
        "/info - show information about the selected device",
        "/help - show this message",
    ],
}


class BusPublisher(Protocol):
    async def publish(self, topic: str, payload: str) -> bool: ...


class ChatSink(Protocol):
    async def send_text(self, chat_id: SubscriberId, text: str) -> bool: ...

    async def send_choice_prompt(
        self,
        chat_id: SubscriberId,
        text: str,
        options: Sequence[ChoiceOption],
    ) -> bool: ...


def device_from_callback(callback_data: Optional[str]) -> Optional[str]:
    """'choose_device_garden' -> 'garden'; anything else -> None."""
    if not callback_data or not callback_data.startswith(DEVICE_CALLBACK_PREFIX):
        return None
    name = callback_data[len(DEVICE_CALLBACK_PREFIX):]
    return name or None


def paginate_devices(devices: DeviceList, page_size: int) -> List[List[ChoiceOption]]:
    options = [
        ChoiceOption(label=device.label, callback_data=f"{DEVICE_CALLBACK_PREFIX}{device.name}")
        for device in devices.devices
    ]
    size = max(page_size, 1)
    return [options[i:i + size] for i in range(0, len(options), size)]


class Dispatcher:
    """
    Owns the registry and the measurement store for one relay instance and
    talks to the outside world only through `bus` and `chat`.
    """

    def __init__(
        self,
        *,
        registry: SubscriberRegistry,
        store: MeasurementStore,
        composer: NotificationComposer,
        gateway: StateGateway,
        bus: BusPublisher,
        chat: ChatSink,
        request_topic: str = "measurements/RequestSetting",
        sender: str = "telegramBot",
        schema: PayloadSchema = "envelope",
        device_page_size: int = 10,
    ) -> None:
        self.registry = registry
        self.store = store
        self.composer = composer
        self.gateway = gateway
        self.bus = bus
        self.chat = chat
        self.request_topic = request_topic
        self.sender = sender
        self.schema = schema
        self.device_page_size = device_page_size

    # ------------------------------------------------------------------
    # Bus -> relay
    # ------------------------------------------------------------------

    async def handle_bus_message(
        self,
        topic: str,
        payload: Union[bytes, bytearray, str],
    ) -> Optional[ClassifiedMessage]:
        """
        Handle one inbound bus message. Returns the classified message, or
        None when it could not be decoded or validated.
        """
        try:
            raw_text = payload.decode("utf-8") if isinstance(payload, (bytes, bytearray)) else payload
            message = classify_raw(raw_text, self.schema)
        except (UnicodeDecodeError, MalformedPayloadError) as exc:
            logger.warning("Dropping malformed payload on %s: %s (payload=%r)", topic, exc, payload[:200])
            return None

        if isinstance(message, Measurement):
            await self._on_measurement(message, raw_text)
        elif isinstance(message, DeviceList):
            await self._on_device_list(message)
        elif isinstance(message, DeviceInfoReport):
            await self._on_device_info(message)
        elif isinstance(message, Unrecognized):
            logger.info("Dropping unrecognized payload on %s (keys=%s)", topic, message.keys)
        return message

    async def _on_measurement(self, message: Measurement, raw_text: str) -> None:
        self.store.add(message.record)
        logger.info("New measurement: %s", message.record.describe())

        notification = await self.composer.compose(raw_text)
        if notification.error:
            logger.warning("Enrichment failed, sending raw data instead: %s", notification.error)

        targets = self.registry.broadcast_targets()
        delivered = 0
        for subscriber_id in targets:
            if await self.chat.send_text(subscriber_id, notification.text):
                delivered += 1
        logger.info(
            "Notification sent to %d/%d subscribers (enriched=%s)",
            delivered,
            len(targets),
            notification.enriched,
        )

        await self._publish_request(RequestCommand.SEND_MESSAGE, notification.text)
        self._persist()

    async def _on_device_list(self, message: DeviceList) -> None:
        requester = self.registry.dequeue_list_request()
        if requester is None:
            logger.warning("Discarding device list reply: nobody is waiting for it.")
            return

        if not message.devices:
            await self.chat.send_text(requester, NO_DEVICES_TEXT)
            return

        pages = paginate_devices(message, self.device_page_size)
        for number, options in enumerate(pages, start=1):
            text = CHOOSE_DEVICE_TEXT
            if len(pages) > 1:
                text = f"Choose a device (page {number}/{len(pages)}):"
            await self.chat.send_choice_prompt(requester, text, options)

    async def _on_device_info(self, message: DeviceInfoReport) -> None:
        requester = self.registry.dequeue_info_request()
        if requester is None:
            logger.warning("Discarding device info reply: nobody is waiting for it.")
            return
        await self.chat.send_text(requester, message.info.render())

    # ------------------------------------------------------------------
    # Chat -> relay
    # ------------------------------------------------------------------

    async def handle_start(self, user_id: SubscriberId) -> bool:
        """Subscribe the user. Returns True if they were not subscribed yet."""
        added = self.registry.subscribe(user_id)
        if added:
            self._persist()
        await self.chat.send_text(user_id, WELCOME_TEXT)
        return added

    async def handle_help(self, user_id: SubscriberId) -> None:
        await self.chat.send_text(user_id, "\n".join(HELP_LINES[self.schema]))

    async def handle_list_command(self, user_id: SubscriberId) -> None:
        self.registry.enqueue_list_request(user_id)
        await self._publish_request(RequestCommand.LIST_DEVICES)

    async def handle_info_command(self, user_id: SubscriberId) -> None:
        self.registry.enqueue_info_request(user_id)
        await self._publish_request(RequestCommand.INFORMATION)

    async def handle_device_selected(
        self,
        user_id: SubscriberId,
        callback_data: Optional[str],
    ) -> Optional[str]:
        """Returns the selected device name, or None for foreign callback data."""
        device = device_from_callback(callback_data)
        if device is None:
            logger.warning("Ignoring callback with unexpected data %r from %s", callback_data, user_id)
            return None

        await self._publish_request(RequestCommand.CHANGE_DEVICE, device)
        await self.chat.send_text(user_id, f"Selected device: {device}")
        return device

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _publish_request(self, command: RequestCommand, data: Optional[str] = None) -> bool:
        envelope = RequestSetting(sender=self.sender, request_command=command, data=data)
        published = await self.bus.publish(self.request_topic, envelope.to_payload())
        if not published:
            logger.warning("Request %s was not published", command.value)
        return published

    def _persist(self) -> bool:
        return self.gateway.save(self.store, self.registry)

    def snapshot(self) -> Dict[str, Any]:
        latest = self.store.latest()
        return {
            "subscribers": len(self.registry),
            "history_length": len(self.store),
            "pending_list_requests": self.registry.pending_list_requests,
            "pending_info_requests": self.registry.pending_info_requests,
            "latest_measurement": latest.model_dump(mode="json") if latest else None,
            "enrichment_enabled": self.composer.enrichment_enabled,
            "payload_schema": self.schema,
        }
