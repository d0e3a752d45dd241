import asyncio
import json

from weather_bot.core.composer import FALLBACK_NOTE
from weather_bot.core.dispatcher import (
    CHOOSE_DEVICE_TEXT,
    NO_DEVICES_TEXT,
    WELCOME_TEXT,
    device_from_callback,
)
from weather_bot.core.types import DeviceList, GenerationError, Measurement, Unrecognized

REQUEST_TOPIC = "measurements/RequestSetting"
MEASUREMENT = b'{"temperature":20,"humidity":50,"pressure":1010}'


def _run(coro):
    return asyncio.run(coro)


def _published(bus):
    return [(topic, json.loads(payload)) for topic, payload in bus.published]


# ---------------------------------------------------------------------------
# Measurements
# ---------------------------------------------------------------------------


def test_measurement_is_broadcast_republished_and_persisted(make_dispatcher, bus, chat, tmp_path) -> None:
    dispatcher = make_dispatcher(subscribers=[101, 202])

    message = _run(dispatcher.handle_bus_message("measurements", MEASUREMENT))

    assert isinstance(message, Measurement)
    raw = MEASUREMENT.decode("utf-8")
    assert sorted(chat.texts) == [(101, raw), (202, raw)]
    assert len(dispatcher.store) == 1
    assert _published(bus) == [
        (REQUEST_TOPIC, {"sender": "testBot", "requestCommand": "sendMessage", "data": raw})
    ]

    blob = json.loads((tmp_path / "data.json").read_text(encoding="utf-8"))
    assert blob["WeatherHistory"] == [{"temperature": 20.0, "humidity": 50.0, "pressure": 1010.0}]
    assert sorted(blob["Users"]) == [101, 202]


def test_failed_delivery_does_not_stop_broadcast(make_dispatcher, chat) -> None:
    chat.failing.add(1)
    dispatcher = make_dispatcher(subscribers=[1, 2])

    _run(dispatcher.handle_bus_message("measurements", MEASUREMENT))

    assert [chat_id for chat_id, _ in chat.texts] == [2]


def test_enrichment_failure_still_notifies_with_raw_values(make_dispatcher, chat) -> None:
    def failing_generator(prompt):
        raise GenerationError("quota exceeded")

    dispatcher = make_dispatcher(enrichment_enabled=True, generator=failing_generator, subscribers=[5])

    _run(dispatcher.handle_bus_message("measurements", MEASUREMENT))

    (chat_id, text), = chat.texts
    assert chat_id == 5
    assert text.startswith(FALLBACK_NOTE)
    assert "1010" in text


def test_invalid_measurement_is_not_stored(make_dispatcher, chat, bus, tmp_path) -> None:
    dispatcher = make_dispatcher(subscribers=[1])

    result = _run(
        dispatcher.handle_bus_message("measurements", b'{"temperature":"hot","humidity":1,"pressure":2}')
    )

    assert result is None
    assert len(dispatcher.store) == 0
    assert chat.texts == []
    assert bus.published == []
    assert not (tmp_path / "data.json").exists()


def test_garbage_and_unrecognized_payloads_are_dropped(make_dispatcher, chat, bus) -> None:
    dispatcher = make_dispatcher(subscribers=[1])

    assert _run(dispatcher.handle_bus_message("measurements", b"Hello from node")) is None
    assert _run(dispatcher.handle_bus_message("measurements", b"\xff\xfe")) is None
    assert isinstance(_run(dispatcher.handle_bus_message("measurements", b'{"foo": 1}')), Unrecognized)
    assert chat.texts == []
    assert bus.published == []


# ---------------------------------------------------------------------------
# Device list / info replies
# ---------------------------------------------------------------------------


def test_list_requests_are_answered_in_arrival_order(make_dispatcher, chat, bus) -> None:
    dispatcher = make_dispatcher()

    async def scenario():
        await dispatcher.handle_list_command(1)
        await dispatcher.handle_list_command(2)
        await dispatcher.handle_bus_message("measurements", b'{"list_devices": ["first"]}')
        await dispatcher.handle_bus_message("measurements", MEASUREMENT)
        await dispatcher.handle_bus_message("measurements", b'{"list_devices": ["second"]}')

    _run(scenario())

    assert [(chat_id, [o.label for o in options]) for chat_id, _, options in chat.prompts] == [
        (1, ["first"]),
        (2, ["second"]),
    ]
    commands = [payload["requestCommand"] for _, payload in _published(bus)]
    assert commands == ["listDevices", "listDevices", "sendMessage"]


def test_device_prompt_labels_and_callbacks(make_dispatcher, chat) -> None:
    dispatcher = make_dispatcher()
    dispatcher.registry.enqueue_list_request(9)

    payload = b'{"list_devices": [{"name": "garden", "status": "Online"}, {"name": "roof", "status": "Offline"}, "attic"]}'
    message = _run(dispatcher.handle_bus_message("measurements", payload))

    assert isinstance(message, DeviceList)
    (chat_id, text, options), = chat.prompts
    assert chat_id == 9
    assert text == CHOOSE_DEVICE_TEXT
    assert [o.label for o in options] == ["🟢 garden", "🔴 roof", "attic"]
    assert [o.callback_data for o in options] == [
        "choose_device_garden",
        "choose_device_roof",
        "choose_device_attic",
    ]


def test_long_device_lists_are_paginated(make_dispatcher, chat) -> None:
    dispatcher = make_dispatcher(page_size=2)
    dispatcher.registry.enqueue_list_request(3)

    devices = json.dumps({"list_devices": ["a", "b", "c", "d", "e"]}).encode()
    _run(dispatcher.handle_bus_message("measurements", devices))

    assert [text for _, text, _ in chat.prompts] == [
        "Choose a device (page 1/3):",
        "Choose a device (page 2/3):",
        "Choose a device (page 3/3):",
    ]
    assert [len(options) for _, _, options in chat.prompts] == [2, 2, 1]


def test_empty_device_list_sends_plain_message(make_dispatcher, chat) -> None:
    dispatcher = make_dispatcher()
    dispatcher.registry.enqueue_list_request(4)

    _run(dispatcher.handle_bus_message("measurements", b'{"list_devices": []}'))

    assert chat.texts == [(4, NO_DEVICES_TEXT)]
    assert chat.prompts == []


def test_reply_without_requester_is_discarded(make_dispatcher, chat) -> None:
    dispatcher = make_dispatcher(subscribers=[1])

    _run(dispatcher.handle_bus_message("measurements", b'{"list_devices": ["a"]}'))
    _run(dispatcher.handle_bus_message("measurements", b'{"selected_device": "a"}'))

    assert chat.texts == []
    assert chat.prompts == []


def test_info_reply_goes_to_requester(make_dispatcher, chat, bus) -> None:
    dispatcher = make_dispatcher()

    _run(dispatcher.handle_info_command(77))
    _run(
        dispatcher.handle_bus_message(
            "measurements",
            b'{"selected_device": "garden", "altitude": 120.5, "rssi": -60, "status": "Online"}',
        )
    )

    assert _published(bus) == [(REQUEST_TOPIC, {"sender": "testBot", "requestCommand": "information"})]
    (chat_id, report), = chat.texts
    assert chat_id == 77
    assert "Device: garden" in report
    assert "Altitude: 120.5 m" in report
    assert "Absolute pressure: n/a" in report
    assert dispatcher.registry.pending_info_requests == 0


def test_info_reply_with_bad_field_still_answers_its_requester(make_dispatcher, chat) -> None:
    dispatcher = make_dispatcher()

    async def scenario():
        await dispatcher.handle_info_command(1)
        await dispatcher.handle_info_command(2)
        await dispatcher.handle_bus_message("measurements", b'{"selected_device": "garden", "rssi": -70.5}')
        await dispatcher.handle_bus_message("measurements", b'{"selected_device": "roof"}')

    _run(scenario())

    assert [chat_id for chat_id, _ in chat.texts] == [1, 2]
    assert "Device: garden" in chat.texts[0][1]
    assert "RSSI: n/a" in chat.texts[0][1]
    assert "Device: roof" in chat.texts[1][1]
    assert dispatcher.registry.pending_info_requests == 0


# ---------------------------------------------------------------------------
# Chat commands
# ---------------------------------------------------------------------------


def test_start_subscribes_once_and_persists(make_dispatcher, chat, tmp_path) -> None:
    dispatcher = make_dispatcher()

    assert _run(dispatcher.handle_start(10)) is True
    assert _run(dispatcher.handle_start(10)) is False

    assert chat.texts == [(10, WELCOME_TEXT), (10, WELCOME_TEXT)]
    assert len(dispatcher.registry) == 1
    blob = json.loads((tmp_path / "data.json").read_text(encoding="utf-8"))
    assert blob == {"WeatherHistory": [], "Users": [10]}


def test_queue_changes_are_not_persisted(make_dispatcher, tmp_path) -> None:
    dispatcher = make_dispatcher()

    _run(dispatcher.handle_list_command(1))
    _run(dispatcher.handle_info_command(1))

    assert not (tmp_path / "data.json").exists()


def test_device_selection_publishes_change_request(make_dispatcher, chat, bus) -> None:
    dispatcher = make_dispatcher()

    device = _run(dispatcher.handle_device_selected(8, "choose_device_garden"))

    assert device == "garden"
    assert _published(bus) == [
        (REQUEST_TOPIC, {"sender": "testBot", "requestCommand": "changeDevice", "data": "garden"})
    ]
    assert chat.texts == [(8, "Selected device: garden")]


def test_foreign_callback_data_is_ignored(make_dispatcher, chat, bus) -> None:
    dispatcher = make_dispatcher()

    assert _run(dispatcher.handle_device_selected(8, "something_else")) is None
    assert _run(dispatcher.handle_device_selected(8, "choose_device_")) is None
    assert bus.published == []
    assert chat.texts == []


def test_device_from_callback() -> None:
    assert device_from_callback("choose_device_roof top") == "roof top"
    assert device_from_callback(None) is None


def test_help_lists_schema_commands(make_dispatcher, chat) -> None:
    _run(make_dispatcher(schema="weather").handle_help(1))
    _run(make_dispatcher(schema="envelope").handle_help(2))

    weather_help, envelope_help = chat.texts
    assert "/list" not in weather_help[1]
    assert "/list" in envelope_help[1] and "/info" in envelope_help[1]


def test_request_is_kept_queued_when_bus_is_down(make_dispatcher, bus) -> None:
    bus.connected = False
    dispatcher = make_dispatcher()

    _run(dispatcher.handle_list_command(1))

    assert dispatcher.registry.pending_list_requests == 1


def test_snapshot_reports_state(make_dispatcher) -> None:
    dispatcher = make_dispatcher(subscribers=[1, 2])
    _run(dispatcher.handle_bus_message("measurements", MEASUREMENT))
    dispatcher.registry.enqueue_info_request(1)

    snapshot = dispatcher.snapshot()

    assert snapshot["subscribers"] == 2
    assert snapshot["history_length"] == 1
    assert snapshot["pending_info_requests"] == 1
    assert snapshot["latest_measurement"]["pressure"] == 1010.0
    assert snapshot["payload_schema"] == "envelope"
