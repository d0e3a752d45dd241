# weather_bot/core/classifier.py
# -*- coding: utf-8 -*-
"""
classifier.py
-------------
Decides what an inbound bus message is.

Every payload on the measurements topic is one of:
    - a weather reading      {"temperature", "humidity", "pressure"}
    - a device list reply    {"list_devices": [...]}
    - a device info reply    {"selected_device", ...}
    - something else         (dropped)

The rules are tested in that order and the first match wins; a payload
is never tried against a later rule once an earlier one matched.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping, Union

from pydantic import ValidationError

from weather_bot.core.config import PayloadSchema
from weather_bot.core.types import (
    ClassifiedMessage,
    DeviceInfoReport,
    DeviceList,
    Measurement,
    Unrecognized,
)
from weather_bot.models.records import CommonInfo, DeviceInfo, MeasurementRecord

logger = logging.getLogger(__name__)

MEASUREMENT_FIELDS = ("humidity", "pressure", "temperature")
LIST_FIELD = "list_devices"
INFO_FIELD = "selected_device"


class MalformedPayloadError(ValueError):
    """The payload is not a JSON object, or a matched shape failed validation."""


# -------------------------------------------------------------------------
# Decoding
# -------------------------------------------------------------------------

def decode_payload(raw: Union[bytes, bytearray, str]) -> Dict[str, Any]:
    """
    Turn raw bus bytes into a dict.

    Raises MalformedPayloadError for non-UTF-8 bytes, invalid JSON, and
    JSON documents that are not objects (numbers, strings, arrays).
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedPayloadError("payload is not UTF-8 text") from exc
    else:
        text = raw

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedPayloadError(f"payload is not JSON: {exc.msg}") from exc

    if not isinstance(payload, dict):
        raise MalformedPayloadError(
            f"payload is a JSON {type(payload).__name__}, expected an object"
        )
    return payload


# -------------------------------------------------------------------------
# Classification
# -------------------------------------------------------------------------

def _has_all(payload: Mapping[str, Any], names: tuple[str, ...]) -> bool:
    return all(payload.get(name) is not None for name in names)


def _parse_devices(entries: List[Any]) -> List[DeviceInfo]:
    devices: List[DeviceInfo] = []
    for entry in entries:
        try:
            if isinstance(entry, str):
                devices.append(DeviceInfo(name=entry))
            else:
                devices.append(DeviceInfo.model_validate(entry))
        except ValidationError:
            logger.warning("Skipping invalid device entry: %r", entry)
    return devices


def classify(
    payload: Mapping[str, Any],
    schema: PayloadSchema = "envelope",
) -> ClassifiedMessage:
    """
    Assign a decoded payload to exactly one variant.

    Priority: Measurement > DeviceList > DeviceInfoReport > Unrecognized.
    The "weather" schema only knows measurements.

    Raises MalformedPayloadError when the payload matched the measurement
    shape but its values do not validate. Device info replies are parsed
    leniently and never raise.
    """
    # 1. Measurement (highest priority)
    if _has_all(payload, MEASUREMENT_FIELDS):
        try:
            record = MeasurementRecord.model_validate(payload)
        except ValidationError as exc:
            raise MalformedPayloadError(
                f"invalid measurement: {exc.error_count()} field error(s)"
            ) from exc
        return Measurement(record=record)

    if schema == "weather":
        return Unrecognized(keys=sorted(payload))

    # 2. Device list
    devices = payload.get(LIST_FIELD)
    if isinstance(devices, list):
        return DeviceList(devices=_parse_devices(devices))

    # 3. Device info. Always a report, so it answers exactly one /info.
    if INFO_FIELD in payload:
        return DeviceInfoReport(info=CommonInfo.from_payload(payload))

    # 4. Anything else
    return Unrecognized(keys=sorted(payload))


def classify_raw(
    raw: Union[bytes, bytearray, str],
    schema: PayloadSchema = "envelope",
) -> ClassifiedMessage:
    """decode_payload() followed by classify(); raises MalformedPayloadError."""
    return classify(decode_payload(raw), schema)


if __name__ == "__main__":
    samples = [
        b'{"temperature": 1, "humidity": 2, "pressure": 3}',
        b'{"list_devices": ["garden", {"name": "roof", "status": "Offline"}]}',
        b'{"selected_device": "garden", "rssi": -71}',
        b'{"foo": 1}',
        b"Hello from node",
    ]
    for sample in samples:
        try:
            print(f"{sample!r:70} -> {classify_raw(sample)}")
        except MalformedPayloadError as exc:
            print(f"{sample!r:70} -> malformed: {exc}")
