# weather_bot/models/records.py
# -*- coding: utf-8 -*-
"""
Weather Telemetry Bot — bus payload models
------------------------------------------
Pydantic models for everything that travels over the MQTT bus:

Inbound (device side -> relay)
    MeasurementRecord   {"temperature", "humidity", "pressure", "timestamp"?}
    DeviceInfo          one entry of {"list_devices": [...]}
    CommonInfo          {"selected_device", "absolut_pressure", ...}

Outbound (relay -> device side)
    RequestSetting      {"sender", "requestCommand", "data"?}

Only MeasurementRecord is persisted; the device models live for the
duration of one reply.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class MeasurementRecord(BaseModel):
    """One weather reading. All three values are required and non-null."""

    model_config = ConfigDict(extra="ignore")

    temperature: float
    humidity: float
    pressure: float
    timestamp: Optional[datetime] = None

    def describe(self) -> str:
        return (
            f"temperature {self.temperature}°C, "
            f"humidity {self.humidity}%, "
            f"pressure {self.pressure} hPa"
        )


class DeviceStatus(str, Enum):
    ONLINE = "Online"
    OFFLINE = "Offline"


class DeviceInfo(BaseModel):
    """
    One device from a list reply.

    The device side sends either {"name": ..., "status": "Online"} objects
    or bare name strings; a bare name has no known status.
    """

    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1)
    status: Optional[DeviceStatus] = None

    @property
    def marker(self) -> str:
        if self.status is DeviceStatus.ONLINE:
            return "🟢"
        if self.status is DeviceStatus.OFFLINE:
            return "🔴"
        return ""

    @property
    def label(self) -> str:
        return f"{self.marker} {self.name}" if self.marker else self.name


class CommonInfo(BaseModel):
    """
    Information report for the currently selected device.

    Field names follow the device firmware ("absolut_pressure", "timestep").
    Every field is optional so that a partial or sloppy report still
    answers the request it belongs to (see `from_payload`).
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    selected_device: Optional[str] = None
    absolute_pressure: Optional[float] = Field(default=None, alias="absolut_pressure")
    altitude: Optional[float] = None
    rssi: Optional[int] = None
    timestamp: Optional[str] = Field(default=None, alias="timestep")
    status: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "CommonInfo":
        """
        Lenient parse: fields that fail validation are dropped (shown as
        "n/a") instead of rejecting the whole report.
        """
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            bad_keys: Set[str] = {
                str(error["loc"][0]) for error in exc.errors() if error["loc"]
            }

        for name, field in cls.model_fields.items():
            if name in bad_keys or field.alias in bad_keys:
                bad_keys.update(key for key in (name, field.alias) if key)

        logger.warning("Ignoring invalid device info fields: %s", sorted(bad_keys))
        cleaned = {key: value for key, value in payload.items() if key not in bad_keys}
        return cls.model_validate(cleaned)

    def render(self) -> str:
        def show(value: object, unit: str = "") -> str:
            if value is None:
                return "n/a"
            return f"{value}{unit}"

        return "\n".join(
            [
                f"Device: {show(self.selected_device)}",
                f"Status: {show(self.status)}",
                f"Absolute pressure: {show(self.absolute_pressure, ' hPa')}",
                f"Altitude: {show(self.altitude, ' m')}",
                f"RSSI: {show(self.rssi, ' dBm')}",
                f"Timestamp: {show(self.timestamp)}",
            ]
        )


class RequestCommand(str, Enum):
    INFORMATION = "information"
    LIST_DEVICES = "listDevices"
    CHANGE_DEVICE = "changeDevice"
    SEND_MESSAGE = "sendMessage"


class RequestSetting(BaseModel):
    """Envelope published on the request topic."""

    model_config = ConfigDict(populate_by_name=True)

    sender: str
    request_command: RequestCommand = Field(alias="requestCommand")
    data: Optional[str] = None

    def to_payload(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)
