# weather_bot/core/types.py
# -*- coding: utf-8 -*-
"""
Weather Telemetry Bot — Shared type helpers
-------------------------------------------
Small shared types used across the core:

- Measurement, DeviceList, DeviceInfoReport, Unrecognized
                    : the classifier variants, told apart with isinstance
- ClassifiedMessage : union of the four variants
- Notification      : result of composing a broadcast text
- GenerationError   : raised by the generation backends
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Union

from weather_bot.models.records import CommonInfo, DeviceInfo, MeasurementRecord

# Which generation backend produced a text
BackendLabel = Literal["openai", "ollama"]


# ---------------------------------------------------------------------------
# Classifier variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Measurement:
    record: MeasurementRecord


@dataclass(frozen=True)
class DeviceList:
    devices: List[DeviceInfo] = field(default_factory=list)


@dataclass(frozen=True)
class DeviceInfoReport:
    info: CommonInfo


@dataclass(frozen=True)
class Unrecognized:
    keys: List[str] = field(default_factory=list)


ClassifiedMessage = Union[Measurement, DeviceList, DeviceInfoReport, Unrecognized]


# ---------------------------------------------------------------------------
# Generation / composition results
# ---------------------------------------------------------------------------


class GenerationError(Exception):
    """Raised when a text-generation backend fails in a recoverable way."""


@dataclass
class GenerationResult:
    """
    Text returned by one backend.

    Attributes
    ----------
    text:
        Generated text, already stripped and non-empty.
    backend:
        "openai" | "ollama"
    raw:
        Backend metadata (model name, URL).
    """
    text: str
    backend: BackendLabel
    raw: Dict[str, Any]


@dataclass
class Notification:
    """
    Broadcast text produced by the composer.

    Attributes
    ----------
    text:
        What subscribers receive. Never empty.
    enriched:
        True when the text came from a generation backend.
    error:
        Why enrichment fell back to raw data, or None.
    """
    text: str
    enriched: bool = False
    error: Optional[str] = None


# ---------------------------------------------------------------------------
# Chat prompts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChoiceOption:
    """One inline button: what the user sees and what comes back on tap."""
    label: str
    callback_data: str
