# weather_bot/runtime_state/measurements.py
# -*- coding: utf-8 -*-
"""
Weather Telemetry Bot — Measurement history
-------------------------------------------
Append-only, in-memory history of weather readings.

Design notes
~~~~~~~~~~~~
- No eviction: the whole history is persisted, only the tail is read.
- No de-duplication: identical readings are all kept.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from weather_bot.models.records import MeasurementRecord


class MeasurementStore:
    """Arrival-ordered list of MeasurementRecord."""

    def __init__(self, records: Optional[Iterable[MeasurementRecord]] = None) -> None:
        self._records: List[MeasurementRecord] = list(records or [])

    def __len__(self) -> int:
        return len(self._records)

    def add(self, record: MeasurementRecord) -> None:
        self._records.append(record)

    def last(self, count: int) -> List[MeasurementRecord]:
        """
        Return the newest `min(count, len)` records, oldest first.

        last(0), a negative count, or an empty store give [].
        """
        if count <= 0:
            return []
        return self._records[-count:]

    def latest(self) -> Optional[MeasurementRecord]:
        return self._records[-1] if self._records else None

    def records(self) -> List[MeasurementRecord]:
        return list(self._records)

    def replace(self, records: Iterable[MeasurementRecord]) -> None:
        self._records = list(records)
