# weather_bot/core/composer.py
# -*- coding: utf-8 -*-
"""
Weather Telemetry Bot — Notification composer
---------------------------------------------
Builds the text that is broadcast to subscribers after a new reading.

Raw mode
    The notification is the inbound payload text, verbatim.

Enriched mode
    A prompt is built from the last one or two readings (a snapshot, or a
    before/after comparison) and sent through the generation chain. When
    the chain fails or returns nothing, subscribers get the raw payload
    prefixed with a short note instead. Enrichment never blocks a
    notification.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Sequence

from weather_bot.core.generate import generate_text
from weather_bot.core.types import GenerationError, GenerationResult, Notification
from weather_bot.models.records import MeasurementRecord
from weather_bot.runtime_state import MeasurementStore

logger = logging.getLogger(__name__)

FALLBACK_NOTE = "Could not generate a weather summary, here is the raw measurement:"

TextGenerator = Callable[[str], GenerationResult]


def build_prompt(
    records: Sequence[MeasurementRecord],
    *,
    language: str = "Ukrainian",
    max_chars: int = 200,
) -> str:
    """
    Prompt for a short weather update.

    One record  -> describe the current reading.
    Two records -> describe the change from the older to the newer one and
                   ask for a short forecast.
    """
    prompt = (
        f"Please provide a short weather update and a suggestion for the day "
        f"in {language} language, no longer than {max_chars} characters. "
    )

    if len(records) == 1:
        prompt += f"The current weather data is: {records[0].describe()}."
    elif len(records) > 1:
        previous, current = records[-2], records[-1]
        prompt += (
            f"Previously, the weather was: {previous.describe()}. "
            f"Now it is: {current.describe()}. "
            "Describe the changes in weather conditions and provide a forecast "
            "for the upcoming changes."
        )
    return prompt


def fallback_text(raw_text: str) -> str:
    return f"{FALLBACK_NOTE}\n{raw_text}"


class NotificationComposer:
    """
    Parameters
    ----------
    store:
        Measurement history the prompt is built from.
    enrichment_enabled:
        False selects raw mode.
    generator:
        Blocking prompt -> GenerationResult callable; run in a worker thread.
    """

    def __init__(
        self,
        store: MeasurementStore,
        *,
        enrichment_enabled: bool = False,
        generator: Optional[TextGenerator] = None,
        language: str = "Ukrainian",
        max_chars: int = 200,
    ) -> None:
        self.store = store
        self.enrichment_enabled = enrichment_enabled
        self.generator: TextGenerator = generator or generate_text
        self.language = language
        self.max_chars = max_chars

    async def compose(self, raw_text: str) -> Notification:
        if not self.enrichment_enabled:
            return Notification(text=raw_text)

        records = self.store.last(2)
        if not records:
            return Notification(text=fallback_text(raw_text), error="no measurements stored")

        prompt = build_prompt(records, language=self.language, max_chars=self.max_chars)
        try:
            result = await asyncio.to_thread(self.generator, prompt)
        except GenerationError as exc:
            return Notification(text=fallback_text(raw_text), error=str(exc))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected error from the generation chain")
            return Notification(text=fallback_text(raw_text), error=repr(exc))

        text = (result.text or "").strip() if result is not None else ""
        if not text:
            return Notification(text=fallback_text(raw_text), error="empty generation result")

        logger.debug("Notification generated by %s %s", result.backend, result.raw)
        return Notification(text=text, enriched=True)
