# weather_bot/core/generate.py
# -*- coding: utf-8 -*-
"""
Weather Telemetry Bot — Generation chain
----------------------------------------
Turns a prompt into text using the configured backends, in order:

    1) OpenAI-compatible online models (settings.openai_model_candidates)
    2) Local Ollama model

If every enabled backend fails, GenerationError is raised and the
composer falls back to the raw measurement text. This module never
returns an empty string.
"""

from __future__ import annotations

import logging
from typing import Dict, List

from weather_bot.core.config import settings
from weather_bot.core.types import GenerationError, GenerationResult
from weather_bot.providers.ollama_local import call_ollama_model
from weather_bot.providers.openai_chat import call_openai_model
from weather_bot.utils import Stopwatch, log_duration

logger = logging.getLogger(__name__)


def build_messages(prompt: str) -> List[Dict[str, str]]:
    """The whole prompt goes in as a single system message."""
    return [{"role": "system", "content": prompt}]


@log_duration("generate_text", logger)
def generate_text(prompt: str) -> GenerationResult:
    """
    Run the backend chain for one prompt.

    Returns
    -------
    GenerationResult
        .text    -> generated text (stripped, non-empty)
        .backend -> "openai" | "ollama"
        .raw     -> backend metadata

    Raises
    ------
    GenerationError
        When no backend is enabled or all of them failed.
    """
    messages = build_messages(prompt)
    failures: List[str] = []

    # 1) Online models, in priority order
    if settings.openai_enabled and settings.openai_api_key:
        model_list = settings.openai_model_candidates or []
        if not model_list:
            logger.warning(
                "OpenAI backend is enabled and API key is set, but no "
                "openai_model_candidates configured; skipping it."
            )
        for model_name in model_list:
            try:
                with Stopwatch(f"openai {model_name}", logger):
                    text = call_openai_model(messages, model_name)
                return GenerationResult(
                    text=text,
                    backend="openai",
                    raw={"model": model_name},
                )
            except GenerationError as exc:
                logger.warning("OpenAI model %s failed: %s", model_name, exc)
                failures.append(f"openai/{model_name}: {exc}")

    # 2) Local model
    if settings.ollama_enabled:
        try:
            with Stopwatch("ollama", logger):
                text = call_ollama_model(messages)
            return GenerationResult(
                text=text,
                backend="ollama",
                raw={"model": settings.ollama_model, "url": settings.ollama_url},
            )
        except GenerationError as exc:
            logger.warning("Ollama failed: %s", exc)
            failures.append(f"ollama: {exc}")

    if not failures:
        raise GenerationError("No generation backend is configured.")
    raise GenerationError("; ".join(failures))
