# weather_bot/providers/openai_chat.py
# -*- coding: utf-8 -*-
"""
Weather Telemetry Bot — OpenAI-compatible online provider
---------------------------------------------------------
The only place that knows how to talk to a chat-completions endpoint
(OpenAI itself, or anything exposing the same API via OPENAI_BASE_URL).

Used by weather_bot/core/generate.py, which walks the model candidate
list and moves on to the local backend when this provider raises.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

import requests

from weather_bot.core.config import settings
from weather_bot.core.types import GenerationError

logger = logging.getLogger(__name__)


def _build_payload(messages: List[Dict[str, str]], model_name: str) -> Dict[str, Any]:
    return {
        "model": model_name,
        "messages": messages,
        "temperature": settings.openai_temperature,
        "max_tokens": settings.openai_max_tokens,
    }


def call_openai_model(messages: List[Dict[str, str]], model_name: str) -> str:
    """
    Call one chat-completions model and return the assistant text.

    Raises
    ------
    GenerationError
        If the backend is disabled, has no API key, or the HTTP/JSON fails,
        or the reply is empty.
    """
    if not settings.openai_enabled:
        raise GenerationError("OpenAI backend is disabled in config.")

    api_key = settings.openai_api_key
    if not api_key:
        raise GenerationError("OpenAI API key is missing.")

    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }

    try:
        resp = requests.post(
            settings.openai_base_url,
            headers=headers,
            json=_build_payload(messages, model_name),
            timeout=settings.openai_timeout_s,
        )
    except requests.RequestException as exc:
        raise GenerationError(f"OpenAI HTTP error: {exc}") from exc

    if resp.status_code != 200:
        text_preview = resp.text[:200].replace("\n", " ")
        raise GenerationError(f"OpenAI HTTP {resp.status_code}: {text_preview}")

    try:
        data = resp.json()
    except ValueError as exc:
        raise GenerationError("OpenAI returned non-JSON response.") from exc

    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise GenerationError(
            "OpenAI response JSON missing choices[0].message.content"
        ) from exc

    if not isinstance(content, str) or not content.strip():
        raise GenerationError("OpenAI returned empty content.")

    return content.strip()
