# weather_bot/providers/ollama_local.py
# -*- coding: utf-8 -*-
"""

Weather Telemetry Bot — local Ollama provider

"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

import requests

from weather_bot.core.config import settings
from weather_bot.core.types import GenerationError

logger = logging.getLogger(__name__)


def call_ollama_model(messages: List[Dict[str, str]]) -> str:
    """
    Call a local Ollama model via its /api/chat endpoint.

    Expected config:
        settings.ollama_url   e.g. "http://localhost:11434/api/chat"
        settings.ollama_model e.g. "llama3.2:latest"

    Raises GenerationError when disabled, unconfigured, or on HTTP/JSON
    failure, so the caller can fall back to the raw notification.
    """
    if not settings.ollama_enabled:
        raise GenerationError("Ollama backend is disabled in config.")

    base_url = settings.ollama_url
    model = settings.ollama_model
    if not base_url or not model:
        raise GenerationError(
            "Ollama is not configured. Set OLLAMA_URL and OLLAMA_MODEL "
            "or disable the backend."
        )

    # stream=false so the reply is a single JSON object
    payload: Dict[str, Any] = {
        "model": model,
        "messages": messages,
        "stream": False,
    }

    try:
        resp = requests.post(base_url, json=payload, timeout=settings.ollama_timeout_s)
    except requests.RequestException as exc:
        raise GenerationError(f"Ollama HTTP error: {exc}") from exc

    if resp.status_code != 200:
        text_preview = resp.text[:200].replace("\n", " ")
        raise GenerationError(f"Ollama HTTP {resp.status_code}: {text_preview}")

    try:
        data = resp.json()
    except ValueError as exc:
        raise GenerationError("Ollama returned non-JSON response.") from exc

    if not isinstance(data, dict):
        raise GenerationError("Ollama returned an unexpected JSON document.")

    # {"model": ..., "message": {"role": "assistant", "content": "..."}, "done": true}
    message = data.get("message") or {}
    content = message.get("content")

    if not isinstance(content, str) or not content.strip():
        raise GenerationError("Ollama returned empty content.")

    return content.strip()
