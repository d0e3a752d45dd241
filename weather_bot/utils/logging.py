# weather_bot/utils/logging.py
# -*- coding: utf-8 -*-
"""
Weather Telemetry Bot — logging utilities
-----------------------------------------
One logging setup for the whole process: the status API (uvicorn), the
MQTT bridge, the Telegram application and the routing core all log through
the root logger with the same format.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

# Third-party loggers that are chatty at INFO (polling, HTTP calls, pings).
NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "telegram", "aiomqtt")


def setup_logging(
    *,
    debug: bool = False,
    level: Optional[int] = None,
) -> None:
    """
    Configure root logging for the process.

    Parameters
    ----------
    debug:
        DEBUG when True, INFO otherwise. Wired from settings.debug.
    level:
        Explicit level, overrides `debug`.

    Calling it again only adjusts the levels of the existing handlers.
    """
    if level is not None:
        base_level = level
    else:
        base_level = logging.DEBUG if debug else logging.INFO

    root = logging.getLogger()
    if root.handlers:
        root.setLevel(base_level)
        for h in root.handlers:
            h.setLevel(base_level)
        return

    logging.basicConfig(
        level=base_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    noisy_level = os.getenv("WEATHER_BOT_NOISY_LOG_LEVEL", "WARNING")
    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(noisy_level)


def get_logger(name: str) -> logging.Logger:
    """
    Thin wrapper around logging.getLogger.

        from weather_bot.utils import get_logger
        logger = get_logger(__name__)
    """
    return logging.getLogger(name)
