# weather_bot/utils/__init__.py
# -*- coding: utf-8 -*-
"""
Weather Telemetry Bot — Utility toolbox
---------------------------------------
Shared helpers used across the service:

- file_io   : JSON blob read / atomic write
- logging   : central logging configuration
- timers    : small timing helpers for the generation backends

    from weather_bot.utils import setup_logging, read_json_safely
"""

from __future__ import annotations

from .file_io import (  # noqa: F401
    read_json_safely,
    write_json_atomic,
)

from .logging import (  # noqa: F401
    setup_logging,
    get_logger,
)

from .timers import (  # noqa: F401
    Stopwatch,
    log_duration,
)
