# weather_bot/utils/timers.py
# -*- coding: utf-8 -*-
"""
Weather Telemetry Bot — timing utilities
----------------------------------------
Latency logging for the generation backends, which are the only slow calls
in the relay.
"""

from __future__ import annotations

import functools
import logging
import time
from contextlib import ContextDecorator
from typing import Callable, Optional, TypeVar

F = TypeVar("F", bound=Callable[..., object])


class Stopwatch(ContextDecorator):
    """
    Context manager that logs how long its block took.

        with Stopwatch("openai gpt-3.5-turbo", logger):
            call_openai_model(...)

    logs "openai gpt-3.5-turbo took 0.812 s". `elapsed` stays readable
    after the block.
    """

    def __init__(
        self,
        label: str,
        logger: Optional[logging.Logger] = None,
        level: int = logging.DEBUG,
    ) -> None:
        self.label = label
        self.logger = logger or logging.getLogger(__name__)
        self.level = level
        self.elapsed: float = 0.0
        self._start: float = 0.0

    def __enter__(self) -> "Stopwatch":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, exc_tb) -> None:  # type: ignore[override]
        self.elapsed = time.perf_counter() - self._start
        self.logger.log(self.level, "%s took %.3f s", self.label, self.elapsed)


def log_duration(
    label: str,
    logger: Optional[logging.Logger] = None,
    level: int = logging.INFO,
) -> Callable[[F], F]:
    """Decorator factory: log the wall time of every call, even failed ones."""
    log = logger or logging.getLogger(__name__)

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                log.log(level, "%s took %.3f s", label, time.perf_counter() - start)

        return wrapper  # type: ignore[return-value]

    return decorator
