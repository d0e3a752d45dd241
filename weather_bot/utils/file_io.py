# weather_bot/utils/file_io.py
# -*- coding: utf-8 -*-
"""
Weather Telemetry Bot — file_io utilities
-----------------------------------------
Helpers for the small JSON state blob.

- Reads are tolerant: a missing or broken file yields `default`.
- Writes go to a temp file next to the target which is then renamed over
  it, so a crash mid-write never leaves half a blob behind.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def read_json_safely(
    path: Path,
    default: Optional[T] = None,
    *,
    log_missing: bool = False,
) -> Any:
    """
    Read and parse a JSON file.

    Returns `default` when the file is missing (logged at INFO only if
    `log_missing`), unreadable or not valid JSON (logged at WARNING).
    """
    if not path.is_file():
        if log_missing:
            logger.info("read_json_safely: file not found: %s", path)
        return default

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.warning("read_json_safely: failed to read %s: %s", path, exc)
        return default

    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning("read_json_safely: invalid JSON in %s: %s", path, exc)
        return default


def write_json_atomic(path: Path, data: Dict[str, Any]) -> None:
    """
    Serialize `data` to `path` as indented UTF-8 JSON.

    Raises OSError when the directory or the file cannot be written; the
    caller decides whether that is fatal.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.error("write_json_atomic: failed to create dir %s: %s", path.parent, exc)
        raise

    tmp_path = path.with_suffix(path.suffix + ".tmp")

    try:
        tmp_path.write_text(
            json.dumps(data, ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        tmp_path.replace(path)
    except OSError as exc:
        logger.error("write_json_atomic: failed to write %s: %s", path, exc)
        raise
