# weather_bot/runtime_state/persistence.py
# -*- coding: utf-8 -*-
"""
Weather Telemetry Bot — Persisted state
---------------------------------------

The measurement history and the subscriber set survive restarts in one
JSON blob:

    {
      "WeatherHistory": [{"temperature": 20.0, "humidity": 50.0, "pressure": 1010.0}, ...],
      "Users": [123456789, ...]
    }

Design notes
~~~~~~~~~~~~
- Loaded once at startup, rewritten in full after every mutation.
- Requester queues are never written: a request that was in flight when
  the process stopped cannot be answered after a restart.
- Single process, single event loop. Writes are synchronous and therefore
  serialized; two processes sharing one file would corrupt it.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from weather_bot.models.records import MeasurementRecord
from weather_bot.runtime_state.measurements import MeasurementStore
from weather_bot.runtime_state.subscribers import SubscriberRegistry
from weather_bot.utils import get_logger, read_json_safely, write_json_atomic

logger = get_logger("weather_bot.runtime_state")


class PersistedState(BaseModel):
    """On-disk layout of the state blob."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    history: List[MeasurementRecord] = Field(default_factory=list, alias="WeatherHistory")
    users: List[int] = Field(default_factory=list, alias="Users")


DEFAULT_STATE_PATH = Path("data.json")
_USER_ID = TypeAdapter(int)


class StateGateway:
    """
    Reads and writes the state blob.

    Parameters
    ----------
    path:
        Blob location. Relative paths resolve against the working directory
        at the time of each read/write.
    """

    def __init__(self, path: Optional[Union[Path, str]] = None) -> None:
        self.path: Path = Path(path) if path is not None else DEFAULT_STATE_PATH

    # ------------------------------------------------------------------
    # Low-level I/O
    # ------------------------------------------------------------------

    def load(self) -> PersistedState:
        """
        Read the blob.

        - Missing file: empty state.
        - Unreadable / invalid JSON / not an object: warning, empty state.
        - Invalid history entries or user ids: skipped one by one, the
          rest is kept.
        """
        raw: Any = read_json_safely(self.path, default=None, log_missing=True)
        if raw is None:
            return PersistedState()

        if not isinstance(raw, dict):
            logger.warning(
                "[StateGateway] %s does not hold a JSON object; starting empty.",
                self.path,
            )
            return PersistedState()

        # History and users are validated independently, entry by entry.
        history: List[MeasurementRecord] = []
        for entry in self._entries(raw, "WeatherHistory"):
            try:
                history.append(MeasurementRecord.model_validate(entry))
            except ValidationError:
                logger.warning("[StateGateway] Skipping invalid history entry: %r", entry)

        users: List[int] = []
        for entry in self._entries(raw, "Users"):
            try:
                users.append(_USER_ID.validate_python(entry))
            except ValidationError:
                logger.warning("[StateGateway] Skipping invalid user id: %r", entry)

        state = PersistedState(history=history, users=users)
        logger.info(
            "[StateGateway] Loaded %d records and %d users from %s",
            len(state.history),
            len(state.users),
            self.path,
        )
        return state

    def _entries(self, raw: Dict[str, Any], key: str) -> List[Any]:
        entries = raw.get(key, [])
        if not isinstance(entries, list):
            logger.warning("[StateGateway] %r in %s is not a list; ignoring it.", key, self.path)
            return []
        return entries

    def write(self, state: PersistedState) -> None:
        """Rewrite the blob. Raises OSError on failure."""
        payload: Dict[str, Any] = state.model_dump(mode="json", by_alias=True, exclude_none=True)
        write_json_atomic(self.path, payload)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def restore(self, store: MeasurementStore, registry: SubscriberRegistry) -> PersistedState:
        """
        Merge the blob into live state: history is replaced wholesale,
        subscribers are added to whoever is already registered.
        """
        state = self.load()
        store.replace(state.history)
        for user_id in state.users:
            registry.subscribe(user_id)
        return state

    def save(self, store: MeasurementStore, registry: SubscriberRegistry) -> bool:
        """Persist the current state. Returns False (and logs) on write failure."""
        state = PersistedState(
            history=store.records(),
            users=list(registry.broadcast_targets()),
        )
        try:
            self.write(state)
        except OSError as exc:
            logger.error("[StateGateway] Failed to persist state to %s: %s", self.path, exc)
            return False
        return True
