# weather_bot/routers/status.py
# -*- coding: utf-8 -*-
"""
Weather Telemetry Bot — /status router
--------------------------------------
Read-only view of the relay's in-memory state:

- subscriber count and history length
- pending device list / info requests
- latest stored measurement
- core variant (enrichment flag, payload schema)
- whether the MQTT bridge is currently connected

The runtime is taken from `app.state.runtime`, set by the lifespan in
weather_bot/main.py.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, HTTPException, Request

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/status", tags=["status"])


def _runtime(request: Request):
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(status_code=503, detail="Relay runtime is not running.")
    return runtime


@router.get("")
async def status_all(request: Request) -> Dict[str, Any]:
    runtime = _runtime(request)
    snapshot = runtime.dispatcher.snapshot()
    snapshot["bus_connected"] = bool(getattr(runtime.bus, "connected", False))
    snapshot["chat_enabled"] = runtime.telegram is not None
    return snapshot


@router.get("/history")
async def status_history(request: Request, limit: int = 10) -> List[Dict[str, Any]]:
    """Most recent measurements, oldest first."""
    runtime = _runtime(request)
    if limit < 0:
        raise HTTPException(status_code=422, detail="limit must be >= 0")
    return [record.model_dump(mode="json") for record in runtime.dispatcher.store.last(limit)]
