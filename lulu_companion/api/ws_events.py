"""Event stream for the presentation layer.

Paths:
    WS  /ws/events     history snapshot on connect, then every pipeline event
    GET /api/analyses  current history as JSON

Architecture:
    LuLu window  ->  AlertMonitor  ->  queue  ->  PipelineCoordinator
                                                       |
    UI  <-  /ws/events  <-  EventBroadcaster  <--------+
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from lulu_companion.pipeline.history import AnalysisHistory
from lulu_companion.services.event_broadcaster import EventBroadcaster

logger = logging.getLogger(__name__)


def create_events_router(broadcaster: EventBroadcaster, history: AnalysisHistory) -> APIRouter:
    """Factory that wires the event endpoints to a broadcaster and history."""

    router = APIRouter()

    @router.websocket("/ws/events")
    async def stream_events(websocket: WebSocket) -> None:
        await broadcaster.connect(websocket)
        try:
            await websocket.send_json({"kind": "history", "analyses": history.to_payload()})
            while True:
                # Subscribers only listen; inbound messages are ignored.
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            await broadcaster.disconnect(websocket)

    @router.get("/api/analyses", tags=["analysis"])
    async def list_analyses() -> dict[str, Any]:
        return {"analyses": history.to_payload(), "count": len(history)}

    return router
