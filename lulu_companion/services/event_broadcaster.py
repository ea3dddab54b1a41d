"""Fans pipeline events out to connected presentation-layer WebSockets."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import WebSocket

from lulu_companion.domain.events import PipelineEvent

logger = logging.getLogger(__name__)


class EventBroadcaster:
    """Tracks subscriber WebSockets and pushes every pipeline event to each."""

    def __init__(self) -> None:
        self._clients: set[WebSocket] = set()
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._clients.add(websocket)
        logger.info("Subscriber connected (%d total)", len(self._clients))

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._clients.discard(websocket)
        logger.info("Subscriber disconnected (%d remaining)", len(self._clients))

    @property
    def client_count(self) -> int:
        return len(self._clients)

    async def publish(self, event: PipelineEvent) -> None:
        """EventSink for the pipeline coordinator."""
        await self.broadcast_json(event.to_payload())

    async def broadcast_json(self, data: dict[str, Any]) -> None:
        """Send a JSON payload to every subscriber, dropping the ones that fail."""
        async with self._lock:
            clients = list(self._clients)

        dead: list[WebSocket] = []
        for ws in clients:
            try:
                await ws.send_json(data)
            except Exception as exc:
                logger.warning("Dropping subscriber after send failure: %s", exc)
                dead.append(ws)

        if dead:
            async with self._lock:
                for ws in dead:
                    self._clients.discard(ws)
