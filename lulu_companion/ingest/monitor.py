"""AlertMonitor: the poll loop that turns alert windows into AlertDetected events.

Each tick runs Locator -> Flattener -> Extractor -> Deduplicator
synchronously (in a worker thread, since the accessibility calls block)
and pushes accepted alerts onto a bounded asyncio.Queue consumed by the
pipeline coordinator.

When the queue is full the oldest pending event is dropped: the newest
alert is the one the user is looking at.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from lulu_companion.accessibility.flatten import flatten_element_tree
from lulu_companion.accessibility.locator import WindowLocator
from lulu_companion.domain.alert import ConnectionAlert
from lulu_companion.domain.events import AlertDetected
from lulu_companion.extract.extractor import FieldExtractor
from lulu_companion.ingest.dedup import AlertDeduplicator

logger = logging.getLogger(__name__)


class AlertMonitor:
    """Polls for the firewall's alert window at a fixed period.

    Args:
        locator: Finds the alert window.
        queue: Event channel shared with the coordinator.
        extractor: Fragment -> record heuristic.
        deduplicator: Suppresses repeats of an unchanged dialog.
        poll_interval: Seconds between ticks.
        max_depth: Depth guard for element-tree flattening.
        max_nodes: Node-count guard for element-tree flattening.
    """

    def __init__(
        self,
        locator: WindowLocator,
        queue: asyncio.Queue,
        extractor: FieldExtractor | None = None,
        deduplicator: AlertDeduplicator | None = None,
        poll_interval: float = 0.5,
        max_depth: int = 32,
        max_nodes: int = 2000,
    ) -> None:
        self._locator = locator
        self._queue = queue
        self._extractor = extractor or FieldExtractor()
        self._dedup = deduplicator or AlertDeduplicator()
        self._poll_interval = poll_interval
        self._max_depth = max_depth
        self._max_nodes = max_nodes
        self._running = False
        self._dropped_events = 0

    # ── Introspection ────────────────────────────────────────────────────

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def dropped_events(self) -> int:
        return self._dropped_events

    @property
    def deduplicator(self) -> AlertDeduplicator:
        return self._dedup

    # ── One tick ─────────────────────────────────────────────────────────

    def poll_once(self) -> Optional[ConnectionAlert]:
        """Look for an alert window and return a newly accepted alert, if any."""
        window = self._locator.find_alert_window()
        if window is None:
            return None

        fragments = flatten_element_tree(
            window, max_depth=self._max_depth, max_nodes=self._max_nodes
        )
        draft = self._extractor.extract(fragments)
        if not draft.is_conclusive:
            logger.debug("Alert window found but extraction inconclusive (%d fragments)", len(fragments))
            return None

        alert = self._dedup.offer(draft)
        if alert is not None:
            logger.info("Detected LuLu alert: %s", alert)
        return alert

    def publish(self, alert: ConnectionAlert) -> None:
        """Push an AlertDetected event, evicting the oldest one if the queue is full."""
        event = AlertDetected(alert=alert)
        while True:
            try:
                self._queue.put_nowait(event)
                return
            except asyncio.QueueFull:
                try:
                    stale = self._queue.get_nowait()
                except asyncio.QueueEmpty:
                    continue
                self._queue.task_done()
                self._dropped_events += 1
                logger.warning("Event queue full; dropped stale alert %s", stale.alert.alert_id)

    # ── Loop ─────────────────────────────────────────────────────────────

    async def run(self) -> None:
        """Poll until stop() is called."""
        source = self._locator.source
        if not source.is_trusted(prompt=True):
            logger.warning("Accessibility permission not granted; alert windows cannot be read")

        self._running = True
        logger.info("Started monitoring for LuLu alerts (every %.2fs)", self._poll_interval)
        try:
            while self._running:
                try:
                    alert = await asyncio.to_thread(self.poll_once)
                except Exception as exc:
                    logger.error("Poll tick failed: %s", exc, exc_info=True)
                    alert = None
                if alert is not None:
                    self.publish(alert)
                await asyncio.sleep(self._poll_interval)
        finally:
            self._running = False
            logger.info("Stopped monitoring")

    def stop(self) -> None:
        self._running = False
