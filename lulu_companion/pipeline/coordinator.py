"""PipelineCoordinator: the single consumer of the alert event channel.

For every AlertDetected taken off the queue the coordinator:

    1. records a pending AnalysisResult and makes the alert current,
    2. publishes AlertDetected,
    3. spawns a background task that enriches the alert (publishing
       AlertEnriched), classifies it, records the terminal result and
       publishes AnalysisCompleted.

Latest wins: a newer alert does not cancel an older one's task.  The older
task still runs to completion and still produces exactly one
AnalysisCompleted, flagged ``superseded`` so the presentation layer can
ignore it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional
from uuid import UUID

from lulu_companion.classify.client import ClassificationClient
from lulu_companion.domain.alert import ConnectionAlert
from lulu_companion.domain.analysis import AnalysisResult
from lulu_companion.domain.events import (
    AlertDetected,
    AlertEnriched,
    AnalysisCompleted,
    PipelineEvent,
)
from lulu_companion.enrich.orchestrator import EnrichmentOrchestrator
from lulu_companion.pipeline.history import AnalysisHistory

logger = logging.getLogger(__name__)

EventSink = Callable[[PipelineEvent], Awaitable[None]]


async def _discard(event: PipelineEvent) -> None:
    return None


class PipelineCoordinator:
    """Wires enrichment and classification behind the monitor's queue.

    Args:
        queue: Channel the AlertMonitor publishes to.
        enricher: Runs the network lookups.
        classifier: Produces the verdict.
        history: Where pending and terminal results are kept.
        publish: Async sink for pipeline events (presentation layer).
    """

    def __init__(
        self,
        queue: asyncio.Queue,
        enricher: EnrichmentOrchestrator,
        classifier: ClassificationClient,
        history: AnalysisHistory | None = None,
        publish: EventSink | None = None,
    ) -> None:
        self._queue = queue
        self._enricher = enricher
        self._classifier = classifier
        self._history = history if history is not None else AnalysisHistory()
        self._publish = publish or _discard
        self._current: Optional[UUID] = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def current_alert_id(self) -> Optional[UUID]:
        return self._current

    @property
    def history(self) -> AnalysisHistory:
        return self._history

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    # ── Loop ─────────────────────────────────────────────────────────────

    async def run(self) -> None:
        """Consume events until cancelled."""
        logger.info("Pipeline coordinator started")
        try:
            while True:
                event = await self._queue.get()
                try:
                    await self.accept(event)
                finally:
                    self._queue.task_done()
        finally:
            logger.info("Pipeline coordinator stopped (%d task(s) in flight)", len(self._tasks))

    async def accept(self, event: AlertDetected) -> asyncio.Task:
        """Start processing one detected alert; returns its background task."""
        alert = event.alert
        self._current = alert.alert_id
        self._history.record(AnalysisResult.pending(alert))
        await self._emit(event)

        task = asyncio.create_task(self._process(alert), name=f"analysis-{alert.alert_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every in-flight analysis to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ── Per-alert work ───────────────────────────────────────────────────

    async def _process(self, alert: ConnectionAlert) -> AnalysisResult:
        try:
            enriched = await self._enricher.enrich(alert)
        except Exception as exc:
            logger.error("Enrichment of %s failed: %s", alert.alert_id, exc, exc_info=True)
            enriched = alert

        if alert.alert_id in self._history:
            self._history.record(AnalysisResult.pending(enriched))
        await self._emit(AlertEnriched(alert=enriched))

        try:
            result = await self._classifier.classify(enriched)
        except Exception as exc:
            logger.error("Classification of %s failed: %s", alert.alert_id, exc, exc_info=True)
            result = AnalysisResult.failed(enriched, str(exc))

        self._history.record(result)
        superseded = self._current != alert.alert_id
        if superseded:
            logger.info("Analysis for %s finished after a newer alert arrived", alert.alert_id)
        await self._emit(AnalysisCompleted(result=result, superseded=superseded))
        return result

    async def _emit(self, event: PipelineEvent) -> None:
        try:
            await self._publish(event)
        except Exception as exc:
            logger.error("Publishing %s failed: %s", event.kind.value, exc, exc_info=True)
