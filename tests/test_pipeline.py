"""Tests for the pipeline coordinator, history and event broadcaster."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from lulu_companion.domain.alert import ConnectionAlert
from lulu_companion.domain.analysis import AnalysisResult
from lulu_companion.domain.enums import AnalysisStatus, EventKind, Recommendation
from lulu_companion.domain.events import AlertDetected, AlertEnriched, AnalysisCompleted
from lulu_companion.enrich.orchestrator import EnrichmentOrchestrator
from lulu_companion.pipeline.coordinator import PipelineCoordinator
from lulu_companion.pipeline.history import AnalysisHistory
from lulu_companion.services.event_broadcaster import EventBroadcaster

from tests.conftest import StaticLookup, make_alert


class GatedClassifier:
    """Classifier whose answers are released one alert at a time."""

    def __init__(self) -> None:
        self.gates: dict[str, asyncio.Event] = {}
        self.seen: list[ConnectionAlert] = []

    def release(self, alert: ConnectionAlert) -> None:
        self.gates.setdefault(alert.ip_address, asyncio.Event()).set()

    async def classify(self, alert: ConnectionAlert) -> AnalysisResult:
        self.seen.append(alert)
        await self.gates.setdefault(alert.ip_address, asyncio.Event()).wait()
        return AnalysisResult(
            alert=alert,
            status=AnalysisStatus.COMPLETED,
            recommendation=Recommendation.ALLOW,
            confidence=0.8,
            summary=f"verdict for {alert.ip_address}",
        )


def _enricher() -> EnrichmentOrchestrator:
    return EnrichmentOrchestrator(
        whois=StaticLookup("whois", "OrgName: Example"),
        geo=StaticLookup("geo", "Amsterdam, Netherlands"),
        reverse_dns=StaticLookup("reverse_dns", "host.example.nl"),
        timeout=1.0,
    )


def _coordinator(classifier) -> tuple[PipelineCoordinator, list]:
    events: list = []

    async def sink(event) -> None:
        events.append(event)

    coordinator = PipelineCoordinator(asyncio.Queue(), _enricher(), classifier, publish=sink)
    return coordinator, events


# ── Coordinator ──────────────────────────────────────────────────────────────


class TestPipelineCoordinator:
    @pytest.mark.asyncio
    async def test_single_alert_event_sequence(self) -> None:
        classifier = GatedClassifier()
        coordinator, events = _coordinator(classifier)
        alert = make_alert()
        classifier.release(alert)

        task = await coordinator.accept(AlertDetected(alert=alert))
        result = await task

        assert [e.kind for e in events] == [
            EventKind.ALERT_DETECTED,
            EventKind.ALERT_ENRICHED,
            EventKind.ANALYSIS_COMPLETED,
        ]
        enriched = events[1].alert
        assert enriched.alert_id == alert.alert_id
        assert enriched.geo_location == "Amsterdam, Netherlands"
        assert classifier.seen == [enriched]
        assert events[2].result is result
        assert events[2].superseded is False
        assert coordinator.history.get(alert.alert_id) is result

    @pytest.mark.asyncio
    async def test_pending_recorded_immediately(self) -> None:
        classifier = GatedClassifier()
        coordinator, _ = _coordinator(classifier)
        alert = make_alert()

        task = await coordinator.accept(AlertDetected(alert=alert))
        pending = coordinator.history.get(alert.alert_id)
        assert pending is not None
        assert pending.status == AnalysisStatus.PENDING
        assert coordinator.current_alert_id == alert.alert_id
        assert coordinator.in_flight == 1

        classifier.release(alert)
        await task
        assert coordinator.history.get(alert.alert_id).is_terminal
        assert coordinator.in_flight == 0

    @pytest.mark.asyncio
    async def test_older_result_is_flagged_superseded(self) -> None:
        classifier = GatedClassifier()
        coordinator, events = _coordinator(classifier)
        first = make_alert(ip_address="1.1.1.1")
        second = make_alert(ip_address="2.2.2.2")

        first_task = await coordinator.accept(AlertDetected(alert=first))
        second_task = await coordinator.accept(AlertDetected(alert=second))
        classifier.release(second)
        await second_task
        classifier.release(first)
        await first_task

        completed = [e for e in events if isinstance(e, AnalysisCompleted)]
        assert len(completed) == 2
        by_ip = {e.result.alert.ip_address: e for e in completed}
        assert by_ip["2.2.2.2"].superseded is False
        assert by_ip["1.1.1.1"].superseded is True
        assert coordinator.current_alert_id == second.alert_id

    @pytest.mark.asyncio
    async def test_evicted_alert_not_reopened_by_late_result(self) -> None:
        classifier = GatedClassifier()
        history = AnalysisHistory(max_size=1)
        coordinator = PipelineCoordinator(asyncio.Queue(), _enricher(), classifier, history=history)
        first = make_alert(ip_address="1.1.1.1")
        second = make_alert(ip_address="2.2.2.2")

        first_task = await coordinator.accept(AlertDetected(alert=first))
        second_task = await coordinator.accept(AlertDetected(alert=second))
        classifier.release(first)
        classifier.release(second)
        await asyncio.gather(first_task, second_task)

        assert coordinator.history is history
        assert first.alert_id not in history
        assert [r.alert_id for r in history.items()] == [second.alert_id]
        assert history.latest().is_terminal

    @pytest.mark.asyncio
    async def test_exactly_one_completion_per_alert(self) -> None:
        classifier = GatedClassifier()
        coordinator, events = _coordinator(classifier)
        alerts = [make_alert(ip_address=f"10.0.0.{i}") for i in range(5)]
        for alert in alerts:
            classifier.release(alert)
            await coordinator.accept(AlertDetected(alert=alert))
        await coordinator.drain()

        completed = [e.result.alert_id for e in events if isinstance(e, AnalysisCompleted)]
        assert sorted(map(str, completed)) == sorted(str(a.alert_id) for a in alerts)

    @pytest.mark.asyncio
    async def test_enrichment_crash_keeps_bare_alert(self) -> None:
        enricher = MagicMock()
        enricher.enrich = AsyncMock(side_effect=RuntimeError("resolver gone"))
        classifier = GatedClassifier()
        events: list = []

        async def sink(event) -> None:
            events.append(event)

        coordinator = PipelineCoordinator(asyncio.Queue(), enricher, classifier, publish=sink)
        alert = make_alert()
        classifier.release(alert)
        await (await coordinator.accept(AlertDetected(alert=alert)))

        assert isinstance(events[1], AlertEnriched)
        assert events[1].alert is alert
        assert events[2].result.status == AnalysisStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_classifier_crash_becomes_failed_result(self) -> None:
        classifier = MagicMock()
        classifier.classify = AsyncMock(side_effect=RuntimeError("unexpected"))
        coordinator, events = _coordinator(classifier)
        alert = make_alert()
        await (await coordinator.accept(AlertDetected(alert=alert)))

        result = events[-1].result
        assert result.status == AnalysisStatus.FAILED
        assert result.details == "unexpected"

    @pytest.mark.asyncio
    async def test_publish_failure_does_not_stop_pipeline(self) -> None:
        classifier = GatedClassifier()
        sink = AsyncMock(side_effect=ConnectionError("ui gone"))
        coordinator = PipelineCoordinator(asyncio.Queue(), _enricher(), classifier, publish=sink)
        alert = make_alert()
        classifier.release(alert)
        result = await (await coordinator.accept(AlertDetected(alert=alert)))
        assert result.status == AnalysisStatus.COMPLETED
        assert sink.await_count == 3

    @pytest.mark.asyncio
    async def test_run_consumes_queue(self) -> None:
        classifier = GatedClassifier()
        queue: asyncio.Queue = asyncio.Queue()
        events: list = []

        async def sink(event) -> None:
            events.append(event)

        coordinator = PipelineCoordinator(queue, _enricher(), classifier, publish=sink)
        alert = make_alert()
        classifier.release(alert)
        runner = asyncio.create_task(coordinator.run())
        await queue.put(AlertDetected(alert=alert))
        await asyncio.wait_for(queue.join(), timeout=2.0)
        await coordinator.drain()
        runner.cancel()
        await asyncio.gather(runner, return_exceptions=True)

        assert events[-1].kind == EventKind.ANALYSIS_COMPLETED


# ── History ──────────────────────────────────────────────────────────────────


class TestAnalysisHistory:
    def test_pending_replaced_in_place(self) -> None:
        history = AnalysisHistory()
        first, second = make_alert(ip_address="1.1.1.1"), make_alert(ip_address="2.2.2.2")
        history.record(AnalysisResult.pending(first))
        history.record(AnalysisResult.pending(second))
        history.record(AnalysisResult.failed(first, "boom"))

        items = history.items()
        assert [r.alert.ip_address for r in items] == ["2.2.2.2", "1.1.1.1"]
        assert items[1].status == AnalysisStatus.FAILED
        assert history.latest().alert_id == second.alert_id

    def test_bounded(self) -> None:
        history = AnalysisHistory(max_size=2)
        alerts = [make_alert(ip_address=f"10.0.0.{i}") for i in range(3)]
        for alert in alerts:
            history.record(AnalysisResult.pending(alert))
        assert len(history) == 2
        assert history.get(alerts[0].alert_id) is None

    def test_late_result_for_evicted_alert_dropped(self) -> None:
        history = AnalysisHistory(max_size=1)
        first, second = make_alert(ip_address="1.1.1.1"), make_alert(ip_address="2.2.2.2")
        history.record(AnalysisResult.pending(first))
        history.record(AnalysisResult.pending(second))
        assert first.alert_id not in history

        assert history.record(AnalysisResult.failed(first, "boom")) is False
        assert first.alert_id not in history
        assert [r.alert_id for r in history.items()] == [second.alert_id]

    def test_empty(self) -> None:
        history = AnalysisHistory()
        assert history.latest() is None
        assert history.to_payload() == []

    def test_invalid_size(self) -> None:
        with pytest.raises(ValueError):
            AnalysisHistory(max_size=0)


# ── Broadcaster ──────────────────────────────────────────────────────────────


class TestEventBroadcaster:
    @pytest.mark.asyncio
    async def test_publish_reaches_every_subscriber(self) -> None:
        broadcaster = EventBroadcaster()
        sockets = [AsyncMock(), AsyncMock()]
        for ws in sockets:
            await broadcaster.connect(ws)

        event = AlertDetected(alert=make_alert())
        await broadcaster.publish(event)
        for ws in sockets:
            ws.accept.assert_awaited_once()
            payload = ws.send_json.await_args.args[0]
            assert payload["kind"] == "alert_detected"
            assert payload["alert"]["ip_address"] == "93.184.216.34"

    @pytest.mark.asyncio
    async def test_failed_subscriber_dropped(self) -> None:
        broadcaster = EventBroadcaster()
        healthy, broken = AsyncMock(), AsyncMock()
        broken.send_json.side_effect = RuntimeError("closed")
        await broadcaster.connect(healthy)
        await broadcaster.connect(broken)

        await broadcaster.broadcast_json({"kind": "ping"})
        assert broadcaster.client_count == 1
        await broadcaster.disconnect(healthy)
        assert broadcaster.client_count == 0
