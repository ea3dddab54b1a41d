"""lulu-companion: AI second opinion for LuLu firewall alerts.

This is the application entry point.  It constructs every service
explicitly (monitor, coordinator, enrichment, classifier, credential
pool, history, broadcaster), wires them together, and exposes the event
stream and credential API to the presentation layer.

Run with:  uvicorn lulu_companion.main:app
"""

from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from lulu_companion.accessibility.locator import WindowLocator, WindowSource
from lulu_companion.api.credentials import create_credentials_router
from lulu_companion.api.ws_events import create_events_router
from lulu_companion.classify.client import ClassificationClient
from lulu_companion.classify.providers import build_profiles
from lulu_companion.config import Settings, settings
from lulu_companion.credentials.pool import CredentialPool
from lulu_companion.credentials.store import CredentialStore
from lulu_companion.enrich.lookups import GeoLookup, ReverseDNSLookup, WhoisLookup
from lulu_companion.enrich.orchestrator import EnrichmentOrchestrator
from lulu_companion.ingest.monitor import AlertMonitor
from lulu_companion.pipeline.coordinator import PipelineCoordinator
from lulu_companion.pipeline.history import AnalysisHistory
from lulu_companion.services.event_broadcaster import EventBroadcaster

logger = logging.getLogger(__name__)


def _default_window_source() -> WindowSource | None:
    if sys.platform != "darwin":
        return None
    from lulu_companion.accessibility.macos import MacWindowSource

    return MacWindowSource()


def create_app(
    config: Settings = settings,
    window_source: WindowSource | None = None,
    classifier: ClassificationClient | None = None,
    enricher: EnrichmentOrchestrator | None = None,
) -> FastAPI:
    """Build the service graph and the FastAPI app around it."""

    # ── Credentials ──────────────────────────────────────────────────────

    store = CredentialStore(config.credential_store_path, max_slots=config.max_credential_slots)
    pool = CredentialPool(store=store, env_vars=config.credential_env_vars)

    # ── Enrichment & classification ──────────────────────────────────────

    if enricher is None:
        timeout = config.lookup_timeout_seconds
        enricher = EnrichmentOrchestrator(
            whois=WhoisLookup(command=config.whois_command, timeout=timeout),
            geo=GeoLookup(url_template=config.geo_lookup_url, timeout=timeout),
            reverse_dns=ReverseDNSLookup(command=config.dig_command, timeout=timeout),
            timeout=timeout,
        )

    if classifier is None:
        profiles = build_profiles(
            anthropic_url=config.anthropic_base_url,
            anthropic_version=config.anthropic_version,
            anthropic_model=config.anthropic_model,
            threemate_url=config.threemate_base_url,
            openai_url=config.openai_base_url,
            openai_model=config.openai_model,
            gemini_base_url=config.gemini_base_url,
            gemini_model=config.gemini_model,
            max_tokens=config.max_tokens,
        )
        classifier = ClassificationClient(
            pool,
            profiles=profiles,
            timeout=config.request_timeout_seconds,
            include_raw_fragments=config.prompt_include_raw_fragments,
        )

    # ── Pipeline ─────────────────────────────────────────────────────────

    queue: asyncio.Queue = asyncio.Queue(maxsize=config.event_queue_size)
    history = AnalysisHistory(max_size=config.history_size)
    broadcaster = EventBroadcaster()
    coordinator = PipelineCoordinator(
        queue, enricher, classifier, history=history, publish=broadcaster.publish
    )

    source = window_source or _default_window_source()
    monitor: AlertMonitor | None = None
    if source is None:
        logger.warning("No accessibility backend on %s; alert monitoring disabled", sys.platform)
    else:
        locator = WindowLocator(
            source,
            bundle_id=config.target_bundle_id,
            app_name=config.target_app_name,
            title_marker=config.alert_title_marker,
        )
        monitor = AlertMonitor(
            locator,
            queue,
            poll_interval=config.poll_interval_seconds,
            max_depth=config.max_tree_depth,
            max_nodes=config.max_tree_nodes,
        )

    # ── Lifespan ─────────────────────────────────────────────────────────

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        tasks = [asyncio.create_task(coordinator.run(), name="coordinator")]
        if monitor is not None and config.monitor_enabled:
            tasks.append(asyncio.create_task(monitor.run(), name="monitor"))
        try:
            yield
        finally:
            if monitor is not None:
                monitor.stop()
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    app = FastAPI(
        title=config.app_name,
        description="AI-assisted classification of LuLu firewall alerts",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.pool = pool
    app.state.store = store
    app.state.history = history
    app.state.broadcaster = broadcaster
    app.state.coordinator = coordinator
    app.state.monitor = monitor
    app.state.queue = queue

    # ── Routes ───────────────────────────────────────────────────────────

    app.include_router(create_events_router(broadcaster, history))
    app.include_router(create_credentials_router(pool, store))

    @app.get("/health")
    async def health() -> dict:
        return {
            "status": "ok",
            "monitoring": monitor is not None and monitor.is_running,
            "queue_depth": queue.qsize(),
            "dropped_events": monitor.dropped_events if monitor is not None else 0,
            "in_flight_analyses": coordinator.in_flight,
            "credentials_configured": len(pool.snapshot()),
            "subscribers": broadcaster.client_count,
            "history_size": len(history),
        }

    return app


# ── Logging ──────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)

app = create_app()
