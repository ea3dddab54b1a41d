"""Classification Client: prompt -> rotating credentials -> tolerant parse.

Flow for one alert:
    1. Build the prompt from the (enriched) alert.
    2. Take a snapshot of the credential pool.  Start with the slot that
       last succeeded, then walk the rest of the snapshot in order,
       wrapping around.
    3. For each slot issue one request.  A transport failure, a non-success
       status or an envelope without generated text moves on to the next
       slot; the first slot that answers becomes the active one.
    4. Parse the generated text tolerantly into an AnalysisResult.

classify() never raises.  An empty pool produces a ``skipped`` result and
an exhausted pool a ``failed`` one carrying the last error's text.

The HTTP call is blocking (requests) and is offloaded to a worker thread;
no lock is held while it runs.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import requests

from lulu_companion.classify.errors import (
    ClassificationError,
    HTTPError,
    NoCredentialError,
    ParseError,
    TransportError,
)
from lulu_companion.classify.parser import parse_analysis
from lulu_companion.classify.prompt import build_prompt
from lulu_companion.classify.providers import ProviderProfile, default_profiles
from lulu_companion.credentials.pool import CredentialPool
from lulu_companion.domain.alert import ConnectionAlert
from lulu_companion.domain.analysis import AnalysisResult
from lulu_companion.domain.credential import CredentialSlot
from lulu_companion.domain.enums import Provider

logger = logging.getLogger(__name__)

_NO_KEY_DETAILS = (
    "No API key configured. Add a key (Anthropic, 3mate, OpenAI or Gemini) "
    "to enable AI analysis of firewall alerts."
)


def _slot_key(slot: CredentialSlot) -> tuple[str, int]:
    return slot.source.value, slot.slot


class ClassificationClient:
    """Asks a remote text-generation service to judge a connection.

    Args:
        pool: Ordered credential pool.
        profiles: Request shape per provider.
        session: HTTP session (injected in tests).
        timeout: Per-request timeout in seconds.
        include_raw_fragments: Always send the raw window text, not only
            when the parsed record is thin.
    """

    def __init__(
        self,
        pool: CredentialPool,
        profiles: dict[Provider, ProviderProfile] | None = None,
        session: requests.Session | None = None,
        timeout: float = 30.0,
        include_raw_fragments: bool = True,
    ) -> None:
        self._pool = pool
        self._profiles = profiles or default_profiles()
        self._session = session or requests.Session()
        self._timeout = timeout
        self._include_raw = include_raw_fragments
        self._active: Optional[tuple[str, int]] = None

    @property
    def active_slot(self) -> Optional[tuple[str, int]]:
        """(source, index) of the credential that last succeeded."""
        return self._active

    # ── Public API ───────────────────────────────────────────────────────

    async def classify(self, alert: ConnectionAlert) -> AnalysisResult:
        """Return a terminal AnalysisResult for *alert*."""
        try:
            return await self._classify(alert)
        except NoCredentialError:
            logger.info("No API key configured; skipping analysis of %s", alert.alert_id)
            return AnalysisResult.skipped(alert, _NO_KEY_DETAILS)
        except ClassificationError as exc:
            logger.error("Analysis of %s failed on every credential: %s", alert.alert_id, exc)
            return AnalysisResult.failed(alert, str(exc))

    # ── Internals ────────────────────────────────────────────────────────

    def _ordered(self, snapshot: tuple[CredentialSlot, ...]) -> list[CredentialSlot]:
        """Rotate the snapshot so the active slot comes first."""
        for index, slot in enumerate(snapshot):
            if _slot_key(slot) == self._active:
                return list(snapshot[index:]) + list(snapshot[:index])
        return list(snapshot)

    async def _classify(self, alert: ConnectionAlert) -> AnalysisResult:
        snapshot = self._pool.snapshot()
        if not snapshot:
            raise NoCredentialError("credential pool is empty")

        prompt = build_prompt(alert, include_raw_fragments=self._include_raw)
        last_error: ClassificationError | None = None

        for slot in self._ordered(snapshot):
            try:
                text = await asyncio.to_thread(self._request, slot, prompt)
            except ClassificationError as exc:
                last_error = exc
                logger.warning("Credential %s (%s) failed: %s", slot.label, slot.masked, exc)
                continue

            if self._active != _slot_key(slot):
                logger.info("Using credential %s (%s)", slot.label, slot.provider.value)
            self._active = _slot_key(slot)
            result = parse_analysis(text, alert, credential_label=slot.label)
            logger.info(
                "Analysis for %s: %s (confidence %.2f)",
                alert.alert_id, result.recommendation.value, result.confidence,
            )
            return result

        assert last_error is not None
        raise last_error

    def _request(self, slot: CredentialSlot, prompt: str) -> str:
        """One blocking request; returns the generated text."""
        profile = self._profiles.get(slot.provider)
        if profile is None:
            raise TransportError(f"no endpoint configured for provider {slot.provider.value}")

        try:
            response = self._session.post(
                profile.url,
                headers=profile.headers(slot.secret),
                json=profile.body(prompt),
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise TransportError(str(exc)) from exc

        if not 200 <= response.status_code < 300:
            raise HTTPError(response.status_code, _error_message(response))

        try:
            data: Any = response.json()
        except ValueError as exc:
            raise ParseError("Failed to parse API response: body is not JSON") from exc
        return profile.extract_text(data)


def _error_message(response: requests.Response) -> str:
    text = response.text if isinstance(response.text, str) else ""
    return text[:500] or "Unknown error"
