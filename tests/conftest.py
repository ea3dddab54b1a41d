"""Shared builders for realistic alert windows, alerts and HTTP responses."""

from __future__ import annotations

import asyncio
from typing import Any, Optional, Sequence
from unittest.mock import MagicMock

import pytest

from lulu_companion.accessibility.element import AccessibleElement, ElementSnapshot
from lulu_companion.accessibility.locator import WindowSource
from lulu_companion.domain.alert import ConnectionAlert
from lulu_companion.enrich.lookups import Lookup

ANTHROPIC_KEY_A = "sk-ant-api03-" + "a" * 40
ANTHROPIC_KEY_B = "sk-ant-api03-" + "b" * 40
ANTHROPIC_KEY_C = "sk-ant-api03-" + "c" * 40

CURL_FRAGMENTS = [
    "pid:", "4821",
    "path:", "/usr/bin/curl",
    "ip address:", "93.184.216.34",
    "port/protocol:", "443 (TCP)",
]


def make_alert(**overrides: Any) -> ConnectionAlert:
    base: dict[str, Any] = {
        "process_name": "curl",
        "process_path": "/usr/bin/curl",
        "process_id": "4821",
        "ip_address": "93.184.216.34",
        "port": "443",
        "proto": "TCP",
        "raw_fragments": list(CURL_FRAGMENTS),
    }
    base.update(overrides)
    return ConnectionAlert(**base)


def lulu_window(
    fragments: Sequence[str] = tuple(CURL_FRAGMENTS),
    title: str = "LuLu Alert",
) -> ElementSnapshot:
    """A LuLu-like alert window: label/value rows plus the action buttons."""
    rows = [ElementSnapshot.text(text) for text in fragments]
    buttons = ElementSnapshot.group(
        ElementSnapshot(role="AXButton", title="Block"),
        ElementSnapshot(role="AXButton", title="Allow"),
    )
    return ElementSnapshot(
        role="AXWindow",
        title=title,
        children=[ElementSnapshot.group(*rows), buttons],
    )


class FakeWindowSource(WindowSource):
    """WindowSource returning a scripted list of windows on each call."""

    def __init__(self, *ticks: Sequence[AccessibleElement], trusted: bool = True) -> None:
        self._ticks = list(ticks)
        self._trusted = trusted
        self.calls: list[tuple[str, str]] = []

    def windows(self, bundle_id: str, app_name: str) -> Sequence[AccessibleElement]:
        self.calls.append((bundle_id, app_name))
        if not self._ticks:
            return []
        if len(self._ticks) == 1:
            return self._ticks[0]
        return self._ticks.pop(0)

    def is_trusted(self, prompt: bool = False) -> bool:
        return self._trusted


class StaticLookup(Lookup):
    """Lookup returning a fixed value, raising, or sleeping."""

    def __init__(
        self,
        name: str,
        value: Optional[str] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ) -> None:
        self._name = name
        self._value = value
        self._error = error
        self._delay = delay
        self.calls: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    async def lookup(self, ip: str) -> Optional[str]:
        self.calls.append(ip)
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        return self._value


def http_response(status_code: int = 200, body: Any = None, text: str = "") -> MagicMock:
    """A requests.Response stand-in."""
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body
    return response


def messages_body(text: str) -> dict:
    return {"content": [{"type": "text", "text": text}]}


@pytest.fixture
def alert() -> ConnectionAlert:
    return make_alert()
