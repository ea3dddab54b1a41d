"""Network lookups used to enrich a ConnectionAlert.

Each lookup answers one question about an IP address and returns a short
human-readable string, or raises EnrichmentLookupFailed.  The
orchestrator turns a failure into an absent field; lookups never decide
what happens to their siblings.

    WhoisLookup       -> ``whois <ip>`` subprocess, condensed
    GeoLookup         -> ip-api.com JSON over HTTP (requests)
    ReverseDNSLookup  -> ``dig +short -x <ip>`` subprocess
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

import requests

from lulu_companion.enrich.whois import summarise_whois

logger = logging.getLogger(__name__)


class EnrichmentLookupFailed(Exception):
    """Raised when a single lookup cannot produce a value."""

    def __init__(self, lookup: str, reason: str) -> None:
        self.lookup = lookup
        self.reason = reason
        super().__init__(f"{lookup} lookup failed: {reason}")


async def run_command(name: str, argv: list[str], timeout: float) -> str:
    """Run *argv* and return its decoded stdout+stderr.

    The process is killed if it outlives *timeout* seconds or the
    awaiting task is cancelled.

    Raises:
        EnrichmentLookupFailed: If the binary is missing or the call times out.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except OSError as exc:
        raise EnrichmentLookupFailed(name, f"cannot run {argv[0]}: {exc}") from exc

    try:
        stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise EnrichmentLookupFailed(name, f"timed out after {timeout:.1f}s") from exc
    finally:
        # Also reached when the caller cancels us.
        if proc.returncode is None:
            proc.kill()
            await proc.wait()

    return (stdout or b"").decode("utf-8", errors="replace")


class Lookup(ABC):
    """One enrichment question about an IP address."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    async def lookup(self, ip: str) -> Optional[str]:
        """Return a display string, None when there is simply no answer.

        Raises:
            EnrichmentLookupFailed: On any transport or tool failure.
        """
        ...


class WhoisLookup(Lookup):
    """Organisation / registration facts from the ``whois`` tool."""

    def __init__(self, command: str = "whois", timeout: float = 10.0) -> None:
        self._command = command
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "whois"

    async def lookup(self, ip: str) -> Optional[str]:
        output = await run_command(self.name, [self._command, ip], self._timeout)
        return summarise_whois(output)


class ReverseDNSLookup(Lookup):
    """PTR name from ``dig +short -x``."""

    def __init__(self, command: str = "dig", timeout: float = 10.0) -> None:
        self._command = command
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "reverse_dns"

    async def lookup(self, ip: str) -> Optional[str]:
        output = await run_command(
            self.name, [self._command, "+short", "-x", ip], self._timeout
        )
        for line in output.splitlines():
            host = line.strip().rstrip(".")
            if host and not host.startswith(";"):
                return host
        return None


class GeoLookup(Lookup):
    """Coarse geolocation (city, country, organisation) over HTTP."""

    def __init__(
        self,
        url_template: str = "http://ip-api.com/json/{ip}?fields=status,message,country,city,isp,org",
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self._url_template = url_template
        self._timeout = timeout
        self._session = session or requests.Session()

    @property
    def name(self) -> str:
        return "geo"

    async def lookup(self, ip: str) -> Optional[str]:
        url = self._url_template.format(ip=ip)
        try:
            response = await asyncio.to_thread(self._session.get, url, timeout=self._timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise EnrichmentLookupFailed(self.name, str(exc)) from exc
        return format_geo(data)


def format_geo(data: object) -> Optional[str]:
    """Render an ip-api.com JSON body as ``"City, Country, (Org)"``."""
    if not isinstance(data, dict) or data.get("status") == "fail":
        return None
    parts: list[str] = []
    for key in ("city", "country"):
        value = data.get(key)
        if isinstance(value, str) and value:
            parts.append(value)
    org = data.get("org") or data.get("isp")
    if isinstance(org, str) and org:
        parts.append(f"({org})")
    return ", ".join(parts) if parts else None
