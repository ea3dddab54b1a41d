"""Enrichment Orchestrator: run the three lookups concurrently, merge immutably.

Design notes:
    - WHOIS, geolocation and reverse DNS run side by side; the orchestrator
      waits for all of them.  There is no early return on partial results.
    - Reverse DNS is only attempted when the alert does not already carry
      a hostname.
    - Every lookup is bounded by its own timeout.  A failed or slow lookup
      leaves only its own field absent.
    - The input alert is never mutated; a new value with the same alert id
      is returned.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from lulu_companion.domain.alert import ConnectionAlert
from lulu_companion.enrich.lookups import (
    EnrichmentLookupFailed,
    GeoLookup,
    Lookup,
    ReverseDNSLookup,
    WhoisLookup,
)

logger = logging.getLogger(__name__)


class EnrichmentOrchestrator:
    """Adds registration, location and hostname facts to an alert.

    Args:
        whois: Organisation / registration lookup.
        geo: Geolocation lookup.
        reverse_dns: PTR lookup.
        timeout: Upper bound, in seconds, for each individual lookup.
    """

    def __init__(
        self,
        whois: Lookup | None = None,
        geo: Lookup | None = None,
        reverse_dns: Lookup | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._whois = whois or WhoisLookup(timeout=timeout)
        self._geo = geo or GeoLookup(timeout=timeout)
        self._reverse_dns = reverse_dns or ReverseDNSLookup(timeout=timeout)
        self._timeout = timeout

    async def enrich(self, alert: ConnectionAlert) -> ConnectionAlert:
        """Return a copy of *alert* with whichever lookups succeeded filled in."""
        ip = alert.ip_address.strip()
        if not ip:
            return alert

        rdns_task = (
            self._guarded(self._reverse_dns, ip)
            if not alert.reverse_dns
            else _absent()
        )
        whois, geo, rdns = await asyncio.gather(
            self._guarded(self._whois, ip),
            self._guarded(self._geo, ip),
            rdns_task,
        )

        enriched = alert.with_enrichment(
            whois_summary=whois,
            geo_location=geo,
            reverse_dns=rdns,
        )
        logger.info(
            "Enriched alert %s: whois=%s geo=%s rdns=%s",
            alert.alert_id,
            "yes" if whois else "no",
            "yes" if geo else "no",
            enriched.reverse_dns or "-",
        )
        return enriched

    async def _guarded(self, lookup: Lookup, ip: str) -> Optional[str]:
        """Run one lookup; any failure becomes None."""
        try:
            return await asyncio.wait_for(lookup.lookup(ip), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning("%s lookup for %s timed out after %.1fs", lookup.name, ip, self._timeout)
        except EnrichmentLookupFailed as exc:
            logger.warning("%s", exc)
        except Exception as exc:
            logger.warning("%s lookup for %s failed unexpectedly: %s", lookup.name, ip, exc)
        return None


async def _absent() -> Optional[str]:
    return None
