"""ConnectionAlert: what was read out of a LuLu alert window.

Every field is best-effort.  The heuristic extractor fills what it can
recognise and leaves the rest empty; the ordered raw fragments always
travel with the record so the classifier can recover what the heuristic
missed.

The record is immutable.  Enrichment returns a *new* alert with the same
``alert_id`` so a view already showing the bare alert can swap it in place.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from lulu_companion.foundation.clock import utc_now
from lulu_companion.foundation.identifiers import new_id


class ConnectionAlert(BaseModel):
    """A single outbound connection attempt announced by the firewall."""

    alert_id: UUID = Field(default_factory=new_id)
    created_at: datetime = Field(default_factory=utc_now)

    # ── Process facts ────────────────────────────────────────────────────
    process_name: str = ""
    process_path: str = ""
    process_id: str = ""
    process_args: str = ""

    # ── Connection facts ─────────────────────────────────────────────────
    ip_address: str = ""
    port: str = ""
    proto: str = Field(default="", description="TCP, UDP, or empty when unknown")
    reverse_dns: str = ""

    # ── Enrichment facts (absent until enrichment runs) ─────────────────
    whois_summary: Optional[str] = None
    geo_location: Optional[str] = None
    threat_intel: Optional[str] = None

    raw_fragments: tuple[str, ...] = Field(
        default_factory=tuple,
        description="Text fragments in the order they were harvested from the window",
    )

    model_config = {"frozen": True}

    @property
    def is_conclusive(self) -> bool:
        """True once the record names a remote address; drafts without one are dropped."""
        return bool(self.ip_address.strip())

    @property
    def is_thin(self) -> bool:
        """True when the extractor could not identify the process at all."""
        return not self.process_path and not self.process_name

    @property
    def endpoint(self) -> str:
        if self.port:
            return f"{self.ip_address}:{self.port}"
        return self.ip_address

    def with_enrichment(
        self,
        *,
        whois_summary: Optional[str] = None,
        geo_location: Optional[str] = None,
        reverse_dns: Optional[str] = None,
        threat_intel: Optional[str] = None,
    ) -> ConnectionAlert:
        """Return a copy carrying whichever lookups produced a value.

        ``None`` leaves the existing value untouched, so a failed reverse-DNS
        lookup never erases a hostname the extractor already found.
        """
        update: dict[str, object] = {}
        if whois_summary is not None:
            update["whois_summary"] = whois_summary
        if geo_location is not None:
            update["geo_location"] = geo_location
        if reverse_dns:
            update["reverse_dns"] = reverse_dns
        if threat_intel is not None:
            update["threat_intel"] = threat_intel
        return self.model_copy(update=update)

    def __str__(self) -> str:
        name = self.process_name or "<unknown process>"
        proto = f"/{self.proto}" if self.proto else ""
        return f"{name} -> {self.endpoint or '<no address>'}{proto}"
