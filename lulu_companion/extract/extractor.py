"""Field Extractor: ordered text fragments -> ConnectionAlert draft.

LuLu renders labels and values as separate text elements, but neither the
order nor the labeling is stable across its versions.  Extraction is
therefore two ordered passes over the same fragment list:

    1. Label-anchored pass.  A fragment equal to a known label (``pid:``,
       ``ip address:``...) consumes the *next* fragment as that field's
       value.  ``label value`` in a single fragment is also accepted.
    2. Pattern fallback pass.  Every fragment not consumed by pass 1 is
       classified by its shape (dotted quad, ``443 (TCP)``, absolute path,
       hostname, short bare word) and fills a field only if it is still
       empty.

First assignment to a field wins; later candidates are discarded.  The
extractor never raises: the worst case is an all-empty draft, which the
caller recognises as inconclusive through ``ConnectionAlert.is_conclusive``.
"""

from __future__ import annotations

import ipaddress
import logging
import re
from typing import Optional, Sequence

from lulu_companion.domain.alert import ConnectionAlert

logger = logging.getLogger(__name__)

# ── Label pass vocabulary ───────────────────────────────────────────────────

_PORT_PROTOCOL = "port_protocol"

LABELS: dict[str, str] = {
    "pid:": "process_id",
    "process id:": "process_id",
    "args:": "process_args",
    "arguments:": "process_args",
    "path:": "process_path",
    "process path:": "process_path",
    "name:": "process_name",
    "process name:": "process_name",
    "ip address:": "ip_address",
    "ip addr:": "ip_address",
    "remote address:": "ip_address",
    "port/protocol:": _PORT_PROTOCOL,
    "port:": _PORT_PROTOCOL,
    "(reverse) dns:": "reverse_dns",
    "reverse dns:": "reverse_dns",
    "dns:": "reverse_dns",
}

# Longest first so "process path:" is tried before "path:".
_LABELS_BY_LENGTH = sorted(LABELS, key=len, reverse=True)

# ── Pattern pass vocabulary ─────────────────────────────────────────────────

PATH_ROOTS: tuple[str, ...] = (
    "/bin/",
    "/sbin/",
    "/Applications/",
    "/Library/",
    "/usr/",
    "/System/",
    "/opt/",
)

GENERIC_TLDS: frozenset[str] = frozenset({
    "com", "net", "org", "edu", "gov", "mil", "int", "arpa",
    "info", "biz", "io", "ai", "app", "dev", "cloud", "site", "online",
    "tech", "xyz", "me", "tv", "co", "cc", "ly", "gg", "so", "sh",
    "network", "services", "systems", "digital", "media", "link",
})

# Captions LuLu itself puts on the window; never a process name.
NON_NAME_LABELS: frozenset[str] = frozenset({
    "lulu", "alert", "allow", "block", "ok", "cancel", "close", "help",
    "details", "options", "option", "rule", "rules", "action", "scope",
    "process", "connection", "endpoint", "remote", "local",
    "always", "forever", "once", "temporarily", "apply", "continue",
    "tcp", "udp", "unknown", "signed", "unsigned", "info", "show", "hide",
})

_MAX_NAME_LENGTH = 64

_IPV4_RE = re.compile(r"^\d{1,3}(?:\.\d{1,3}){3}$")
_PORT_PROTO_RE = re.compile(r"^(\d{1,5})\s*\((TCP|UDP)\)$", re.IGNORECASE)
_LEADING_PORT_RE = re.compile(r"^(\d{1,5})\b")
_HOSTNAME_RE = re.compile(
    r"^(?:[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?\.)+([A-Za-z]{2,24})\.?$"
)
_CONNECTING_RE = re.compile(
    r"^(?:(?P<name>.+?)\s+)?is connecting to\s+(?P<endpoint>\S+?)[.,!]?$",
    re.IGNORECASE,
)


# ── Shape predicates ────────────────────────────────────────────────────────

def is_ip_address(text: str) -> bool:
    """Dotted-quad IPv4, or an IPv6 literal."""
    if _IPV4_RE.match(text):
        try:
            ipaddress.IPv4Address(text)
            return True
        except ValueError:
            return False
    if text.count(":") >= 2:
        try:
            ipaddress.IPv6Address(text.strip("[]"))
            return True
        except ValueError:
            return False
    return False


def is_process_path(text: str) -> bool:
    return text.startswith("/") and any(root in text for root in PATH_ROOTS)


def is_hostname(text: str) -> bool:
    if text.startswith("/"):
        return False
    match = _HOSTNAME_RE.match(text)
    if match is None:
        return False
    tld = match.group(1).lower()
    return tld in GENERIC_TLDS or len(tld) == 2


def is_name_candidate(text: str) -> bool:
    if len(text) > _MAX_NAME_LENGTH:
        return False
    if any(ch.isspace() for ch in text) or "/" in text or ":" in text:
        return False
    if not any(ch.isalpha() for ch in text):
        return False
    return text.lower() not in NON_NAME_LABELS


def name_from_path(path: str) -> str:
    return path.rstrip("/").rsplit("/", 1)[-1]


def parse_port_protocol(value: str) -> tuple[str, str]:
    """Split ``"443 (TCP)"``-style text into (port, proto); either may be empty."""
    port = ""
    match = _LEADING_PORT_RE.match(value.strip())
    if match:
        port = match.group(1)
    upper = value.upper()
    if "TCP" in upper:
        proto = "TCP"
    elif "UDP" in upper:
        proto = "UDP"
    else:
        proto = ""
    return port, proto


# ── Draft accumulator ───────────────────────────────────────────────────────

class _Draft:
    """First-write-wins field accumulator."""

    __slots__ = ("fields",)

    def __init__(self) -> None:
        self.fields: dict[str, str] = {}

    def has(self, name: str) -> bool:
        return bool(self.fields.get(name))

    def fill(self, name: str, value: str) -> bool:
        value = value.strip()
        if not value or self.has(name):
            return False
        self.fields[name] = value
        return True

    def fill_path(self, path: str) -> bool:
        if not self.fill("process_path", path):
            return False
        self.fill("process_name", name_from_path(self.fields["process_path"]))
        return True

    def fill_port_protocol(self, value: str) -> bool:
        port, proto = parse_port_protocol(value)
        filled = self.fill("port", port)
        if proto:
            filled = self.fill("proto", proto) or filled
        return filled

    def apply(self, field_name: str, value: str) -> bool:
        if field_name == _PORT_PROTOCOL:
            return self.fill_port_protocol(value)
        if field_name == "process_path":
            return self.fill_path(value)
        return self.fill(field_name, value)


def _match_label(text: str) -> tuple[Optional[str], str]:
    """Return (field, inline value) if *text* starts with a known label."""
    lowered = text.lower()
    for label in _LABELS_BY_LENGTH:
        if lowered == label:
            return LABELS[label], ""
        if lowered.startswith(label):
            remainder = text[len(label):].strip()
            if remainder:
                return LABELS[label], remainder
    return None, ""


# ── Extractor ───────────────────────────────────────────────────────────────

class FieldExtractor:
    """Two-pass heuristic that turns window fragments into a ConnectionAlert."""

    def extract(self, fragments: Sequence[str]) -> ConnectionAlert:
        texts = [f.strip() for f in fragments]
        draft = _Draft()
        consumed = self._label_pass(texts, draft)
        self._pattern_pass(texts, consumed, draft)

        alert = ConnectionAlert(**draft.fields, raw_fragments=tuple(fragments))
        logger.debug(
            "Extracted %d fragment(s): pid=%r path=%r ip=%r port=%r/%r dns=%r",
            len(texts), alert.process_id, alert.process_path, alert.ip_address,
            alert.port, alert.proto, alert.reverse_dns,
        )
        return alert

    # ── Pass 1 ───────────────────────────────────────────────────────────

    @staticmethod
    def _label_pass(texts: list[str], draft: _Draft) -> set[int]:
        consumed: set[int] = set()
        for index, text in enumerate(texts):
            if index in consumed:
                continue
            field_name, inline = _match_label(text)
            if field_name is None:
                continue
            consumed.add(index)
            if inline:
                draft.apply(field_name, inline)
                continue
            nxt = index + 1
            if nxt >= len(texts):
                continue
            next_field, _ = _match_label(texts[nxt])
            if next_field is not None:
                # Label with an empty value; the next label is handled on its own turn.
                continue
            consumed.add(nxt)
            draft.apply(field_name, texts[nxt])
        return consumed

    # ── Pass 2 ───────────────────────────────────────────────────────────

    @staticmethod
    def _pattern_pass(texts: list[str], consumed: set[int], draft: _Draft) -> None:
        sentence_name = ""
        bare_name = ""
        for index, text in enumerate(texts):
            if index in consumed or not text:
                continue

            if is_ip_address(text):
                draft.fill("ip_address", text)
                continue

            match = _PORT_PROTO_RE.match(text)
            if match:
                draft.fill("port", match.group(1))
                draft.fill("proto", match.group(2).upper())
                continue

            if is_process_path(text):
                draft.fill_path(text)
                continue

            if is_hostname(text):
                draft.fill("reverse_dns", text.rstrip("."))
                continue

            match = _CONNECTING_RE.match(text)
            if match:
                endpoint = match.group("endpoint")
                if is_ip_address(endpoint):
                    draft.fill("ip_address", endpoint)
                elif is_hostname(endpoint):
                    draft.fill("reverse_dns", endpoint.rstrip("."))
                name = (match.group("name") or "").strip()
                if name and not sentence_name and name.lower() not in NON_NAME_LABELS:
                    sentence_name = name
                continue

            if not bare_name and is_name_candidate(text):
                bare_name = text

        # A path-derived name (either pass) always beats a guessed one.
        if not draft.has("process_name"):
            draft.fill("process_name", sentence_name or bare_name)


def extract_alert(fragments: Sequence[str]) -> ConnectionAlert:
    """Convenience wrapper around ``FieldExtractor().extract``."""
    return FieldExtractor().extract(fragments)
