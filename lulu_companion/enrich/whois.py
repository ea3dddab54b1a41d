"""WHOIS output condensation.

Raw WHOIS output runs to hundreds of lines in registry-specific formats.
Only a handful of keys matter to a human (and to the classifier): who owns
the network, what it is called, and where it is.
"""

from __future__ import annotations

RELEVANT_KEYS: tuple[str, ...] = (
    "OrgName",
    "Organization",
    "org-name",
    "netname",
    "Country",
    "City",
    "descr",
)
MAX_ENTRIES = 5

_RELEVANT_LOWER = frozenset(k.lower() for k in RELEVANT_KEYS)


def parse_whois(raw: str, max_entries: int = MAX_ENTRIES) -> list[str]:
    """Pick the relevant ``Key: value`` entries out of raw WHOIS text.

    Entries keep the source's own key spelling and line order.  A value
    already contained in an accepted entry is skipped, and at most
    *max_entries* are returned.
    """
    entries: list[str] = []
    for line in raw.splitlines():
        key, sep, value = line.strip().partition(":")
        if not sep or key.strip().lower() not in _RELEVANT_LOWER:
            continue
        value = value.strip()
        if not value or any(value in existing for existing in entries):
            continue
        entries.append(f"{key.strip()}: {value}")
        if len(entries) >= max_entries:
            break
    return entries


def summarise_whois(raw: str, max_entries: int = MAX_ENTRIES) -> str | None:
    """Comma-joined summary of parse_whois(), or None if nothing relevant was found."""
    entries = parse_whois(raw, max_entries=max_entries)
    return ", ".join(entries) if entries else None
