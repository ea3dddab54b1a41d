"""Prompt template for connection classification."""

from __future__ import annotations

from lulu_companion.domain.alert import ConnectionAlert

_PROMPT = """You are a macOS firewall security advisor. Analyze this outgoing network connection and provide a security recommendation.

{alert_description}

Based on this information:
1. Identify what service/application is likely making this connection
2. Assess the security risk (is this expected behavior?)
3. Recommend: ALLOW, BLOCK, or CAUTION
4. Explain your reasoning briefly

Respond in this exact JSON format:
{{
    "recommendation": "ALLOW" | "BLOCK" | "CAUTION",
    "confidence": 0.0-1.0,
    "known_service": "Name of known service if identified, or null",
    "summary": "One-line summary",
    "details": "2-3 sentence explanation",
    "risks": ["risk1", "risk2"]
}}

Common safe connections:
{safe_patterns}

Be cautious about:
{suspicion_heuristics}"""

KNOWN_SAFE_PATTERNS: tuple[str, ...] = (
    "Apple services (*.apple.com, *.icloud.com)",
    "Google (*.google.com, *.googleapis.com, *.1e100.net)",
    "Microsoft (*.microsoft.com)",
    "CDNs (*.cloudflare.com, *.akamai.com, *.fastly.net)",
)

SUSPICION_HEURISTICS: tuple[str, ...] = (
    "Unknown IPs without reverse DNS",
    "Connections to unusual ports",
    "Processes connecting to unexpected destinations",
    "Newly installed or unsigned applications",
)

_FIELDS: tuple[tuple[str, str], ...] = (
    ("Process", "process_name"),
    ("Path", "process_path"),
    ("PID", "process_id"),
    ("Arguments", "process_args"),
    ("IP address", "ip_address"),
    ("Port", "port"),
    ("Protocol", "proto"),
    ("Reverse DNS", "reverse_dns"),
)


def describe_alert(alert: ConnectionAlert, include_raw_fragments: bool = True) -> str:
    """Render the alert's facts for the classifier."""
    lines = ["Connection Alert from LuLu Firewall:", ""]

    structured = [
        f"- {label}: {getattr(alert, attr)}"
        for label, attr in _FIELDS
        if getattr(alert, attr)
    ]
    if structured:
        lines.append("Parsed fields (best effort, may be incomplete):")
        lines.extend(structured)

    if alert.raw_fragments and (include_raw_fragments or alert.is_thin):
        lines.append("")
        if alert.is_thin:
            lines.append("Raw UI Elements (primary source, in order extracted from alert window):")
        else:
            lines.append("Raw UI Elements (in order extracted from alert window):")
        lines.extend(f"  [{i}] {text}" for i, text in enumerate(alert.raw_fragments))

    lines.append("")
    lines.append("Enriched Data:")
    enrichment = (
        ("WHOIS", alert.whois_summary),
        ("Location", alert.geo_location),
        ("Threat intel", alert.threat_intel),
    )
    present = [f"- {label}: {value}" for label, value in enrichment if value]
    lines.extend(present or ["- none available"])
    return "\n".join(lines)


def build_prompt(alert: ConnectionAlert, include_raw_fragments: bool = True) -> str:
    """Full classification prompt for *alert*."""
    return _PROMPT.format(
        alert_description=describe_alert(alert, include_raw_fragments),
        safe_patterns="\n".join(f"- {p}" for p in KNOWN_SAFE_PATTERNS),
        suspicion_heuristics="\n".join(f"- {h}" for h in SUSPICION_HEURISTICS),
    )
