"""Controlled enumerations for the lulu-companion domain.

Every categorical field in the domain references an enum defined here.
"""

from __future__ import annotations

from enum import Enum


class Recommendation(str, Enum):
    """Verdict the classifier gives for a connection."""

    ALLOW = "Allow"
    BLOCK = "Block"
    CAUTION = "Caution"
    UNKNOWN = "Unknown"

    @classmethod
    def from_label(cls, label: object) -> Recommendation:
        """Map a free-form label (``"ALLOW"``, ``"block"``...) to a member."""
        if not isinstance(label, str):
            return cls.UNKNOWN
        normalised = label.strip().upper()
        for member in cls:
            if member.name == normalised:
                return member
        return cls.UNKNOWN


class AnalysisStatus(str, Enum):
    """Lifecycle state of an AnalysisResult."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class Provider(str, Enum):
    """Text-generation provider a credential belongs to."""

    ANTHROPIC = "anthropic"
    THREEMATE = "3mate"
    OPENAI = "openai"
    GEMINI = "gemini"


class CredentialSource(str, Enum):
    """Where a credential slot was loaded from."""

    ENVIRONMENT = "environment"
    STORE = "store"


class EventKind(str, Enum):
    """Pipeline events handed to the presentation layer."""

    ALERT_DETECTED = "alert_detected"
    ALERT_ENRICHED = "alert_enriched"
    ANALYSIS_COMPLETED = "analysis_completed"
