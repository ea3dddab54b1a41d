"""AnalysisResult: the classifier's verdict on one ConnectionAlert."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from lulu_companion.domain.alert import ConnectionAlert
from lulu_companion.domain.enums import AnalysisStatus, Recommendation
from lulu_companion.foundation.clock import utc_now

PLACEHOLDER_SUMMARY = "See details"


class AnalysisResult(BaseModel):
    """Verdict plus rationale for a connection alert.

    Created as ``pending`` the instant an alert is accepted, then replaced
    exactly once by a terminal value (completed, failed or skipped).
    """

    alert: ConnectionAlert
    status: AnalysisStatus = Field(default=AnalysisStatus.PENDING)
    recommendation: Recommendation = Field(default=Recommendation.UNKNOWN)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    summary: str = ""
    details: str = ""
    risks: list[str] = Field(default_factory=list)
    known_service: Optional[str] = None
    credential_label: Optional[str] = Field(
        default=None,
        description="Credential that produced this result: \"env[i]\" or \"slot i\"",
    )
    created_at: datetime = Field(default_factory=utc_now)

    model_config = {"frozen": True}

    @property
    def alert_id(self) -> UUID:
        return self.alert.alert_id

    @property
    def is_terminal(self) -> bool:
        return self.status != AnalysisStatus.PENDING

    @classmethod
    def pending(cls, alert: ConnectionAlert) -> AnalysisResult:
        return cls(alert=alert, summary="Analyzing connection...")

    @classmethod
    def skipped(cls, alert: ConnectionAlert, reason: str) -> AnalysisResult:
        return cls(
            alert=alert,
            status=AnalysisStatus.SKIPPED,
            summary="No API key configured",
            details=reason,
        )

    @classmethod
    def failed(cls, alert: ConnectionAlert, error_text: str) -> AnalysisResult:
        return cls(
            alert=alert,
            status=AnalysisStatus.FAILED,
            summary="Analysis failed",
            details=error_text or "Unknown error",
        )
