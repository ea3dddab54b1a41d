"""Pipeline events handed to the presentation layer."""

from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel

from lulu_companion.domain.alert import ConnectionAlert
from lulu_companion.domain.analysis import AnalysisResult
from lulu_companion.domain.enums import EventKind


class AlertDetected(BaseModel):
    """A newly accepted, de-duplicated alert."""

    kind: Literal[EventKind.ALERT_DETECTED] = EventKind.ALERT_DETECTED
    alert: ConnectionAlert

    model_config = {"frozen": True}

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class AlertEnriched(BaseModel):
    """The same alert (same id) after network lookups filled its enrichment facts."""

    kind: Literal[EventKind.ALERT_ENRICHED] = EventKind.ALERT_ENRICHED
    alert: ConnectionAlert

    model_config = {"frozen": True}

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class AnalysisCompleted(BaseModel):
    """The terminal verdict for an alert.

    ``superseded`` is True when a newer alert arrived while this one was
    still being classified; the presentation layer should not display it.
    """

    kind: Literal[EventKind.ANALYSIS_COMPLETED] = EventKind.ANALYSIS_COMPLETED
    result: AnalysisResult
    superseded: bool = False

    model_config = {"frozen": True}

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


PipelineEvent = Union[AlertDetected, AlertEnriched, AnalysisCompleted]
