"""Tolerant parsing of the classifier's answer.

The model is asked for a JSON object, but it often wraps it in prose or
code fences.  The span from the first ``{`` to the last ``}`` is parsed;
missing fields fall back to defaults.  If there is no such span, or it is
not valid JSON, the whole text becomes the result's details so the user
never sees an empty verdict.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Optional

from lulu_companion.domain.alert import ConnectionAlert
from lulu_companion.domain.analysis import PLACEHOLDER_SUMMARY, AnalysisResult
from lulu_companion.domain.enums import AnalysisStatus, Recommendation

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.5


def extract_json_object(text: str) -> Optional[dict[str, Any]]:
    """Parse the first-``{`` .. last-``}`` span of *text*, or return None."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return None
    try:
        data = json.loads(text[start:end + 1])
    except (json.JSONDecodeError, ValueError) as exc:
        logger.warning("Embedded JSON did not parse: %s", exc)
        return None
    return data if isinstance(data, dict) else None


def _confidence(value: Any) -> float:
    if isinstance(value, bool):
        return DEFAULT_CONFIDENCE
    try:
        number = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if math.isnan(number):
        return DEFAULT_CONFIDENCE
    return max(0.0, min(number, 1.0))


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value.strip() if isinstance(value, str) else str(value)


def _known_service(value: Any) -> Optional[str]:
    text = _text(value)
    if not text or text.lower() in ("null", "none", "unknown"):
        return None
    return text


def _risks(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if str(item).strip()]


def parse_analysis(
    text: str,
    alert: ConnectionAlert,
    credential_label: Optional[str] = None,
) -> AnalysisResult:
    """Turn the classifier's raw text into a completed AnalysisResult."""
    data = extract_json_object(text)
    if data is None:
        return AnalysisResult(
            alert=alert,
            status=AnalysisStatus.COMPLETED,
            recommendation=Recommendation.UNKNOWN,
            confidence=0.0,
            summary=PLACEHOLDER_SUMMARY,
            details=text,
            credential_label=credential_label,
        )

    summary = _text(data.get("summary"))
    details = _text(data.get("details"))
    if not summary:
        summary = PLACEHOLDER_SUMMARY
        details = details or text

    return AnalysisResult(
        alert=alert,
        status=AnalysisStatus.COMPLETED,
        recommendation=Recommendation.from_label(data.get("recommendation")),
        confidence=_confidence(data.get("confidence", DEFAULT_CONFIDENCE)),
        summary=summary,
        details=details,
        risks=_risks(data.get("risks")),
        known_service=_known_service(data.get("known_service")),
        credential_label=credential_label,
    )
