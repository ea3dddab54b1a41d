"""In-memory, bounded record of analyses handed to the presentation layer."""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Optional
from uuid import UUID

from lulu_companion.domain.analysis import AnalysisResult

logger = logging.getLogger(__name__)


class AnalysisHistory:
    """Latest AnalysisResult per alert, newest first, capped at *max_size*.

    Recording a result for an alert already present replaces it in place
    (pending -> terminal) without changing its position.
    """

    def __init__(self, max_size: int = 50) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._max_size = max_size
        self._results: OrderedDict[UUID, AnalysisResult] = OrderedDict()

    def record(self, result: AnalysisResult) -> bool:
        """Store *result*; returns False if it was dropped.

        Only a pending result opens a new entry.  A terminal result whose
        entry has already been evicted is discarded.
        """
        key = result.alert_id
        if key in self._results:
            self._results[key] = result
            return True
        if result.is_terminal:
            logger.debug("Dropping %s result for evicted alert %s", result.status.value, key)
            return False
        self._results[key] = result
        while len(self._results) > self._max_size:
            self._results.popitem(last=False)
        return True

    def get(self, alert_id: UUID) -> Optional[AnalysisResult]:
        return self._results.get(alert_id)

    def latest(self) -> Optional[AnalysisResult]:
        if not self._results:
            return None
        return next(reversed(self._results.values()))

    def items(self) -> list[AnalysisResult]:
        return list(reversed(self._results.values()))

    def __contains__(self, alert_id: object) -> bool:
        return alert_id in self._results

    def __len__(self) -> int:
        return len(self._results)

    def to_payload(self) -> list[dict]:
        return [result.model_dump(mode="json") for result in self.items()]
