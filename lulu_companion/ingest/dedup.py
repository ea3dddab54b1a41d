"""Alert Deduplicator: an open, unchanged dialog must not re-trigger the pipeline.

The firewall keeps its alert window open until the user answers, so every
poll tick re-reads the same dialog.  Only a conclusive draft whose remote
address differs from the last emitted one is passed on.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from lulu_companion.domain.alert import ConnectionAlert

logger = logging.getLogger(__name__)


class AlertDeduplicator:
    """Remembers the IP address of the most recently emitted alert."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last_ip: Optional[str] = None

    @property
    def last_ip(self) -> Optional[str]:
        return self._last_ip

    def offer(self, draft: ConnectionAlert) -> Optional[ConnectionAlert]:
        """Return *draft* if it should be emitted, otherwise None.

        Inconclusive drafts (no IP address) are never emitted and do not
        touch the marker.
        """
        if not draft.is_conclusive:
            return None
        ip = draft.ip_address.strip()
        with self._lock:
            if ip == self._last_ip:
                logger.debug("Dropping repeated alert for %s", ip)
                return None
            self._last_ip = ip
        return draft

    def reset(self) -> None:
        """Forget the marker so the next conclusive draft is emitted."""
        with self._lock:
            self._last_ip = None
