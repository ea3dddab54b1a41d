"""Persisted credential slots.

A small JSON file maps slot index -> secret.  The file is created with
owner-only permissions.  This is deliberately not a keychain: platform
secret storage is the host application's business.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Optional

from lulu_companion.domain.credential import validate_secret

logger = logging.getLogger(__name__)


class CredentialSlotsFullError(Exception):
    """Raised when every slot is occupied."""


class CredentialStore:
    """File-backed slot table.

    Args:
        path: JSON file location; ``~`` is expanded.
        max_slots: Number of usable slots (indices ``0 .. max_slots - 1``).
    """

    def __init__(self, path: str | Path, max_slots: int = 5) -> None:
        self._path = Path(path).expanduser()
        self._max_slots = max_slots
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def max_slots(self) -> int:
        return self._max_slots

    # ── Reads ────────────────────────────────────────────────────────────

    def slots(self) -> dict[int, str]:
        """All occupied slots, ascending by index."""
        with self._lock:
            return dict(sorted(self._read().items()))

    def get(self, slot: int) -> Optional[str]:
        with self._lock:
            return self._read().get(slot)

    def next_available_slot(self) -> Optional[int]:
        with self._lock:
            return self._first_free(self._read())

    # ── Writes ───────────────────────────────────────────────────────────

    def put(self, secret: str, slot: Optional[int] = None) -> int:
        """Store *secret*; returns the slot used.

        Raises:
            InvalidCredentialError: If the secret is not a recognised key.
            CredentialSlotsFullError: If *slot* is None and no slot is free.
            ValueError: If *slot* is outside ``0 .. max_slots - 1``.
        """
        cleaned = secret.strip()
        validate_secret(cleaned)
        with self._lock:
            data = self._read()
            if slot is None:
                slot = self._first_free(data)
                if slot is None:
                    raise CredentialSlotsFullError(f"All {self._max_slots} credential slots are in use")
            elif not 0 <= slot < self._max_slots:
                raise ValueError(f"slot must be between 0 and {self._max_slots - 1}")
            data[slot] = cleaned
            self._write(data)
        logger.info("Stored credential in slot %d", slot)
        return slot

    def remove(self, slot: int) -> bool:
        """Clear *slot*; returns False if it was already empty."""
        with self._lock:
            data = self._read()
            if slot not in data:
                return False
            del data[slot]
            self._write(data)
        logger.info("Removed credential from slot %d", slot)
        return True

    # ── Internals ────────────────────────────────────────────────────────

    def _first_free(self, data: dict[int, str]) -> Optional[int]:
        for index in range(self._max_slots):
            if index not in data:
                return index
        return None

    def _read(self) -> dict[int, str]:
        """Must be called while holding self._lock."""
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable credential store %s: %s", self._path, exc)
            return {}
        slots = raw.get("slots", {}) if isinstance(raw, dict) else {}
        result: dict[int, str] = {}
        for key, value in slots.items():
            try:
                index = int(key)
            except (TypeError, ValueError):
                continue
            if isinstance(value, str) and value:
                result[index] = value
        return result

    def _write(self, data: dict[int, str]) -> None:
        """Must be called while holding self._lock."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps({"slots": {str(k): v for k, v in sorted(data.items())}}, indent=2)
        fd = os.open(self._path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(payload)
