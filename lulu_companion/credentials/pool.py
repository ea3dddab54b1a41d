"""CredentialPool: the ordered list of keys the classifier may use.

Order is the failover order: environment variables first (in configured
order), then persisted slots by ascending index.  Each classification
works on a ``snapshot()``, an immutable tuple, so adding or removing a
slot mid-request cannot reorder an attempt in progress.
"""

from __future__ import annotations

import logging
import os
from typing import Mapping, Optional, Sequence

from lulu_companion.credentials.store import CredentialStore
from lulu_companion.domain.credential import CredentialSlot, InvalidCredentialError
from lulu_companion.domain.enums import CredentialSource

logger = logging.getLogger(__name__)


class CredentialPool:
    """Combines environment-provided and persisted credentials.

    Args:
        store: Persisted slots; None means environment only.
        env_vars: Environment variable names checked, in order.
        environ: Mapping to read them from (``os.environ`` by default).
    """

    def __init__(
        self,
        store: Optional[CredentialStore] = None,
        env_vars: Sequence[str] = ("ANTHROPIC_API_KEY",),
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._store = store
        self._env_vars = tuple(env_vars)
        self._environ = environ if environ is not None else os.environ

    @property
    def store(self) -> Optional[CredentialStore]:
        return self._store

    def snapshot(self) -> tuple[CredentialSlot, ...]:
        """Consistent, ordered, de-duplicated view of every usable credential."""
        slots: list[CredentialSlot] = []
        seen: set[str] = set()

        for index, name in enumerate(self._env_vars):
            secret = (self._environ.get(name) or "").strip()
            if secret:
                self._add(slots, seen, index, secret, CredentialSource.ENVIRONMENT, name)

        if self._store is not None:
            for index, secret in self._store.slots().items():
                self._add(slots, seen, index, secret, CredentialSource.STORE, f"slot {index}")

        return tuple(slots)

    @property
    def has_credentials(self) -> bool:
        return bool(self.snapshot())

    def describe(self) -> list[dict]:
        """Masked listing for display."""
        return [slot.describe() for slot in self.snapshot()]

    @staticmethod
    def _add(
        slots: list[CredentialSlot],
        seen: set[str],
        index: int,
        secret: str,
        source: CredentialSource,
        origin: str,
    ) -> None:
        if secret in seen:
            return
        try:
            slot = CredentialSlot.build(index, secret, source)
        except InvalidCredentialError as exc:
            logger.warning("Skipping credential from %s: %s", origin, exc)
            return
        seen.add(slot.secret)
        slots.append(slot)
