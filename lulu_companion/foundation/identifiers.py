"""Identifier generation for alerts and analyses."""

from __future__ import annotations

from uuid import UUID, uuid4


def new_id() -> UUID:
    """Generate a new random UUID v4 for an alert or analysis record."""
    return uuid4()
