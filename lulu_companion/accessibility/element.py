"""Abstract view of an accessibility element tree.

The producing application is inconsistent about which attribute carries
a field's text, so an element exposes *all* of its free-text attributes
in a fixed order: value, title, description, help.

Architectural rules:
    1. Elements are read-only views; nothing here mutates the external UI.
    2. Reading an attribute that the OS refuses to hand over yields None,
       never an exception.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

from pydantic import BaseModel, Field

TEXT_ATTRIBUTES: tuple[str, ...] = ("value", "title", "description", "help")


class AccessibleElement(ABC):
    """One node of a window's UI element tree."""

    @property
    @abstractmethod
    def role(self) -> Optional[str]:
        """The element's accessibility role (e.g. ``AXStaticText``)."""
        ...

    @abstractmethod
    def text_attributes(self) -> list[Optional[str]]:
        """Free-text attribute values in ``TEXT_ATTRIBUTES`` order."""
        ...

    @abstractmethod
    def children(self) -> Sequence[AccessibleElement]:
        """Direct children, in on-screen order."""
        ...

    @property
    def title(self) -> Optional[str]:
        return self.text_attributes()[1]


class ElementSnapshot(BaseModel, AccessibleElement):
    """An in-memory, immutable copy of an element subtree.

    Used by tests and for capturing a live window for diagnostics.
    """

    snapshot_role: Optional[str] = Field(default=None, alias="role")
    value: Optional[str] = None
    snapshot_title: Optional[str] = Field(default=None, alias="title")
    description: Optional[str] = None
    help: Optional[str] = None
    items: list[ElementSnapshot] = Field(default_factory=list, alias="children")

    model_config = {"frozen": True, "populate_by_name": True}

    @property
    def role(self) -> Optional[str]:
        return self.snapshot_role

    def text_attributes(self) -> list[Optional[str]]:
        return [self.value, self.snapshot_title, self.description, self.help]

    def children(self) -> Sequence[AccessibleElement]:
        return self.items

    @classmethod
    def capture(cls, element: AccessibleElement, max_depth: int = 32) -> ElementSnapshot:
        """Copy a live element subtree, stopping below *max_depth*."""
        value, title, description, help_text = element.text_attributes()
        kids: list[ElementSnapshot] = []
        if max_depth > 0:
            kids = [cls.capture(child, max_depth - 1) for child in element.children()]
        return cls(
            role=element.role,
            value=value,
            title=title,
            description=description,
            help=help_text,
            children=kids,
        )

    @classmethod
    def text(cls, value: str, role: str = "AXStaticText") -> ElementSnapshot:
        """Shorthand for a leaf static-text node."""
        return cls(role=role, value=value)

    @classmethod
    def group(cls, *children: ElementSnapshot, **attrs: Any) -> ElementSnapshot:
        """Shorthand for a container node."""
        attrs.setdefault("role", "AXGroup")
        return cls(children=list(children), **attrs)
