"""macOS Accessibility binding (pyobjc).

pyobjc is imported lazily so the rest of the package imports, and is
testable, on any platform.  Only ``MacWindowSource`` touches the OS.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from lulu_companion.accessibility.element import AccessibleElement
from lulu_companion.accessibility.locator import WindowSource

logger = logging.getLogger(__name__)

_AX_SUCCESS = 0


def _ax():
    import ApplicationServices

    return ApplicationServices


def _copy_attribute(element: Any, attribute: str) -> Any:
    """Read one AX attribute; anything the OS refuses becomes None."""
    try:
        err, value = _ax().AXUIElementCopyAttributeValue(element, attribute, None)
    except Exception as exc:
        logger.debug("AX read of %s failed: %s", attribute, exc)
        return None
    if err != _AX_SUCCESS:
        return None
    return value


class AXElement(AccessibleElement):
    """Live AXUIElement wrapper."""

    __slots__ = ("_ref",)

    def __init__(self, ref: Any) -> None:
        self._ref = ref

    @property
    def role(self) -> Optional[str]:
        value = _copy_attribute(self._ref, _ax().kAXRoleAttribute)
        return str(value) if isinstance(value, str) else None

    def text_attributes(self) -> list[Optional[str]]:
        ax = _ax()
        values = []
        for attribute in (
            ax.kAXValueAttribute,
            ax.kAXTitleAttribute,
            ax.kAXDescriptionAttribute,
            ax.kAXHelpAttribute,
        ):
            value = _copy_attribute(self._ref, attribute)
            values.append(str(value) if isinstance(value, str) else None)
        return values

    def children(self) -> Sequence[AccessibleElement]:
        value = _copy_attribute(self._ref, _ax().kAXChildrenAttribute)
        if not value:
            return []
        return [AXElement(child) for child in value]


class MacWindowSource(WindowSource):
    """WindowSource backed by NSWorkspace and the AX API."""

    def windows(self, bundle_id: str, app_name: str) -> Sequence[AccessibleElement]:
        pid = self._find_pid(bundle_id, app_name)
        if pid is None:
            return []
        app = _ax().AXUIElementCreateApplication(pid)
        value = _copy_attribute(app, _ax().kAXWindowsAttribute)
        if not value:
            return []
        return [AXElement(window) for window in value]

    def is_trusted(self, prompt: bool = False) -> bool:
        ax = _ax()
        options = {ax.kAXTrustedCheckOptionPrompt: prompt}
        return bool(ax.AXIsProcessTrustedWithOptions(options))

    @staticmethod
    def _find_pid(bundle_id: str, app_name: str) -> Optional[int]:
        from AppKit import NSWorkspace

        running = list(NSWorkspace.sharedWorkspace().runningApplications())
        for app in running:
            if app.bundleIdentifier() == bundle_id:
                return int(app.processIdentifier())
        for app in running:
            if app.localizedName() == app_name:
                return int(app.processIdentifier())
        return None
