"""Window Locator: find the firewall's alert window among its windows.

The OS binding is hidden behind WindowSource so the locator (and
everything downstream) runs without a window server in tests.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional, Sequence

from lulu_companion.accessibility.element import AccessibleElement

logger = logging.getLogger(__name__)


class WindowSource(ABC):
    """Lists the windows owned by an external application."""

    @abstractmethod
    def windows(self, bundle_id: str, app_name: str) -> Sequence[AccessibleElement]:
        """Return the application's windows, or an empty list if it is not running.

        The application is matched by *bundle_id* first and by its display
        name *app_name* only when no process carries that bundle id.
        """
        ...

    def is_trusted(self, prompt: bool = False) -> bool:
        """Whether this process may read other applications' UI."""
        return True


class WindowLocator:
    """Finds the alert window of one target application.

    Args:
        source: OS binding used to list windows.
        bundle_id: Stable bundle identifier of the target application.
        app_name: Display-name fallback for the target application.
        title_marker: Substring that marks a window title as an alert.
    """

    def __init__(
        self,
        source: WindowSource,
        bundle_id: str = "com.objective-see.lulu.app",
        app_name: str = "LuLu",
        title_marker: str = "LuLu Alert",
    ) -> None:
        self._source = source
        self._bundle_id = bundle_id
        self._app_name = app_name
        self._title_marker = title_marker

    @property
    def source(self) -> WindowSource:
        return self._source

    def find_alert_window(self) -> Optional[AccessibleElement]:
        """Return the first window whose title contains the alert marker."""
        try:
            windows = self._source.windows(self._bundle_id, self._app_name)
        except Exception as exc:
            logger.warning("Could not list %s windows: %s", self._app_name, exc)
            return None

        for window in windows:
            title = window.title
            if title and self._title_marker in title:
                return window
        return None
