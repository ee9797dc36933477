"""Two-state toolbar indicator for manifest detection.

The presenter picks one of two fixed multi-resolution icon sets and hands it
to an :class:`IconSink`, the platform call that paints the tab's action
button. Sink failures (typically the tab closed mid-update) are logged and
swallowed: a stale indicator is acceptable, a crashed coordinator is not.
"""

from __future__ import annotations

import logging
from typing import Mapping, Protocol, runtime_checkable

LOGGER = logging.getLogger(__name__)

FOUND_ICON: Mapping[int, str] = {
    16: "/icons/icon-found-16.png",
    32: "/icons/icon-found-32.png",
    48: "/icons/icon-found-48.png",
    128: "/icons/icon-found-128.png",
}

STATIC_ICON: Mapping[int, str] = {
    16: "/icons/icon-16.png",
    32: "/icons/icon-32.png",
    48: "/icons/icon-48.png",
    128: "/icons/icon-128.png",
}


@runtime_checkable
class IconSink(Protocol):
    """Platform hook that applies an icon set to one tab."""

    async def set_icon(self, tab_id: int, paths: Mapping[int, str]) -> None: ...


class LoggingIconSink:
    """Sink for headless runs: records the last icon set per tab and logs it."""

    def __init__(self) -> None:
        self.applied: dict[int, Mapping[int, str]] = {}

    async def set_icon(self, tab_id: int, paths: Mapping[int, str]) -> None:
        self.applied[tab_id] = paths
        LOGGER.debug("Icon for tab %s -> %s", tab_id, paths.get(16))


class IconPresenter:
    def __init__(self, sink: IconSink) -> None:
        self._sink = sink

    @staticmethod
    def icon_set(found: bool) -> Mapping[int, str]:
        return FOUND_ICON if found else STATIC_ICON

    async def apply(self, tab_id: int, found: bool) -> bool:
        """Apply the found/static icon to ``tab_id``; returns ``False`` on failure."""

        try:
            await self._sink.set_icon(tab_id, self.icon_set(found))
        except Exception as exc:
            LOGGER.warning(
                "Failed to set %s icon for tab %s: %s",
                "found" if found else "static",
                tab_id,
                exc,
                extra={"extra_fields": {"tab_id": tab_id, "error_type": type(exc).__name__}},
            )
            return False
        return True


__all__ = ("FOUND_ICON", "STATIC_ICON", "IconSink", "LoggingIconSink", "IconPresenter")
