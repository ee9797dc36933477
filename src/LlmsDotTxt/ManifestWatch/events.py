# === NAVMAP v1 ===
# {
#   "module": "LlmsDotTxt.ManifestWatch.events",
#   "purpose": "Tab lifecycle events and a one-handler-per-kind async dispatcher",
#   "sections": [
#     {
#       "id": "eventkind",
#       "name": "EventKind",
#       "anchor": "class-eventkind",
#       "kind": "class"
#     },
#     {
#       "id": "navigationcompleted",
#       "name": "NavigationCompleted",
#       "anchor": "class-navigationcompleted",
#       "kind": "class"
#     },
#     {
#       "id": "tabactivated",
#       "name": "TabActivated",
#       "anchor": "class-tabactivated",
#       "kind": "class"
#     },
#     {
#       "id": "tabremoved",
#       "name": "TabRemoved",
#       "anchor": "class-tabremoved",
#       "kind": "class"
#     },
#     {
#       "id": "parse-event",
#       "name": "parse_event",
#       "anchor": "function-parse-event",
#       "kind": "function"
#     },
#     {
#       "id": "eventdispatcher",
#       "name": "EventDispatcher",
#       "anchor": "class-eventdispatcher",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Tab lifecycle events delivered by the browser host.

Three kinds exist: a page finished loading in a tab, the user switched to a
tab, and a tab closed. Each kind has exactly one registered handler on an
:class:`EventDispatcher`. A failing handler is logged and the dispatcher
keeps going, so one bad event can never stop the coordinator.

Recorded sessions use one JSON object per event::

    {"type": "navigation", "tabId": 3, "url": "https://x.com/guide"}
    {"type": "activated", "tabId": 3, "url": "https://x.com/guide"}
    {"type": "removed", "tabId": 3}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Union

LOGGER = logging.getLogger(__name__)


class EventKind(Enum):
    NAVIGATION_COMPLETED = "navigation"
    TAB_ACTIVATED = "activated"
    TAB_REMOVED = "removed"

    @classmethod
    def from_wire(cls, value: Union[str, "EventKind", None]) -> "EventKind":
        """Return the enum member for ``value``; raise ``ValueError`` if unknown."""

        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower().replace("-", "_")
        for member in cls:
            if text in (member.value, member.name.lower()):
                return member
        raise ValueError(f"Unknown event type: {value!r}")


@dataclass(frozen=True)
class NavigationCompleted:
    tab_id: int
    url: str
    kind: EventKind = field(default=EventKind.NAVIGATION_COMPLETED, init=False, repr=False)


@dataclass(frozen=True)
class TabActivated:
    tab_id: int
    url: str
    kind: EventKind = field(default=EventKind.TAB_ACTIVATED, init=False, repr=False)


@dataclass(frozen=True)
class TabRemoved:
    tab_id: int
    kind: EventKind = field(default=EventKind.TAB_REMOVED, init=False, repr=False)


TabEvent = Union[NavigationCompleted, TabActivated, TabRemoved]
EventHandler = Callable[[Any], Awaitable[Any]]


def _tab_id(data: Mapping[str, Any]) -> int:
    raw = data.get("tabId", data.get("tab_id"))
    if isinstance(raw, bool) or raw is None:
        raise ValueError(f"Event is missing a tab id: {dict(data)!r}")
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid tab id {raw!r}") from exc


def parse_event(data: Mapping[str, Any]) -> TabEvent:
    """Build a typed event from its JSON object form.

    Raises
    ------
    ValueError
        If the type is unknown, the tab id is missing, or a URL is required
        but absent.
    """

    kind = EventKind.from_wire(data.get("type"))
    tab_id = _tab_id(data)
    if kind is EventKind.TAB_REMOVED:
        return TabRemoved(tab_id)
    url = data.get("url")
    if not isinstance(url, str) or not url:
        raise ValueError(f"{kind.value} event for tab {tab_id} has no url")
    if kind is EventKind.TAB_ACTIVATED:
        return TabActivated(tab_id, url)
    return NavigationCompleted(tab_id, url)


class EventDispatcher:
    """Route each event kind to its single registered async handler."""

    def __init__(self) -> None:
        self._handlers: Dict[EventKind, EventHandler] = {}

    def register(self, kind: EventKind, handler: EventHandler) -> None:
        if kind in self._handlers:
            raise ValueError(f"A handler for {kind.value!r} is already registered")
        self._handlers[kind] = handler

    def unregister(self, kind: EventKind) -> None:
        self._handlers.pop(kind, None)

    def handler_for(self, kind: EventKind) -> Optional[EventHandler]:
        return self._handlers.get(kind)

    async def dispatch(self, event: TabEvent) -> Any:
        """Run the handler for ``event``; failures are logged, never raised."""

        handler = self._handlers.get(event.kind)
        if handler is None:
            LOGGER.debug("No handler registered for %s", event.kind.value)
            return None
        try:
            return await handler(event)
        except Exception:
            LOGGER.exception(
                "Handler for %s failed on tab %s",
                event.kind.value,
                event.tab_id,
                extra={"extra_fields": {"tab_id": event.tab_id, "event": event.kind.value}},
            )
            return None


__all__ = (
    "EventKind",
    "NavigationCompleted",
    "TabActivated",
    "TabRemoved",
    "TabEvent",
    "EventDispatcher",
    "parse_event",
)
