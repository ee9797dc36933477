# === NAVMAP v1 ===
# {
#   "module": "LlmsDotTxt.ManifestWatch.coordinator",
#   "purpose": "Event-driven state machine keeping tab indicators, tab cache, and history consistent",
#   "sections": [
#     {
#       "id": "tabstatus",
#       "name": "TabStatus",
#       "anchor": "class-tabstatus",
#       "kind": "class"
#     },
#     {
#       "id": "manifestcoordinator",
#       "name": "ManifestCoordinator",
#       "anchor": "class-manifestcoordinator",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Background coordinator for manifest detection.

Per-tab state machine (``UNKNOWN`` → ``FOUND`` / ``NOT_FOUND``):

1. **Navigation completed** (tab ``T``, page ``u``)
   - non-HTTP(S) page: skip the probe, go to (3);
   - probe ``c = manifest_url_for(u)``;
   - ``CONFIRMED``: upsert ``{c, domain(u), body}`` into history, cache it
     for ``T``, show the found icon;
   - ``REJECTED``: drop history entry ``c`` and ``T``'s cache, then (3);
   - ``ABSENT``: (3).
2. **Tab activated**: (3) only, never probes.
3. **Resync**: trust ``T``'s cache when its domain matches ``domain(u)``;
   otherwise adopt the newest history entry for that domain; otherwise clear
   ``T``'s cache and show the static icon.
4. **Tab removed**: clear ``T``'s cache.

Stale probes
------------
Every navigation gets a generation number. A probe that resolves after a
newer navigation (or the tab's removal) is discarded instead of overwriting
fresher state. Liveness is checked again before every write of a transition,
so a tab closed while its fallback lookup is pending never gets its cache
or status back.

Failures
--------
Network problems are classification outcomes and never raise here.
:class:`StorageError` aborts the current transition; it is logged, the tab
reports ``UNKNOWN``, and the previous state is left as it was. Icon failures
are swallowed by :class:`IconPresenter`.
"""

from __future__ import annotations

import itertools
import logging
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Set, Tuple

from LlmsDotTxt.ManifestWatch.classifier import ClassificationResult
from LlmsDotTxt.ManifestWatch.errors import StorageError, log_detection_failure
from LlmsDotTxt.ManifestWatch.events import (
    EventDispatcher,
    EventKind,
    NavigationCompleted,
    TabActivated,
    TabRemoved,
)
from LlmsDotTxt.ManifestWatch.fetcher import ManifestFetcher
from LlmsDotTxt.ManifestWatch.history import HistoryStore
from LlmsDotTxt.ManifestWatch.icons import IconPresenter
from LlmsDotTxt.ManifestWatch.models import ManifestRecord
from LlmsDotTxt.ManifestWatch.protocol import (
    ACK,
    RequestType,
    history_response,
    tab_data_response,
)
from LlmsDotTxt.ManifestWatch.settings import SettingsStore
from LlmsDotTxt.ManifestWatch.tab_state import TabStateStore
from LlmsDotTxt.ManifestWatch.urls import manifest_url_for, page_domain

LOGGER = logging.getLogger(__name__)


class TabStatus(Enum):
    UNKNOWN = "unknown"
    FOUND = "found"
    NOT_FOUND = "not_found"


class ManifestCoordinator:
    """Reacts to tab events and answers protocol requests."""

    def __init__(
        self,
        *,
        history: HistoryStore,
        tabs: TabStateStore,
        settings: SettingsStore,
        icons: IconPresenter,
        fetcher: ManifestFetcher,
    ) -> None:
        self.history = history
        self.tabs = tabs
        self.settings = settings
        self._icons = icons
        self._fetcher = fetcher
        self._generation = itertools.count(1)
        self._navigations: Dict[int, Tuple[int, str]] = {}
        self._status: Dict[int, TabStatus] = {}
        self._closed: Set[int] = set()

    # ── Wiring ────────────────────────────────────────────────────────────────

    def attach(self, dispatcher: EventDispatcher) -> None:
        """Register one handler per event kind on ``dispatcher``."""

        async def on_navigation(event: NavigationCompleted) -> TabStatus:
            return await self.on_navigation_completed(event.tab_id, event.url)

        async def on_activated(event: TabActivated) -> TabStatus:
            return await self.on_tab_activated(event.tab_id, event.url)

        async def on_removed(event: TabRemoved) -> None:
            await self.on_tab_removed(event.tab_id)

        dispatcher.register(EventKind.NAVIGATION_COMPLETED, on_navigation)
        dispatcher.register(EventKind.TAB_ACTIVATED, on_activated)
        dispatcher.register(EventKind.TAB_REMOVED, on_removed)

    def status_of(self, tab_id: int) -> TabStatus:
        return self._status.get(tab_id, TabStatus.UNKNOWN)

    @property
    def tracked_tabs(self) -> Tuple[int, ...]:
        return tuple(sorted(self._status))

    # ── Transitions ───────────────────────────────────────────────────────────

    async def on_navigation_completed(self, tab_id: int, url: str) -> TabStatus:
        generation = next(self._generation)
        self._navigations[tab_id] = (generation, url)
        self._closed.discard(tab_id)
        try:
            return await self._detect(tab_id, url, generation)
        except StorageError as exc:
            log_detection_failure(
                LOGGER, tab_id=tab_id, page_url=url, failure=exc, stage="navigation"
            )
            return TabStatus.UNKNOWN

    async def on_tab_activated(self, tab_id: int, url: str) -> TabStatus:
        self._closed.discard(tab_id)
        try:
            return await self.resync(tab_id, url)
        except StorageError as exc:
            log_detection_failure(
                LOGGER, tab_id=tab_id, page_url=url, failure=exc, stage="activation"
            )
            return TabStatus.UNKNOWN

    async def on_tab_removed(self, tab_id: int) -> None:
        self._closed.add(tab_id)
        self._navigations.pop(tab_id, None)
        self._status.pop(tab_id, None)
        try:
            await self.tabs.clear(tab_id)
        except StorageError as exc:
            log_detection_failure(LOGGER, tab_id=tab_id, page_url=None, failure=exc, stage="removal")

    async def resync(self, tab_id: int, url: str) -> TabStatus:
        """Decide the tab's indicator from its cache and the history, without probing."""

        return await self._resync(tab_id, url, None)

    # ── Internals ─────────────────────────────────────────────────────────────

    def _is_current(self, tab_id: int, generation: Optional[int]) -> bool:
        """``False`` once the tab closed or, for a navigation, a newer one started."""

        if tab_id in self._closed:
            return False
        if generation is None:
            return True
        current = self._navigations.get(tab_id)
        return current is not None and current[0] == generation

    async def _resync(self, tab_id: int, url: str, generation: Optional[int]) -> TabStatus:
        domain = page_domain(url)
        cached = await self.tabs.get(tab_id)
        if cached is not None and domain is not None and cached.domain == domain:
            return await self._show(tab_id, TabStatus.FOUND, generation)

        entry = await self.history.find_by_domain(domain)
        if not self._is_current(tab_id, generation):
            return self.status_of(tab_id)
        if entry is not None:
            await self.tabs.set(tab_id, entry)
            LOGGER.debug("Tab %s adopts history entry %s", tab_id, entry.url)
            return await self._show(tab_id, TabStatus.FOUND, generation)

        await self.tabs.clear(tab_id)
        return await self._show(tab_id, TabStatus.NOT_FOUND, generation)

    async def _detect(self, tab_id: int, url: str, generation: int) -> TabStatus:
        candidate = manifest_url_for(url)
        if candidate is None:
            LOGGER.debug("Tab %s shows a non-HTTP page; using history only", tab_id)
            return await self._resync(tab_id, url, generation)

        result = await self._fetcher.fetch(candidate)
        if not self._is_current(tab_id, generation):
            LOGGER.info(
                "Discarding stale probe of %s for tab %s",
                candidate,
                tab_id,
                extra={"extra_fields": {"tab_id": tab_id, "candidate": candidate}},
            )
            return self.status_of(tab_id)

        if result.confirmed:
            return await self._confirm(tab_id, url, candidate, result, generation)

        log_detection_failure(LOGGER, tab_id=tab_id, page_url=url, failure=result)
        if result.rejected:
            await self.history.remove_by_url(candidate)
            if not self._is_current(tab_id, generation):
                return self.status_of(tab_id)
            await self.tabs.clear(tab_id)
        return await self._resync(tab_id, url, generation)

    async def _confirm(
        self,
        tab_id: int,
        url: str,
        candidate: str,
        result: ClassificationResult,
        generation: int,
    ) -> TabStatus:
        record = ManifestRecord(
            url=candidate,
            domain=page_domain(url) or "",
            content=result.content or "",
        )
        settings = await self.settings.get()
        await self.history.upsert(record, settings.history_count)
        if not self._is_current(tab_id, generation):
            return self.status_of(tab_id)
        await self.tabs.set(tab_id, record)
        LOGGER.info(
            "Manifest confirmed at %s",
            candidate,
            extra={"extra_fields": {"tab_id": tab_id, "candidate": candidate}},
        )
        return await self._show(tab_id, TabStatus.FOUND, generation)

    async def _show(
        self, tab_id: int, status: TabStatus, generation: Optional[int]
    ) -> TabStatus:
        if not self._is_current(tab_id, generation):
            # Closed or superseded during the cache write; a removal's clear is
            # ordered after that write.
            return self.status_of(tab_id)
        self._status[tab_id] = status
        await self._icons.apply(tab_id, status is TabStatus.FOUND)
        return status

    # ── Protocol ──────────────────────────────────────────────────────────────

    async def handle_message(self, message: Mapping[str, Any]) -> Any:
        """Answer one protocol request (see :mod:`LlmsDotTxt.ManifestWatch.protocol`).

        Raises
        ------
        UnknownRequestError
            If ``message["type"]`` is not a supported request.
        StorageError
            If the backing store fails.
        """

        request = RequestType.from_wire(message.get("type"))

        if request is RequestType.GET_TAB_DATA:
            tab_id = _coerce_tab_id(message.get("tabId", message.get("tab_id")))
            if tab_id is None:
                return tab_data_response(None)
            return tab_data_response(await self.tabs.get(tab_id))

        if request is RequestType.GET_HISTORY:
            return history_response(await self.history.list())

        if request is RequestType.GET_SETTINGS:
            return (await self.settings.get()).to_wire()

        if request is RequestType.SAVE_SETTINGS:
            payload = message.get("settings")
            if not isinstance(payload, Mapping):
                payload = {key: value for key, value in message.items() if key != "type"}
            await self.settings.save(payload)
            return dict(ACK)

        await self.history.clear()
        return dict(ACK)


def _coerce_tab_id(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


__all__ = ("TabStatus", "ManifestCoordinator")
