"""Assembly of a ready-to-run watcher from configuration.

:class:`ManifestWatcher` acquires every resource the coordinator needs (the
durable store, the volatile tab store, the HTTP client) and releases them in
``aclose``. Callers that already hold some of these resources pass them in and
keep ownership of them.

Usage:
    config = load_config("watch.yaml")
    async with ManifestWatcher(config) as watcher:
        await watcher.dispatch(NavigationCompleted(1, "https://x.com/guide"))
        data = await watcher.request({"type": "getTabData", "tabId": 1})
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import httpx

from LlmsDotTxt.ManifestWatch.config.models import WatcherConfig
from LlmsDotTxt.ManifestWatch.coordinator import ManifestCoordinator
from LlmsDotTxt.ManifestWatch.events import EventDispatcher, TabEvent
from LlmsDotTxt.ManifestWatch.fetcher import ManifestFetcher
from LlmsDotTxt.ManifestWatch.history import HistoryStore
from LlmsDotTxt.ManifestWatch.icons import IconPresenter, IconSink, LoggingIconSink
from LlmsDotTxt.ManifestWatch.settings import SettingsStore
from LlmsDotTxt.ManifestWatch.storage import (
    KeyValueStore,
    MemoryKeyValueStore,
    SQLiteKeyValueStore,
    open_durable_store,
)
from LlmsDotTxt.ManifestWatch.tab_state import TabStateStore

LOGGER = logging.getLogger(__name__)


class ManifestWatcher:
    """Own the stores, fetcher and dispatcher around one coordinator."""

    def __init__(
        self,
        config: Optional[WatcherConfig] = None,
        *,
        durable_store: Optional[KeyValueStore] = None,
        volatile_store: Optional[KeyValueStore] = None,
        icon_sink: Optional[IconSink] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.config = config or WatcherConfig()
        self._owned_durable: Optional[SQLiteKeyValueStore] = None
        if durable_store is None:
            self._owned_durable = open_durable_store(self.config.storage.durable_path)
            durable_store = self._owned_durable
        self.durable_store = durable_store
        self.volatile_store = volatile_store if volatile_store is not None else MemoryKeyValueStore()
        self.icon_sink = icon_sink if icon_sink is not None else LoggingIconSink()
        self.fetcher = ManifestFetcher(self.config.http, client=client)
        self.coordinator = ManifestCoordinator(
            history=HistoryStore(self.durable_store),
            tabs=TabStateStore(self.volatile_store),
            settings=SettingsStore(self.durable_store),
            icons=IconPresenter(self.icon_sink),
            fetcher=self.fetcher,
        )
        self.dispatcher = EventDispatcher()
        self.coordinator.attach(self.dispatcher)

    async def __aenter__(self) -> "ManifestWatcher":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def dispatch(self, event: TabEvent) -> Any:
        return await self.dispatcher.dispatch(event)

    async def request(self, message: Mapping[str, Any]) -> Any:
        return await self.coordinator.handle_message(message)

    async def aclose(self) -> None:
        await self.fetcher.aclose()
        if self._owned_durable is not None:
            self._owned_durable.close()
            self._owned_durable = None
        LOGGER.debug("Watcher closed")


__all__ = ("ManifestWatcher",)
