"""Test doubles and wiring helpers for ManifestWatch tests.

Async code is driven with ``asyncio.run`` from plain pytest functions; HTTP is
served by ``httpx.MockTransport`` routes keyed on the full request URL.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional, Union

import httpx

from LlmsDotTxt.ManifestWatch.config.models import HttpClientConfig
from LlmsDotTxt.ManifestWatch.coordinator import ManifestCoordinator
from LlmsDotTxt.ManifestWatch.fetcher import ManifestFetcher
from LlmsDotTxt.ManifestWatch.history import HistoryStore
from LlmsDotTxt.ManifestWatch.icons import FOUND_ICON, IconPresenter
from LlmsDotTxt.ManifestWatch.settings import SettingsStore
from LlmsDotTxt.ManifestWatch.storage import MemoryKeyValueStore
from LlmsDotTxt.ManifestWatch.tab_state import TabStateStore

Route = Union[httpx.Response, Callable[[httpx.Request], Any]]


class RecordingIconSink:
    """Icon sink remembering every applied set, per tab, in order."""

    def __init__(self) -> None:
        self.calls: list[tuple[int, Mapping[int, str]]] = []

    async def set_icon(self, tab_id: int, paths: Mapping[int, str]) -> None:
        self.calls.append((tab_id, paths))

    def last_found(self, tab_id: int) -> Optional[bool]:
        for called_tab, paths in reversed(self.calls):
            if called_tab == tab_id:
                return paths is FOUND_ICON
        return None


def text_response(body: str, *, status: int = 200, content_type: str = "text/plain") -> httpx.Response:
    return httpx.Response(status, content=body.encode("utf-8"), headers={"content-type": content_type})


def make_client(routes: Dict[str, Route]) -> httpx.AsyncClient:
    """Build an async client whose transport answers from ``routes`` (404 otherwise)."""

    async def handler(request: httpx.Request) -> httpx.Response:
        route = routes.get(str(request.url))
        if route is None:
            return httpx.Response(404, content=b"not found", headers={"content-type": "text/plain"})
        if isinstance(route, httpx.Response):
            return httpx.Response(
                route.status_code, content=route.content, headers=route.headers
            )
        result = route(request)
        if hasattr(result, "__await__"):
            result = await result
        return result

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class Harness:
    """Coordinator wired to in-memory stores, a recording sink, and mock HTTP."""

    def __init__(
        self,
        routes: Optional[Dict[str, Route]] = None,
        *,
        durable: Any = None,
        volatile: Any = None,
        http_config: Optional[HttpClientConfig] = None,
    ) -> None:
        self.routes: Dict[str, Route] = routes if routes is not None else {}
        self.durable = durable if durable is not None else MemoryKeyValueStore()
        self.volatile = volatile if volatile is not None else MemoryKeyValueStore()
        self.sink = RecordingIconSink()
        self.client = make_client(self.routes)
        self.fetcher = ManifestFetcher(http_config or HttpClientConfig(), client=self.client)
        self.history = HistoryStore(self.durable)
        self.tabs = TabStateStore(self.volatile)
        self.settings = SettingsStore(self.durable)
        self.coordinator = ManifestCoordinator(
            history=self.history,
            tabs=self.tabs,
            settings=self.settings,
            icons=IconPresenter(self.sink),
            fetcher=self.fetcher,
        )

