"""End-to-end behaviour of the tab/history state machine."""

from __future__ import annotations

import asyncio
import threading

import pytest

from LlmsDotTxt.ManifestWatch.coordinator import TabStatus
from LlmsDotTxt.ManifestWatch.errors import StorageError
from LlmsDotTxt.ManifestWatch.models import ManifestRecord
from LlmsDotTxt.ManifestWatch.storage import MemoryKeyValueStore
from tests.manifest_watch.support import Harness, text_response

X_MANIFEST = "https://x.com/llms.txt"


class FailingDurableStore(MemoryKeyValueStore):
    """Durable store whose writes fail once ``broken`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.broken = False

    def update(self, key, fn):
        if self.broken:
            raise StorageError("disk unavailable", key=key)
        return super().update(key, fn)


class GatedVolatileStore(MemoryKeyValueStore):
    """Volatile store whose next ``gated`` call blocks until ``release`` is set."""

    def __init__(self, gated: str) -> None:
        super().__init__()
        self.gated = gated
        self.armed = False
        self.entered = threading.Event()
        self.release = threading.Event()

    def _wait_if_armed(self, method: str) -> None:
        if self.armed and method == self.gated:
            self.armed = False
            self.entered.set()
            self.release.wait(5)

    def get(self, key, default=None):
        self._wait_if_armed("get")
        return super().get(key, default)

    def set(self, key, value):
        self._wait_if_armed("set")
        super().set(key, value)


class TestNavigation:
    def test_confirmed_manifest_is_recorded_and_cached(self) -> None:
        h = Harness({X_MANIFEST: text_response("hello")})

        async def run():
            status = await h.coordinator.on_navigation_completed(1, "https://x.com/guide")
            return status, await h.history.list(), await h.tabs.get(1)

        status, history, tab = asyncio.run(run())
        expected = ManifestRecord(url=X_MANIFEST, domain="x.com", content="hello")
        assert status is TabStatus.FOUND
        assert history == (expected,)
        assert tab == expected
        assert h.sink.last_found(1) is True

    def test_same_candidate_is_refreshed_not_duplicated(self) -> None:
        h = Harness({X_MANIFEST: text_response("hello")})

        async def run():
            await h.coordinator.on_navigation_completed(1, "https://x.com/guide")
            await h.coordinator.on_navigation_completed(2, "https://other.com/")
            await h.coordinator.on_navigation_completed(1, "https://x.com/other")
            return await h.history.list()

        history = asyncio.run(run())
        assert [entry.url for entry in history] == [X_MANIFEST]

    def test_reconfirmation_moves_entry_to_front_with_new_content(self) -> None:
        h = Harness(
            {
                X_MANIFEST: text_response("v1"),
                "https://y.com/llms.txt": text_response("y"),
            }
        )

        async def run():
            await h.coordinator.on_navigation_completed(1, "https://x.com/guide")
            await h.coordinator.on_navigation_completed(2, "https://y.com/")
            h.routes[X_MANIFEST] = text_response("v2")
            await h.coordinator.on_navigation_completed(1, "https://x.com/other")
            return await h.history.list()

        history = asyncio.run(run())
        assert [(e.domain, e.content) for e in history] == [("x.com", "v2"), ("y.com", "y")]

    def test_html_without_history_is_not_found(self) -> None:
        h = Harness({"https://y.com/llms.txt": text_response("<html/>", content_type="text/html")})

        async def run():
            status = await h.coordinator.on_navigation_completed(3, "https://y.com/")
            return status, await h.tabs.get(3)

        status, tab = asyncio.run(run())
        assert status is TabStatus.NOT_FOUND
        assert tab is None
        assert h.sink.last_found(3) is False

    def test_html_falls_back_to_history_for_domain(self) -> None:
        docs = "https://y.com/docs/llms.txt"
        h = Harness(
            {
                docs: text_response("docs manifest"),
                "https://y.com/llms.txt": text_response("<html/>", content_type="text/html"),
            }
        )

        async def run():
            await h.coordinator.on_navigation_completed(3, "https://y.com/docs/intro")
            status = await h.coordinator.on_navigation_completed(4, "https://y.com/")
            return status, await h.tabs.get(4), await h.history.list()

        status, tab, history = asyncio.run(run())
        assert status is TabStatus.FOUND
        assert tab.url == docs
        assert [entry.url for entry in history] == [docs]

    def test_capacity_evicts_oldest_domain(self) -> None:
        routes = {f"https://d{n}.com/llms.txt": text_response(f"m{n}") for n in (1, 2, 3)}
        h = Harness(routes)

        async def run():
            await h.coordinator.handle_message({"type": "saveSettings", "settings": {"historyCount": 2}})
            for n in (1, 2, 3):
                await h.coordinator.on_navigation_completed(n, f"https://d{n}.com/")
            return await h.history.list()

        assert [entry.domain for entry in asyncio.run(run())] == ["d3.com", "d2.com"]

    def test_rejected_purges_previously_confirmed_entry(self) -> None:
        h = Harness({X_MANIFEST: text_response("good")})

        async def run():
            await h.coordinator.on_navigation_completed(1, "https://x.com/")
            h.routes[X_MANIFEST] = text_response("<!DOCTYPE html>")
            status = await h.coordinator.on_navigation_completed(1, "https://x.com/")
            return status, await h.history.list(), await h.tabs.get(1)

        status, history, tab = asyncio.run(run())
        assert status is TabStatus.NOT_FOUND
        assert history == ()
        assert tab is None

    def test_absent_keeps_history_and_uses_domain_fallback(self) -> None:
        h = Harness({X_MANIFEST: text_response("root")})

        async def run():
            await h.coordinator.on_navigation_completed(1, "https://x.com/")
            del h.routes[X_MANIFEST]
            status = await h.coordinator.on_navigation_completed(2, "https://x.com/a/b")
            return status, await h.tabs.get(2), await h.history.list()

        status, tab, history = asyncio.run(run())
        assert status is TabStatus.FOUND
        assert tab.url == X_MANIFEST
        assert len(history) == 1

    def test_non_http_page_skips_fetch(self) -> None:
        h = Harness()
        calls: list[str] = []
        h.routes["file:///tmp/llms.txt"] = lambda request: calls.append(str(request.url))

        status = asyncio.run(h.coordinator.on_navigation_completed(5, "file:///tmp/index.html"))
        assert status is TabStatus.NOT_FOUND
        assert calls == []
        assert h.sink.last_found(5) is False

    def test_superseded_navigation_result_is_discarded(self) -> None:
        release = None

        async def slow_route(request):
            await release.wait()
            return text_response("slow")

        h = Harness(
            {
                "https://slow.com/llms.txt": slow_route,
                "https://fast.com/llms.txt": text_response("fast"),
            }
        )

        async def run():
            nonlocal release
            release = asyncio.Event()
            slow = asyncio.create_task(
                h.coordinator.on_navigation_completed(1, "https://slow.com/")
            )
            await asyncio.sleep(0)
            fast_status = await h.coordinator.on_navigation_completed(1, "https://fast.com/")
            release.set()
            slow_status = await slow
            return fast_status, slow_status, await h.tabs.get(1), await h.history.list()

        fast_status, slow_status, tab, history = asyncio.run(run())
        assert fast_status is TabStatus.FOUND
        assert slow_status is TabStatus.FOUND
        assert tab.domain == "fast.com"
        assert [entry.domain for entry in history] == ["fast.com"]

    def test_storage_failure_leaves_prior_state(self) -> None:
        durable = FailingDurableStore()
        h = Harness({X_MANIFEST: text_response("v1")}, durable=durable)

        async def run():
            await h.coordinator.on_navigation_completed(1, "https://x.com/")
            durable.broken = True
            h.routes[X_MANIFEST] = text_response("v2")
            status = await h.coordinator.on_navigation_completed(1, "https://x.com/")
            return status, await h.tabs.get(1), await h.history.list()

        status, tab, history = asyncio.run(run())
        assert status is TabStatus.UNKNOWN
        assert tab.content == "v1"
        assert history[0].content == "v1"

    def test_icon_failure_is_not_fatal(self) -> None:
        h = Harness({X_MANIFEST: text_response("hello")})

        async def broken_set_icon(tab_id, paths):
            raise RuntimeError("No tab with id: 1")

        h.sink.set_icon = broken_set_icon

        status = asyncio.run(h.coordinator.on_navigation_completed(1, "https://x.com/"))
        assert status is TabStatus.FOUND


class TestActivationAndRemoval:
    def test_activation_trusts_matching_tab_state_without_fetching(self) -> None:
        h = Harness({X_MANIFEST: text_response("hello")})

        async def run():
            await h.coordinator.on_navigation_completed(1, "https://x.com/")
            h.routes.clear()
            return await h.coordinator.on_tab_activated(1, "https://x.com/page")

        assert asyncio.run(run()) is TabStatus.FOUND
        assert h.sink.last_found(1) is True

    def test_activation_repopulates_from_history_after_removal(self) -> None:
        h = Harness({X_MANIFEST: text_response("hello")})

        async def run():
            await h.coordinator.on_navigation_completed(1, "https://x.com/")
            await h.coordinator.on_tab_removed(1)
            cleared = await h.tabs.get(1)
            status = await h.coordinator.on_tab_activated(1, "https://x.com/deep/page")
            return cleared, status, await h.tabs.get(1)

        cleared, status, tab = asyncio.run(run())
        assert cleared is None
        assert status is TabStatus.FOUND
        assert tab.url == X_MANIFEST

    def test_activation_on_other_domain_clears_tab_state(self) -> None:
        h = Harness({X_MANIFEST: text_response("hello")})

        async def run():
            await h.coordinator.on_navigation_completed(1, "https://x.com/")
            status = await h.coordinator.on_tab_activated(1, "https://unrelated.org/")
            return status, await h.tabs.get(1)

        status, tab = asyncio.run(run())
        assert status is TabStatus.NOT_FOUND
        assert tab is None

    def test_tab_removed_forgets_status(self) -> None:
        h = Harness({X_MANIFEST: text_response("hello")})

        async def run():
            await h.coordinator.on_navigation_completed(9, "https://x.com/")
            await h.coordinator.on_tab_removed(9)

        asyncio.run(run())
        assert h.coordinator.status_of(9) is TabStatus.UNKNOWN
        assert 9 not in h.coordinator.tracked_tabs
        assert len(h.volatile) == 0

    @pytest.mark.parametrize("event", ["navigation", "activation"])
    def test_tab_closed_during_history_lookup_stays_forgotten(self, event: str) -> None:
        volatile = GatedVolatileStore("get")
        h = Harness(volatile=volatile)

        async def run():
            await h.history.upsert(ManifestRecord(url=X_MANIFEST, domain="x.com", content="root"), 5)
            volatile.armed = True
            if event == "navigation":
                pending = h.coordinator.on_navigation_completed(7, "https://x.com/a/b")
            else:
                pending = h.coordinator.on_tab_activated(7, "https://x.com/a/b")
            task = asyncio.create_task(pending)
            assert await asyncio.to_thread(volatile.entered.wait, 5)
            await h.coordinator.on_tab_removed(7)
            volatile.release.set()
            return await task

        status = asyncio.run(run())
        assert status is TabStatus.UNKNOWN
        assert h.volatile.keys() == []
        assert 7 not in h.coordinator.tracked_tabs
        assert h.sink.last_found(7) is None

    def test_tab_closed_during_cache_write_ends_cleared(self) -> None:
        volatile = GatedVolatileStore("set")
        h = Harness({X_MANIFEST: text_response("hello")}, volatile=volatile)

        async def run():
            volatile.armed = True
            task = asyncio.create_task(h.coordinator.on_navigation_completed(7, "https://x.com/"))
            assert await asyncio.to_thread(volatile.entered.wait, 5)
            removal = asyncio.create_task(h.coordinator.on_tab_removed(7))
            await asyncio.sleep(0)
            volatile.release.set()
            await removal
            return await task

        status = asyncio.run(run())
        assert status is TabStatus.UNKNOWN
        assert h.volatile.keys() == []
        assert 7 not in h.coordinator.tracked_tabs
        assert h.sink.last_found(7) is None

    def test_tab_closed_while_request_in_flight_is_not_cached(self) -> None:
        entered = None
        release = None

        async def slow_route(request):
            entered.set()
            await release.wait()
            return text_response("hello")

        h = Harness({X_MANIFEST: slow_route})

        async def run():
            nonlocal entered, release
            entered = asyncio.Event()
            release = asyncio.Event()
            task = asyncio.create_task(h.coordinator.on_navigation_completed(7, "https://x.com/"))
            await entered.wait()
            await h.coordinator.on_tab_removed(7)
            release.set()
            return await task, await h.history.list()

        status, history = asyncio.run(run())
        assert status is TabStatus.UNKNOWN
        assert history == ()
        assert h.volatile.keys() == []
        assert 7 not in h.coordinator.tracked_tabs

    @pytest.mark.parametrize("url", ["about:blank", "not a url"])
    def test_unparsable_or_hostless_page_is_not_found(self, url: str) -> None:
        h = Harness()
        assert asyncio.run(h.coordinator.on_tab_activated(1, url)) is TabStatus.NOT_FOUND
