# === NAVMAP v1 ===
# {
#   "module": "LlmsDotTxt.ManifestWatch.history",
#   "purpose": "Bounded, deduplicated, most-recent-first history of confirmed manifests",
#   "sections": [
#     {
#       "id": "historystore",
#       "name": "HistoryStore",
#       "anchor": "class-historystore",
#       "kind": "class"
#     },
#     {
#       "id": "upserted",
#       "name": "upserted",
#       "anchor": "function-upserted",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Durable history of confirmed manifests.

The history is one JSON array under the ``history`` key of the durable
store, most recently confirmed first. It keeps three invariants:

1. no two entries share a ``url``;
2. the length never exceeds the configured capacity;
3. re-confirming a known ``url`` moves it to the front with fresh content.

All writes are serialised twice over: an :class:`asyncio.Lock` orders
writers within the event loop, and each write is a single atomic
:meth:`KeyValueStore.update` so concurrent processes sharing the database
cannot lose an upsert either. Store I/O runs in a worker thread so the
event loop stays responsive.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable, List, Optional, Tuple

from LlmsDotTxt.ManifestWatch.models import ManifestRecord
from LlmsDotTxt.ManifestWatch.storage import KeyValueStore

LOGGER = logging.getLogger(__name__)

HISTORY_KEY = "history"


def _decode_rows(rows: Any) -> List[ManifestRecord]:
    if not isinstance(rows, list):
        return []
    records: List[ManifestRecord] = []
    for row in rows:
        try:
            records.append(ManifestRecord.from_dict(row))
        except ValueError:
            LOGGER.warning("Skipping malformed history row: %r", row)
    return records


def upserted(
    records: Iterable[ManifestRecord], record: ManifestRecord, capacity: int
) -> List[ManifestRecord]:
    """Return ``records`` with ``record`` moved/inserted at the front and truncated."""

    kept = [existing for existing in records if existing.url != record.url]
    kept.insert(0, record)
    return kept[: max(1, int(capacity))]


class HistoryStore:
    """Async facade over the durable ``history`` list."""

    def __init__(self, store: KeyValueStore, *, key: str = HISTORY_KEY) -> None:
        self._store = store
        self._key = key
        self._write_lock = asyncio.Lock()

    async def upsert(self, record: ManifestRecord, capacity: int) -> None:
        """Insert ``record`` at the front, replacing any entry with the same URL."""

        def apply(current: Any) -> list:
            return [row.to_dict() for row in upserted(_decode_rows(current), record, capacity)]

        async with self._write_lock:
            await asyncio.to_thread(self._store.update, self._key, apply)
        LOGGER.debug("History upsert %s (capacity=%s)", record.url, capacity)

    async def remove_by_url(self, url: str) -> bool:
        """Drop the entry for ``url``; returns ``True`` when something was removed."""

        removed = False

        def apply(current: Any) -> Any:
            nonlocal removed
            records = _decode_rows(current)
            kept = [row for row in records if row.url != url]
            removed = len(kept) != len(records)
            if not removed:
                return current
            return [row.to_dict() for row in kept]

        async with self._write_lock:
            if not any(row.url == url for row in await self.list()):
                return False
            await asyncio.to_thread(self._store.update, self._key, apply)
        if removed:
            LOGGER.info("Removed stale history entry %s", url)
        return removed

    async def find_by_domain(self, domain: Optional[str]) -> Optional[ManifestRecord]:
        """Return the most recent entry for ``domain`` or ``None``."""

        if not domain:
            return None
        for record in await self.list():
            if record.domain == domain:
                return record
        return None

    async def list(self) -> Tuple[ManifestRecord, ...]:
        rows = await asyncio.to_thread(self._store.get, self._key, None)
        return tuple(_decode_rows(rows))

    async def clear(self) -> None:
        async with self._write_lock:
            await asyncio.to_thread(self._store.set, self._key, [])
        LOGGER.info("History cleared")


__all__ = ("HISTORY_KEY", "HistoryStore", "upserted")
