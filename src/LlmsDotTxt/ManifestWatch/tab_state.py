"""Ephemeral per-tab cache of the manifest currently shown for each tab.

Entries live in the volatile store under ``tab_<id>`` and have the same shape
as history records. They exist only while the tab is open and only while its
page is believed to have a manifest; the coordinator clears them on tab close
and whenever a check finds nothing for the page's domain.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from LlmsDotTxt.ManifestWatch.models import ManifestRecord
from LlmsDotTxt.ManifestWatch.storage import KeyValueStore

LOGGER = logging.getLogger(__name__)


def tab_key(tab_id: int) -> str:
    return f"tab_{tab_id}"


class TabStateStore:
    """Async facade over the volatile per-tab entries.

    Writes are applied in the order they were issued: a ``clear`` issued
    after a ``set`` for the same tab always wins.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store
        self._write_lock = asyncio.Lock()

    async def set(self, tab_id: int, record: ManifestRecord) -> None:
        async with self._write_lock:
            await asyncio.to_thread(self._store.set, tab_key(tab_id), record.to_dict())

    async def get(self, tab_id: int) -> Optional[ManifestRecord]:
        raw = await asyncio.to_thread(self._store.get, tab_key(tab_id), None)
        if raw is None:
            return None
        try:
            return ManifestRecord.from_dict(raw)
        except ValueError:
            LOGGER.warning("Dropping malformed tab state for tab %s", tab_id)
            await self.clear(tab_id)
            return None

    async def clear(self, tab_id: int) -> None:
        async with self._write_lock:
            await asyncio.to_thread(self._store.delete, tab_key(tab_id))


__all__ = ("TabStateStore", "tab_key")
