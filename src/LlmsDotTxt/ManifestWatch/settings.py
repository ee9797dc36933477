"""Persistence of user settings in the durable store (``settings`` key)."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Union

from LlmsDotTxt.ManifestWatch.models import Settings
from LlmsDotTxt.ManifestWatch.storage import KeyValueStore

LOGGER = logging.getLogger(__name__)

SETTINGS_KEY = "settings"


class SettingsStore:
    """Read settings with defaults merged in; save them clamped."""

    def __init__(self, store: KeyValueStore, *, key: str = SETTINGS_KEY) -> None:
        self._store = store
        self._key = key

    async def get(self) -> Settings:
        raw = await asyncio.to_thread(self._store.get, self._key, None)
        return Settings.from_stored(raw)

    async def save(self, settings: Union[Settings, Mapping[str, Any]]) -> Settings:
        if not isinstance(settings, Settings):
            settings = Settings.model_validate(dict(settings))
        await asyncio.to_thread(self._store.set, self._key, settings.to_wire())
        LOGGER.info("Settings saved: %s", settings.to_wire())
        return settings


__all__ = ("SETTINGS_KEY", "SettingsStore")
