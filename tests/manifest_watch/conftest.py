"""Shared fixtures for ManifestWatch tests."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from LlmsDotTxt.ManifestWatch.logging_utils import LOGGER_NAME
from LlmsDotTxt.ManifestWatch.storage import SQLiteKeyValueStore


@pytest.fixture(autouse=True)
def _restore_package_logger():
    """Undo handlers and propagation changes made by ``setup_logging``."""

    logger = logging.getLogger(LOGGER_NAME)
    handlers = list(logger.handlers)
    level, propagate = logger.level, logger.propagate
    yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture
def sqlite_store(tmp_path: Path) -> SQLiteKeyValueStore:
    store = SQLiteKeyValueStore(tmp_path / "store.sqlite")
    yield store
    store.close()
