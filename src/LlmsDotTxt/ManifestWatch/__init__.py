"""Detect ``llms.txt`` manifests next to web pages and track them per tab.

The public surface is re-exported here; see :mod:`.coordinator` for the
state machine and :mod:`.service` for a fully wired watcher.
"""

from __future__ import annotations

from .classifications import Classification, ReasonCode
from .classifier import ClassificationResult, classify_response
from .coordinator import ManifestCoordinator, TabStatus
from .errors import StorageError, UnknownRequestError, WatcherError
from .events import EventDispatcher, NavigationCompleted, TabActivated, TabRemoved
from .fetcher import ManifestFetcher
from .history import HistoryStore
from .icons import FOUND_ICON, STATIC_ICON, IconPresenter
from .models import ManifestRecord, Settings
from .service import ManifestWatcher
from .settings import SettingsStore
from .storage import MemoryKeyValueStore, SQLiteKeyValueStore
from .tab_state import TabStateStore
from .urls import manifest_url_for, page_domain

__version__ = "0.1.0"

__all__ = [
    "Classification",
    "ClassificationResult",
    "EventDispatcher",
    "FOUND_ICON",
    "HistoryStore",
    "IconPresenter",
    "ManifestCoordinator",
    "ManifestFetcher",
    "ManifestRecord",
    "ManifestWatcher",
    "MemoryKeyValueStore",
    "NavigationCompleted",
    "ReasonCode",
    "SQLiteKeyValueStore",
    "STATIC_ICON",
    "Settings",
    "SettingsStore",
    "StorageError",
    "TabActivated",
    "TabRemoved",
    "TabStateStore",
    "TabStatus",
    "UnknownRequestError",
    "WatcherError",
    "classify_response",
    "manifest_url_for",
    "page_domain",
    "__version__",
]
