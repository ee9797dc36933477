# === NAVMAP v1 ===
# {
#   "module": "LlmsDotTxt.ManifestWatch.storage",
#   "purpose": "Durable (SQLite) and volatile (in-memory) keyed stores with atomic read-modify-write",
#   "sections": [
#     {
#       "id": "keyvaluestore",
#       "name": "KeyValueStore",
#       "anchor": "class-keyvaluestore",
#       "kind": "class"
#     },
#     {
#       "id": "memorykeyvaluestore",
#       "name": "MemoryKeyValueStore",
#       "anchor": "class-memorykeyvaluestore",
#       "kind": "class"
#     },
#     {
#       "id": "sqlitekeyvaluestore",
#       "name": "SQLiteKeyValueStore",
#       "anchor": "class-sqlitekeyvaluestore",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Keyed stores backing the history, settings, and per-tab cache.

Two implementations share the :class:`KeyValueStore` protocol:

- :class:`MemoryKeyValueStore` is volatile and lives as long as the process.
  It holds the per-tab cache (``tab_<id>`` keys).
- :class:`SQLiteKeyValueStore` is durable and survives restarts. It holds the
  ``history`` and ``settings`` keys as JSON documents.

Every store offers atomic per-key ``get``/``set``/``delete`` plus
:meth:`KeyValueStore.update`, a read-modify-write primitive. ``update`` is
what the history uses for its bounded, deduplicated list: the callback sees
the current value and returns the replacement, and no other writer can slip
in between (a thread lock in-process, ``BEGIN IMMEDIATE`` across processes
for SQLite). Returning ``None`` from the callback deletes the key.

Typical Usage:
    store = SQLiteKeyValueStore(Path("state/llmsdottxt.sqlite"))
    store.set("settings", {"historyCount": 10})
    store.update("history", lambda current: (current or [])[:5])
"""

from __future__ import annotations

import copy
import json
import logging
import sqlite3
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol, runtime_checkable

from LlmsDotTxt.ManifestWatch.errors import StorageError

LOGGER = logging.getLogger(__name__)

Updater = Callable[[Any], Any]


@runtime_checkable
class KeyValueStore(Protocol):
    """Atomic keyed store holding JSON-compatible values."""

    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...

    def update(self, key: str, fn: Updater) -> Any: ...


# ────────────────────────────────────────────────────────────────────────────────
# Volatile store
# ────────────────────────────────────────────────────────────────────────────────


class MemoryKeyValueStore:
    """Process-lifetime store; values are deep-copied on the way in and out."""

    def __init__(self) -> None:
        self._data: Dict[str, Any] = {}
        self._lock = threading.RLock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            if key not in self._data:
                return default
            return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def update(self, key: str, fn: Updater) -> Any:
        with self._lock:
            new_value = fn(copy.deepcopy(self._data.get(key)))
            if new_value is None:
                self._data.pop(key, None)
            else:
                self._data[key] = copy.deepcopy(new_value)
            return copy.deepcopy(new_value)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._data)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


# ────────────────────────────────────────────────────────────────────────────────
# Durable store
# ────────────────────────────────────────────────────────────────────────────────

_DDL = """
PRAGMA journal_mode=WAL;
PRAGMA synchronous=NORMAL;
PRAGMA busy_timeout=4000;
CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,          -- JSON document
    updated_at REAL NOT NULL      -- UTC epoch seconds of last write
);
"""


@dataclass
class SQLiteKeyValueStore:
    """
    Durable keyed store backed by a single SQLite table.

    Parameters
    ----------
    db_path : Path
        Database file. Parent directories are created if missing. ``":memory:"``
        is accepted for tests.
    now_wall : Callable[[], float]
        Wall-clock provider used for ``updated_at`` (default: time.time).

    Raises
    ------
    StorageError
        If the database cannot be opened or a statement fails.
    """

    db_path: Path
    now_wall: Callable[[], float] = time.time
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        in_memory = str(self.db_path) == ":memory:"
        if not in_memory:
            self.db_path = Path(self.db_path).expanduser()
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            # Autocommit; update() opens its own explicit transaction.
            self._conn = sqlite3.connect(
                str(self.db_path),
                isolation_level=None,
                check_same_thread=False,
            )
            for stmt in _DDL.strip().split(";\n"):
                if stmt.strip():
                    self._conn.execute(stmt)
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot open durable store {self.db_path}: {exc}") from exc
        LOGGER.debug("Durable store opened at %s", self.db_path)

    # ── KeyValueStore API ─────────────────────────────────────────────────────

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            try:
                row = self._conn.execute("SELECT value FROM kv WHERE key=?", (key,)).fetchone()
            except sqlite3.Error as exc:
                raise StorageError(f"Read failed: {exc}", key=key) from exc
        if row is None:
            return default
        return self._decode(key, row[0])

    def set(self, key: str, value: Any) -> None:
        payload = self._encode(key, value)
        with self._lock:
            try:
                self._write(key, payload)
            except sqlite3.Error as exc:
                raise StorageError(f"Write failed: {exc}", key=key) from exc

    def delete(self, key: str) -> None:
        with self._lock:
            try:
                self._conn.execute("DELETE FROM kv WHERE key=?", (key,))
            except sqlite3.Error as exc:
                raise StorageError(f"Delete failed: {exc}", key=key) from exc

    def update(self, key: str, fn: Updater) -> Any:
        """Atomically replace ``key`` with ``fn(current)``.

        The read and the write happen inside one ``BEGIN IMMEDIATE``
        transaction, so writers in other processes block until commit.
        Exceptions raised by ``fn`` roll the transaction back and propagate.
        """

        with self._lock:
            try:
                self._conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as exc:
                raise StorageError(f"Cannot start transaction: {exc}", key=key) from exc
            try:
                row = self._conn.execute("SELECT value FROM kv WHERE key=?", (key,)).fetchone()
                current = self._decode(key, row[0]) if row is not None else None
                new_value = fn(current)
                if new_value is None:
                    self._conn.execute("DELETE FROM kv WHERE key=?", (key,))
                else:
                    self._write(key, self._encode(key, new_value))
                self._conn.execute("COMMIT")
            except sqlite3.Error as exc:
                self._rollback()
                raise StorageError(f"Update failed: {exc}", key=key) from exc
            except BaseException:
                self._rollback()
                raise
        return new_value

    # ── Maintenance ───────────────────────────────────────────────────────────

    def keys(self) -> list[str]:
        with self._lock:
            try:
                rows = self._conn.execute("SELECT key FROM kv ORDER BY key").fetchall()
            except sqlite3.Error as exc:
                raise StorageError(f"Read failed: {exc}") from exc
        return [row[0] for row in rows]

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    # ── Helpers ───────────────────────────────────────────────────────────────

    def _write(self, key: str, payload: str) -> None:
        self._conn.execute(
            """
            INSERT INTO kv(key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value=excluded.value,
                updated_at=excluded.updated_at
            """,
            (key, payload, float(self.now_wall())),
        )

    def _rollback(self) -> None:
        try:
            self._conn.execute("ROLLBACK")
        except sqlite3.Error:
            LOGGER.debug("Rollback failed; transaction already closed", exc_info=True)

    @staticmethod
    def _encode(key: str, value: Any) -> str:
        try:
            return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
        except (TypeError, ValueError) as exc:
            raise StorageError(f"Value is not JSON serialisable: {exc}", key=key) from exc

    @staticmethod
    def _decode(key: str, payload: str) -> Any:
        try:
            return json.loads(payload)
        except json.JSONDecodeError as exc:
            raise StorageError(f"Stored value is corrupt: {exc}", key=key) from exc


def open_durable_store(path: Optional[str | Path]) -> SQLiteKeyValueStore:
    """Open the durable store at ``path`` (``None`` → in-memory database)."""

    return SQLiteKeyValueStore(Path(path) if path else Path(":memory:"))


__all__ = (
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SQLiteKeyValueStore",
    "open_durable_store",
)
