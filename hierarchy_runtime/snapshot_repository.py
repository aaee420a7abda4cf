"""
Snapshot Repositories — the Persistence Service.

Contract (shared by every backend, including backend.postgres_snapshot_repository):

    save(key, blob)  -> None          blob is the serialized state (str)
    load(key)        -> str | None    None when nothing is stored under key

Repositories hold no interpretation of the blob. Any storage failure is
raised as PersistenceUnavailable; deciding whether it is fatal is the
caller's job.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Protocol

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS snapshots (
    key         TEXT PRIMARY KEY,
    state_json  TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);
"""


class PersistenceUnavailable(Exception):
    """Raised when the storage collaborator cannot load or save."""

    def __init__(self, operation: str, key: str, detail: str) -> None:
        self.operation = operation
        self.key = key
        self.detail = detail
        super().__init__(
            f"Persistence unavailable during {operation} of {key!r}: {detail}"
        )


class SnapshotStore(Protocol):
    def save(self, key: str, blob: str) -> None: ...

    def load(self, key: str) -> Optional[str]: ...


class MemorySnapshotRepository:
    """
    Dict-backed store, one independent dict per instance.

    fail_on_save / fail_on_load simulate an unavailable backend.
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._blobs: Dict[str, str] = dict(initial or {})
        self.fail_on_save = False
        self.fail_on_load = False
        self.save_count = 0

    def save(self, key: str, blob: str) -> None:
        if self.fail_on_save:
            raise PersistenceUnavailable("save", key, "memory store offline")
        self._blobs[key] = blob
        self.save_count += 1

    def load(self, key: str) -> Optional[str]:
        if self.fail_on_load:
            raise PersistenceUnavailable("load", key, "memory store offline")
        return self._blobs.get(key)

    def delete(self, key: str) -> None:
        self._blobs.pop(key, None)


class SnapshotRepository:
    """
    Snapshot store backed by sqlite3.

    One row per key; every save replaces the whole blob inside a single
    transaction, so a reader never sees a half-written state.
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = str(db_path)
        try:
            self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.executescript(_SCHEMA_SQL)
        except sqlite3.Error as exc:
            raise PersistenceUnavailable("open", self._db_path, str(exc)) from exc

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def save(self, key: str, blob: str) -> None:
        now = datetime.now(timezone.utc).isoformat()
        try:
            with self._conn:
                self._conn.execute(
                    """
                    INSERT OR REPLACE INTO snapshots (key, state_json, updated_at)
                    VALUES (?, ?, ?)
                    """,
                    (key, blob, now),
                )
        except sqlite3.Error as exc:
            raise PersistenceUnavailable("save", key, str(exc)) from exc

    def delete(self, key: str) -> None:
        try:
            with self._conn:
                self._conn.execute("DELETE FROM snapshots WHERE key = ?", (key,))
        except sqlite3.Error as exc:
            raise PersistenceUnavailable("delete", key, str(exc)) from exc

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def load(self, key: str) -> Optional[str]:
        try:
            cursor = self._conn.execute(
                "SELECT state_json FROM snapshots WHERE key = ?", (key,),
            )
            row = cursor.fetchone()
        except sqlite3.Error as exc:
            raise PersistenceUnavailable("load", key, str(exc)) from exc
        if row is None:
            return None
        return row[0]

    def close(self) -> None:
        self._conn.close()
