"""
Key-Value Backends

The descriptor store persists its whole state as one text value under a
single namespace key. This module provides the places that value can live:

- MemoryKeyValueStore: process-local dict (tests, ephemeral demos)
- JsonFileKeyValueStore: one JSON file holding {key: value}
- SQLiteKeyValueStore: a `kv_store` table in an SQLite database

Every backend exposes get / set / delete / close. Writes are atomic: readers
never see a partially written value.

Usage:
    from facerec.kv_backends import SQLiteKeyValueStore

    backend = SQLiteKeyValueStore("storage/faces.sqlite")
    backend.set("enrolledFaces", "{}")
    backend.get("enrolledFaces")
"""

import json
import logging
import os
import sqlite3
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Abstract text key-value store."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the value stored under key, or None if absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key if present."""

    def close(self) -> None:
        """Release any held resources."""


class MemoryKeyValueStore(KeyValueStore):
    """Dict-backed store. Contents vanish with the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileKeyValueStore(KeyValueStore):
    """
    Store all keys in a single JSON object on disk.

    Writes go to a temporary file in the same directory which then
    replaces the target with os.replace (atomic on POSIX and Windows).
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            text = f.read()
        if not text.strip():
            return {}
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not contain a JSON object")
        return data

    def _write_all(self, data: Dict[str, Any]) -> None:
        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        return None if value is None else str(value)

    def set(self, key: str, value: str) -> None:
        try:
            data = self._read_all()
        except (ValueError, OSError) as e:
            # An unreadable file must not block new writes
            logger.warning(f"Discarding unreadable key-value file {self.path}: {e}")
            data = {}
        data[key] = value
        self._write_all(data)

    def delete(self, key: str) -> None:
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)


class SQLiteKeyValueStore(KeyValueStore):
    """
    Key-value table in an SQLite database.

    Attributes:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn: Optional[sqlite3.Connection] = None
        self._init_database()
        logger.debug(f"SQLite key-value store ready at {self.db_path}")

    def _get_connection(self) -> sqlite3.Connection:
        """Get or lazily create the SQLite connection."""
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _init_database(self) -> None:
        conn = self._get_connection()
        conn.execute("""
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        conn.commit()

    def get(self, key: str) -> Optional[str]:
        cursor = self._get_connection().cursor()
        cursor.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
        row = cursor.fetchone()
        return None if row is None else row["value"]

    def set(self, key: str, value: str) -> None:
        conn = self._get_connection()
        with conn:
            conn.execute("""
                INSERT INTO kv_store (key, value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
            """, (key, value))

    def delete(self, key: str) -> None:
        conn = self._get_connection()
        with conn:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.debug("Database connection closed")


def create_backend(storage_config: Dict[str, Any]) -> KeyValueStore:
    """
    Build a backend from the `storage` configuration section.

    Args:
        storage_config: Dict with keys:
            - backend: "sqlite", "json" or "memory"
            - path: File path for the sqlite / json backends

    Raises:
        ValueError: If the backend name is unknown.
    """
    from facerec.config import resolve_storage_path

    backend = storage_config.get("backend", "sqlite")

    if backend == "memory":
        return MemoryKeyValueStore()
    if backend == "json":
        path = storage_config.get("path", "storage/faces.json")
        return JsonFileKeyValueStore(str(resolve_storage_path(path)))
    if backend == "sqlite":
        path = storage_config.get("path", "storage/faces.sqlite")
        return SQLiteKeyValueStore(str(resolve_storage_path(path)))

    raise ValueError(f"Unknown storage backend: {backend}")
