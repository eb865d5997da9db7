"""
Key-value store used as the gateway's versioned cache.

The gateway only depends on the KVStore protocol; SqliteKVStore is the
bundled implementation. Values and metadata are stored as JSON and the
store enforces its own physical expiry.
"""
from __future__ import annotations

import json
import logging
import os
import sqlite3
import threading
import time
from typing import Any, Dict, Optional, Protocol, Tuple

from domain.errors import CacheStoreError
from settings import settings

logger = logging.getLogger(__name__)


class KVStore(Protocol):
    def get(self, key: str) -> Optional[Any]: ...

    def get_with_metadata(self, key: str) -> Optional[Tuple[Any, Dict[str, Any]]]: ...

    def put(
        self,
        key: str,
        value: Any,
        expiration_ttl: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None: ...


class SqliteKVStore:
    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or settings.PLACES_KV_PATH
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None
        self._closed = False

    def _connection(self) -> sqlite3.Connection:
        """Open the database on first use. Caller holds the lock."""
        if self._closed:
            raise CacheStoreError(f"KV store at {self.db_path} is closed")
        if self._conn is None:
            try:
                os.makedirs(os.path.dirname(os.path.abspath(self.db_path)), exist_ok=True)
                conn = sqlite3.connect(self.db_path, check_same_thread=False)
                self._init_schema(conn)
            except (OSError, sqlite3.Error) as exc:
                raise CacheStoreError(f"cannot open KV store at {self.db_path}: {exc}") from exc
            self._conn = conn
        return self._conn

    def _init_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS kv_cache (
                key TEXT PRIMARY KEY,
                value_json TEXT NOT NULL,
                metadata_json TEXT,
                written_at REAL NOT NULL,
                expires_at REAL
            )
            """
        )
        conn.commit()

    def get_with_metadata(self, key: str) -> Optional[Tuple[Any, Dict[str, Any]]]:
        """Return (value, metadata) for a live key, None if absent or physically expired."""
        try:
            with self._lock:
                conn = self._connection()
                row = conn.execute(
                    "SELECT value_json, metadata_json, expires_at FROM kv_cache WHERE key=?",
                    (key,),
                ).fetchone()
                if row is None:
                    return None
                value_json, metadata_json, expires_at = row
                if expires_at is not None and time.time() >= expires_at:
                    conn.execute("DELETE FROM kv_cache WHERE key=?", (key,))
                    conn.commit()
                    return None
            value = json.loads(value_json)
            metadata = json.loads(metadata_json) if metadata_json else {}
        except (sqlite3.Error, ValueError) as exc:
            raise CacheStoreError(f"read failed for {key}: {exc}") from exc
        return value, metadata

    def get(self, key: str) -> Optional[Any]:
        hit = self.get_with_metadata(key)
        return hit[0] if hit else None

    def put(
        self,
        key: str,
        value: Any,
        expiration_ttl: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Overwrite the entry for key wholesale."""
        written_at = time.time()
        expires_at = written_at + expiration_ttl if expiration_ttl else None
        try:
            value_json = json.dumps(value)
            metadata_json = json.dumps(metadata or {})
            with self._lock:
                conn = self._connection()
                conn.execute(
                    """
                    INSERT OR REPLACE INTO kv_cache
                    (key, value_json, metadata_json, written_at, expires_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (key, value_json, metadata_json, written_at, expires_at),
                )
                conn.commit()
        except (sqlite3.Error, TypeError, ValueError) as exc:
            raise CacheStoreError(f"write failed for {key}: {exc}") from exc

    def close(self) -> None:
        with self._lock:
            self._closed = True
            if self._conn is not None:
                self._conn.close()
                self._conn = None


_default_kv_store: Optional[SqliteKVStore] = None


def get_default_kv_store() -> SqliteKVStore:
    global _default_kv_store
    if _default_kv_store is None:
        _default_kv_store = SqliteKVStore()
    return _default_kv_store
