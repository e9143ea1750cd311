"""Async key/value store on SQLite with scalar keys and hash fields.

Every call runs the blocking SQLite statement in a worker thread, so awaiting
the store never stalls the event loop. A single connection is shared and
guarded by a thread lock.
"""

import asyncio
import json
import logging
import sqlite3
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from weatherwidget.errors import NotFoundError, ParseError, PersistenceError
from weatherwidget.storage.database import connect, run_migrations

logger = logging.getLogger(__name__)

T = TypeVar("T")


class KeyValueStore:
    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = connect(db_path, check_same_thread=False)
        run_migrations(self._conn)
        self._lock = threading.Lock()

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        return await asyncio.to_thread(self._locked, fn, *args)

    def _locked(self, fn: Callable[..., T], *args: Any) -> T:
        with self._lock:
            try:
                return fn(*args)
            except sqlite3.Error as e:
                raise PersistenceError(f"Store operation failed: {e}") from e

    # --- Scalar keys ---

    async def get(self, key: str) -> str:
        logger.debug("get '%s'", key)
        value = await self._run(self._select_key, key)
        if value is None:
            raise NotFoundError(f"Key '{key}' not found")
        return value

    async def get_object(self, key: str) -> Any:
        return _loads(await self.get(key), key)

    async def set(self, key: str, value: str) -> None:
        logger.debug("set key='%s' (%d bytes)", key, len(value))
        await self._run(self._upsert_key, key, value)

    async def set_object(self, key: str, value: Any) -> None:
        await self.set(key, json.dumps(value))

    async def delete(self, key: str) -> bool:
        return await self._run(self._delete_key, key)

    # --- Hash fields ---

    async def hash_get(self, name: str, field: str) -> str:
        logger.debug("hash_get '%s'.'%s'", name, field)
        value = await self._run(self._select_field, name, field)
        if value is None:
            raise NotFoundError(f"Field '{field}' not found in hash '{name}'")
        return value

    async def hash_get_object(self, name: str, field: str) -> Any:
        return _loads(await self.hash_get(name, field), f"{name}.{field}")

    async def hash_set(self, name: str, field: str, value: str) -> None:
        logger.debug("hash_set '%s'.'%s' (%d bytes)", name, field, len(value))
        await self._run(self._upsert_field, name, field, value)

    async def hash_set_object(self, name: str, field: str, value: Any) -> None:
        await self.hash_set(name, field, json.dumps(value))

    async def hash_delete(self, name: str, field: str | None = None) -> int:
        """Delete one field, or the whole hash when field is None."""
        return await self._run(self._delete_fields, name, field)

    async def hash_fields(self, name: str) -> list[str]:
        return await self._run(self._select_fields, name)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # --- Blocking statements, run in worker threads ---

    def _select_key(self, key: str) -> str | None:
        row = self._conn.execute(
            "SELECT value FROM kv WHERE key = ?", (key,)
        ).fetchone()
        return None if row is None else row[0]

    def _upsert_key(self, key: str, value: str) -> None:
        self._conn.execute(
            "INSERT INTO kv (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value, "
            "updated_at = CURRENT_TIMESTAMP",
            (key, value),
        )
        self._conn.commit()

    def _delete_key(self, key: str) -> bool:
        cursor = self._conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        self._conn.commit()
        return cursor.rowcount > 0

    def _select_field(self, name: str, field: str) -> str | None:
        row = self._conn.execute(
            "SELECT value FROM kv_hash WHERE name = ? AND field = ?", (name, field)
        ).fetchone()
        return None if row is None else row[0]

    def _upsert_field(self, name: str, field: str, value: str) -> None:
        self._conn.execute(
            "INSERT INTO kv_hash (name, field, value, updated_at) "
            "VALUES (?, ?, ?, CURRENT_TIMESTAMP) "
            "ON CONFLICT(name, field) DO UPDATE SET value = excluded.value, "
            "updated_at = CURRENT_TIMESTAMP",
            (name, field, value),
        )
        self._conn.commit()

    def _delete_fields(self, name: str, field: str | None) -> int:
        if field is None:
            cursor = self._conn.execute("DELETE FROM kv_hash WHERE name = ?", (name,))
        else:
            cursor = self._conn.execute(
                "DELETE FROM kv_hash WHERE name = ? AND field = ?", (name, field)
            )
        self._conn.commit()
        return cursor.rowcount

    def _select_fields(self, name: str) -> list[str]:
        rows = self._conn.execute(
            "SELECT field FROM kv_hash WHERE name = ? ORDER BY field", (name,)
        ).fetchall()
        return [r[0] for r in rows]


def _loads(raw: str, where: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise ParseError(f"Malformed JSON in '{where}': {e}") from e
