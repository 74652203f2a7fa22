from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Dict, MutableMapping, Optional

from cachetools import TTLCache
from databases import Database

from config import Config
from services.logging_utils import get_logger


class Storage:
    """Async string key-value store holding one session's durable snapshot."""

    async def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    async def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    async def remove(self, key: str) -> None:
        raise NotImplementedError


class MemoryStorage(Storage):
    """Process-local storage; snapshots last as long as the object."""

    def __init__(self, data: Optional[Dict[str, str]] = None) -> None:
        self.data: Dict[str, str] = dict(data or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def remove(self, key: str) -> None:
        self.data.pop(key, None)


class SharedMemoryStorage(Storage):
    """
    Process-local storage for one session inside a shared snapshot cache.

    Nothing is kept until a key is written, a namespace whose last key is
    removed is dropped from the cache, and idle snapshots expire with the
    cache's TTL.
    """

    def __init__(self, snapshots: MutableMapping[str, Dict[str, str]], namespace: str) -> None:
        self.snapshots = snapshots
        self.namespace = namespace

    async def get(self, key: str) -> Optional[str]:
        return self.snapshots.get(self.namespace, {}).get(key)

    async def set(self, key: str, value: str) -> None:
        # Reassigning refreshes the entry's TTL
        self.snapshots[self.namespace] = {**self.snapshots.get(self.namespace, {}), key: value}

    async def remove(self, key: str) -> None:
        data = dict(self.snapshots.get(self.namespace, {}))
        data.pop(key, None)
        if data:
            self.snapshots[self.namespace] = data
        else:
            self.snapshots.pop(self.namespace, None)


class JsonFileStorage(Storage):
    """One JSON object per session, written to ``<directory>/<namespace>.json``.

    File access runs in a worker thread. Each read-modify-write holds the
    instance lock so concurrent writers of the same session cannot drop
    each other's keys.
    """

    def __init__(self, directory: str | Path, namespace: str) -> None:
        self.path = Path(directory) / f"{namespace}.json"
        self._lock = asyncio.Lock()

    def _read(self) -> Dict[str, str]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError):
            get_logger("storage.file", path=str(self.path)).warning("unreadable snapshot file")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, str]) -> None:
        if not data:
            self.path.unlink(missing_ok=True)
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f)
        tmp.replace(self.path)

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
        value = data.get(key)
        return value if isinstance(value, str) else None

    async def set(self, key: str, value: str) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            data[key] = value
            await asyncio.to_thread(self._write, data)

    async def remove(self, key: str) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            if key in data:
                del data[key]
                await asyncio.to_thread(self._write, data)


CREATE_SNAPSHOT_TABLE = (
    "CREATE TABLE IF NOT EXISTS {table} ("
    "session_id TEXT NOT NULL,"
    "key TEXT NOT NULL,"
    "value TEXT NOT NULL,"
    "updated TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,"
    "PRIMARY KEY (session_id, key)"
    ")"
)


class DatabaseStorage(Storage):
    """Asynchronous interface to the snapshot table, one row per session key."""

    def __init__(
        self,
        database_url: str,
        session_id: str,
        db: Optional[Database] = None,
        table: Optional[str] = None,
    ) -> None:
        self.database_url = database_url
        self.session_id = session_id
        self.db = db or Database(database_url)
        self.table = table or Config.SNAPSHOT_TABLE

    async def _connect(self) -> None:
        if not self.db.is_connected:
            await self.db.connect()

    async def close(self) -> None:
        if self.db.is_connected:
            await self.db.disconnect()

    async def ensure_table(self) -> None:
        await self._connect()
        await self.db.execute(CREATE_SNAPSHOT_TABLE.format(table=self.table))

    async def get(self, key: str) -> Optional[str]:
        await self._connect()
        query = f"SELECT value FROM {self.table} WHERE session_id = :session_id AND key = :key"
        row = await self.db.fetch_one(query, {"session_id": self.session_id, "key": key})
        return row["value"] if row else None

    async def set(self, key: str, value: str) -> None:
        await self._connect()
        query = (
            f"INSERT INTO {self.table} (session_id, key, value, updated) "
            "VALUES (:session_id, :key, :value, CURRENT_TIMESTAMP) "
            "ON CONFLICT (session_id, key) DO UPDATE SET "
            "value = excluded.value, updated = excluded.updated"
        )
        await self.db.execute(query, {"session_id": self.session_id, "key": key, "value": value})

    async def remove(self, key: str) -> None:
        await self._connect()
        query = f"DELETE FROM {self.table} WHERE session_id = :session_id AND key = :key"
        await self.db.execute(query, {"session_id": self.session_id, "key": key})


_shared_database: Optional[Database] = None
MEMORY_SNAPSHOT_LIMIT = 4096
_memory_snapshots: TTLCache = TTLCache(maxsize=MEMORY_SNAPSHOT_LIMIT, ttl=Config.SESSION_TTL)


def create_storage(session_id: str, backend: Optional[str] = None) -> Storage:
    """Build the configured storage backend for one session."""
    global _shared_database
    backend = backend or Config.STORAGE_BACKEND
    if backend == "memory":
        return SharedMemoryStorage(_memory_snapshots, session_id)
    if backend == "file":
        return JsonFileStorage(Config.SNAPSHOT_DIR, session_id)
    if backend == "database":
        if _shared_database is None:
            _shared_database = Database(Config.DATABASE_URL)
        return DatabaseStorage(Config.DATABASE_URL, session_id, db=_shared_database)
    raise ValueError(f"unknown storage backend: {backend}")


async def prepare_storage() -> None:
    """Create the snapshot table when the database backend is configured."""
    if Config.STORAGE_BACKEND == "database":
        storage = create_storage("", "database")
        await storage.ensure_table()
        get_logger("storage.database").info("snapshot table ready", extra={"table": storage.table})


async def close_storage() -> None:
    if _shared_database is not None and _shared_database.is_connected:
        await _shared_database.disconnect()
