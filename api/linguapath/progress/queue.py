"""Offline queue for progress writes that could not reach Cassandra.

The queue sits on a pluggable key-value store. Each user owns one key whose
value is an orjson document mapping lesson id to the latest pending update,
so a newer update for a lesson replaces the queued one.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING
from uuid import UUID

import orjson

from linguapath.core.logging import get_logger

from .models import PendingUpdate


if TYPE_CHECKING:
    from redis.asyncio import Redis


logger = get_logger(__name__)


# ==============================================================================
# Key-Value Stores
# ==============================================================================


class KeyValueStore(ABC):
    """Minimal byte-oriented key-value persistence."""

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Return the stored value or None."""

    @abstractmethod
    async def put(self, key: str, value: bytes) -> None:
        """Store a value, replacing any previous one."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key. Missing keys are ignored."""


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store, used in tests and when Redis is unavailable."""

    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}

    async def get(self, key: str) -> bytes | None:
        return self._data.get(key)

    async def put(self, key: str, value: bytes) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __len__(self) -> int:
        return len(self._data)


class RedisKeyValueStore(KeyValueStore):
    """Redis-backed store; survives process restarts."""

    def __init__(self, redis: "Redis"):
        self.redis = redis

    async def get(self, key: str) -> bytes | None:
        value = await self.redis.get(key)
        if value is None:
            return None
        return value if isinstance(value, bytes) else value.encode()

    async def put(self, key: str, value: bytes) -> None:
        await self.redis.set(key, value)

    async def delete(self, key: str) -> None:
        await self.redis.delete(key)


# ==============================================================================
# Pending Progress Queue
# ==============================================================================


class PendingProgressQueue:
    """Per-user, per-lesson queue of progress writes awaiting resync.

    Mutations of one user's document are serialized with a per-user lock.
    """

    def __init__(self, store: KeyValueStore, key_prefix: str = "linguapath:offline_progress"):
        self.store = store
        self.key_prefix = key_prefix
        self._locks: dict[UUID, asyncio.Lock] = {}
        self._lock_users: dict[UUID, int] = {}

    def _key(self, user_id: UUID) -> str:
        return f"{self.key_prefix}:{user_id}"

    @asynccontextmanager
    async def _lock(self, user_id: UUID) -> AsyncIterator[None]:
        """Per-user lock, dropped once no caller holds or awaits it."""
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        self._lock_users[user_id] = self._lock_users.get(user_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[user_id] -= 1
            if not self._lock_users[user_id]:
                del self._lock_users[user_id]
                del self._locks[user_id]

    async def _read(self, user_id: UUID) -> dict[str, PendingUpdate]:
        raw = await self.store.get(self._key(user_id))
        if not raw:
            return {}
        try:
            data = orjson.loads(raw)
            return {lesson_id: PendingUpdate.from_dict(item) for lesson_id, item in data.items()}
        except (orjson.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.error(
                "offline_queue_corrupt",
                user_id=str(user_id),
                error=str(e),
            )
            return {}

    async def _write(self, user_id: UUID, entries: dict[str, PendingUpdate]) -> None:
        if not entries:
            await self.store.delete(self._key(user_id))
            return
        payload = orjson.dumps({lesson_id: entry.to_dict() for lesson_id, entry in entries.items()})
        await self.store.put(self._key(user_id), payload)

    async def enqueue(self, user_id: UUID, update: PendingUpdate) -> None:
        """Queue an update, replacing an older one for the same lesson.

        An update recorded before the queued one is dropped.
        """
        async with self._lock(user_id):
            entries = await self._read(user_id)
            key = str(update.lesson_id)
            queued = entries.get(key)
            if queued is not None and queued.snapshot.recorded_at > update.snapshot.recorded_at:
                logger.debug(
                    "offline_update_stale",
                    user_id=str(user_id),
                    lesson_id=key,
                )
                return
            if queued is not None:
                update.retry_count = queued.retry_count
            entries[key] = update
            await self._write(user_id, entries)

    async def entries(self, user_id: UUID) -> list[PendingUpdate]:
        """Queued updates of a user, oldest first."""
        entries = await self._read(user_id)
        return sorted(entries.values(), key=lambda entry: entry.queued_at)

    async def count(self, user_id: UUID) -> int:
        return len(await self._read(user_id))

    async def remove_if_unchanged(self, user_id: UUID, update: PendingUpdate) -> bool:
        """Remove an entry unless a newer update replaced it meanwhile."""
        async with self._lock(user_id):
            entries = await self._read(user_id)
            key = str(update.lesson_id)
            queued = entries.get(key)
            if queued is None or queued.snapshot.recorded_at != update.snapshot.recorded_at:
                return False
            del entries[key]
            await self._write(user_id, entries)
            return True

    async def record_failure(self, user_id: UUID, update: PendingUpdate) -> None:
        """Bump the retry counter of an entry that is still queued as-is."""
        async with self._lock(user_id):
            entries = await self._read(user_id)
            queued = entries.get(str(update.lesson_id))
            if queued is None or queued.snapshot.recorded_at != update.snapshot.recorded_at:
                return
            queued.retry_count += 1
            await self._write(user_id, entries)

    async def clear(self, user_id: UUID) -> None:
        async with self._lock(user_id):
            await self.store.delete(self._key(user_id))
