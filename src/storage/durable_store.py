"""
Durable key-value persistence for the agent's JSON collections.

Every persisted collection (alerts, failed dispatches, agent memory) is
stored as one JSON document under a fixed key and rewritten as a whole.
Stores are capacity-bounded: a write that would exceed the budget raises
``QuotaExceededError`` so callers can prune and retry.

Writes to a single key are serialized through ``DurableStore.lock(key)``.
Components that read-modify-write a collection hold that lock across the
re-read and the write so concurrent timer callbacks cannot drop each
other's updates.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from src.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

ALERTS_KEY = "system_alerts"
FAILED_ALERTS_KEY = "failedAlerts"
MEMORY_KEY = "agent_memory"


class QuotaExceededError(Exception):
    """Raised when a write would exceed the store's capacity."""

    def __init__(self, key: str, size: int | None = None) -> None:
        self.key = key
        self.size = size
        detail = f" ({size} bytes)" if size is not None else ""
        super().__init__(f"Storage quota exceeded writing {key!r}{detail}")


class DurableStore(ABC):
    """Abstract JSON key-value store with per-key write locks."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def lock(self, key: str) -> asyncio.Lock:
        """Return the lock that owns writes to ``key``."""
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    @abstractmethod
    async def read(self, key: str) -> Any | None:
        """Return the decoded value stored at ``key``, or None if absent."""

    @abstractmethod
    async def write(self, key: str, value: Any) -> bool:
        """Persist ``value`` under ``key``.

        Raises:
            QuotaExceededError: If the store has no room for the value.
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key`` if present."""

    async def close(self) -> None:
        """Release any underlying connections."""


class InMemoryStore(DurableStore):
    """Process-local store holding serialized JSON strings.

    Values are serialized on write and decoded on read, so callers never
    share mutable state with the store. ``quota_bytes`` bounds the total
    encoded size across all keys.
    """

    def __init__(self, quota_bytes: int | None = None) -> None:
        super().__init__()
        self._data: dict[str, str] = {}
        self._quota_bytes = quota_bytes

    @property
    def used_bytes(self) -> int:
        return sum(len(v.encode("utf-8")) for v in self._data.values())

    async def read(self, key: str) -> Any | None:
        raw = self._data.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def write(self, key: str, value: Any) -> bool:
        encoded = json.dumps(value)
        if self._quota_bytes is not None:
            others = sum(
                len(v.encode("utf-8")) for k, v in self._data.items() if k != key
            )
            size = len(encoded.encode("utf-8"))
            if others + size > self._quota_bytes:
                raise QuotaExceededError(key, size)
        self._data[key] = encoded
        return True

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)


class FileStore(DurableStore):
    """Store keeping one JSON file per key under a directory.

    Survives process restarts, so one-shot CLI commands see the state left
    by earlier runs. Files are replaced atomically through a ``.tmp``
    sibling. ``quota_bytes`` bounds the total size of all key files.
    """

    def __init__(self, directory: str | Path, quota_bytes: int | None = None) -> None:
        super().__init__()
        self._directory = Path(directory).expanduser()
        self._quota_bytes = quota_bytes

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, key: str) -> Path:
        return self._directory / f"{key}.json"

    async def read(self, key: str) -> Any | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.error("Corrupt JSON in %s; treating as absent", path)
            return None

    async def write(self, key: str, value: Any) -> bool:
        encoded = json.dumps(value)
        size = len(encoded.encode("utf-8"))
        if self._quota_bytes is not None:
            others = sum(
                p.stat().st_size
                for p in self._directory.glob("*.json")
                if p != self._path(key)
            )
            if others + size > self._quota_bytes:
                raise QuotaExceededError(key, size)

        self._directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_text(encoded, encoding="utf-8")
        tmp_path.replace(path)
        return True

    async def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class RedisStore(DurableStore):
    """Redis-backed store using one string value per key.

    Redis ``OOM`` replies (``maxmemory`` reached with a no-eviction policy)
    are surfaced as ``QuotaExceededError``.
    """

    def __init__(
        self,
        redis_client: Any | None = None,
        redis_url: str | None = None,
        key_prefix: str | None = None,
    ) -> None:
        super().__init__()
        settings = get_settings()
        self._redis = redis_client
        self._redis_url = redis_url or str(settings.redis_url)
        self._prefix = key_prefix if key_prefix is not None else settings.redis_key_prefix

    def _get_client(self) -> Any:
        """Lazy-initialize the async Redis client."""
        if self._redis is None:
            import redis.asyncio as aioredis

            self._redis = aioredis.from_url(self._redis_url, decode_responses=True)
        return self._redis

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def read(self, key: str) -> Any | None:
        raw = await self._get_client().get(self._key(key))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.error("Corrupt JSON under %s; treating as absent", key)
            return None

    async def write(self, key: str, value: Any) -> bool:
        from redis.exceptions import ResponseError

        encoded = json.dumps(value)
        try:
            await self._get_client().set(self._key(key), encoded)
        except ResponseError as e:
            if str(e).startswith("OOM"):
                raise QuotaExceededError(key, len(encoded.encode("utf-8"))) from e
            raise
        return True

    async def delete(self, key: str) -> None:
        await self._get_client().delete(self._key(key))

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


def create_store(settings: Settings | None = None) -> DurableStore:
    """Build the store selected by ``settings.store_backend``."""
    settings = settings or get_settings()
    if settings.store_backend == "redis":
        return RedisStore(
            redis_url=str(settings.redis_url),
            key_prefix=settings.redis_key_prefix,
        )
    if settings.store_backend == "file":
        return FileStore(settings.store_path, quota_bytes=settings.store_quota_bytes)
    return InMemoryStore(quota_bytes=settings.store_quota_bytes)
