"""Storage layer for the agent's persisted JSON collections."""

from src.storage.durable_store import (
    ALERTS_KEY,
    FAILED_ALERTS_KEY,
    MEMORY_KEY,
    DurableStore,
    FileStore,
    InMemoryStore,
    QuotaExceededError,
    RedisStore,
    create_store,
)

__all__ = [
    "ALERTS_KEY",
    "FAILED_ALERTS_KEY",
    "MEMORY_KEY",
    "DurableStore",
    "FileStore",
    "InMemoryStore",
    "QuotaExceededError",
    "RedisStore",
    "create_store",
]
