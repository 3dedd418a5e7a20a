"""
Email record storage.
"""

import logging
from typing import Optional

from .base import DEFAULT_MAX_RECORDS, RecordStore, StorageError
from .memory import InMemoryRecordStore

logger = logging.getLogger(__name__)

BACKENDS = ("memory", "redis")


def create_record_store(
    backend: str = "memory",
    redis_url: Optional[str] = None,
    redis_key: Optional[str] = None,
    max_records: int = DEFAULT_MAX_RECORDS,
) -> RecordStore:
    """
    Build the configured record store.

    Args:
        backend: "memory" or "redis"
        redis_url: Connection URL, required for the redis backend
        redis_key: Key holding the email list in Redis
        max_records: Retention cap

    Raises:
        ValueError: For an unknown backend or a redis backend without URL
    """
    backend = backend.lower()
    if backend == "memory":
        logger.info("Using in-memory email store (contents are lost on restart)")
        return InMemoryRecordStore(max_records=max_records)
    if backend == "redis":
        if not redis_url:
            raise ValueError("REDIS_URL is required for the redis storage backend")
        from .redis_store import DEFAULT_KEY, RedisRecordStore
        logger.info("Using Redis email store")
        return RedisRecordStore.from_url(redis_url, key=redis_key or DEFAULT_KEY, max_records=max_records)
    raise ValueError(f"Unknown storage backend '{backend}', expected one of {BACKENDS}")


__all__ = [
    'DEFAULT_MAX_RECORDS',
    'RecordStore',
    'StorageError',
    'InMemoryRecordStore',
    'create_record_store',
]
