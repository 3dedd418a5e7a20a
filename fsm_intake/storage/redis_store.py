"""
Redis-backed record store.

The retained records are kept as one JSON array (newest first) under a
single key. Every mutation is a read-modify-write inside a WATCH/MULTI
transaction, so a failed or conflicting write never leaves a partial state;
conflicts are retried by the redis client.
"""

import json
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from fsm_intake.email_processing.models import EmailRecord
from fsm_intake.storage.base import DEFAULT_MAX_RECORDS, RecordStore, StorageError

logger = logging.getLogger(__name__)

DEFAULT_KEY = "fsm:emails"

Mutation = Callable[[List[Dict[str, Any]]], Tuple[List[Dict[str, Any]], Any]]


class RedisRecordStore(RecordStore):
    """Record store persisted in a hosted Redis (or compatible) server."""

    def __init__(self, client: aioredis.Redis, key: str = DEFAULT_KEY, max_records: int = DEFAULT_MAX_RECORDS):
        super().__init__(max_records)
        self._client = client
        self.key = key

    @classmethod
    def from_url(cls, url: str, key: str = DEFAULT_KEY, max_records: int = DEFAULT_MAX_RECORDS) -> "RedisRecordStore":
        client = aioredis.from_url(url, decode_responses=True)
        return cls(client, key=key, max_records=max_records)

    async def _load(self, reader) -> List[Dict[str, Any]]:
        raw = await reader.get(self.key)
        if raw is None:
            return []
        try:
            items = json.loads(raw)
        except ValueError as e:
            raise StorageError(f"Corrupt email list under '{self.key}': {e}") from e
        if not isinstance(items, list):
            raise StorageError(f"Expected a JSON array under '{self.key}'")
        return items

    async def _mutate(self, mutation: Mutation) -> Any:
        async def apply(pipe) -> Any:
            items = await self._load(pipe)
            updated, result = mutation(items)
            pipe.multi()
            pipe.set(self.key, json.dumps(updated))
            return result

        try:
            return await self._client.transaction(apply, self.key, value_from_callable=True)
        except RedisError as e:
            logger.error(f"Redis write to '{self.key}' failed: {e}")
            raise StorageError(f"Failed to update email store: {e}") from e

    async def list(self) -> List[EmailRecord]:
        try:
            items = await self._load(self._client)
        except RedisError as e:
            logger.error(f"Redis read from '{self.key}' failed: {e}")
            raise StorageError(f"Failed to read email store: {e}") from e
        return [EmailRecord.from_dict(item) for item in items]

    async def get(self, record_id: str) -> Optional[EmailRecord]:
        for record in await self.list():
            if record.id == record_id:
                return record
        return None

    async def upsert(self, record: EmailRecord) -> bool:
        payload = record.to_dict()

        def mutation(items):
            for index, item in enumerate(items):
                if item.get("id") == record.id:
                    items[index] = payload
                    return items, False
            items.insert(0, payload)
            evicted = items[self.max_records:]
            if evicted:
                logger.info(f"Evicting {len(evicted)} oldest email(s) (limit {self.max_records})")
            return items[:self.max_records], True

        return await self._mutate(mutation)

    async def replace_if_unchanged(self, expected: EmailRecord, updated: EmailRecord) -> bool:
        payload = updated.to_dict()

        def mutation(items):
            for index, item in enumerate(items):
                if item.get("id") == expected.id:
                    if EmailRecord.from_dict(item) != expected:
                        return items, False
                    items[index] = payload
                    return items, True
            return items, False

        return await self._mutate(mutation)

    async def delete(self, record_id: str) -> bool:
        def mutation(items):
            remaining = [item for item in items if item.get("id") != record_id]
            return remaining, len(remaining) != len(items)

        return await self._mutate(mutation)

    async def clear(self) -> int:
        return await self._mutate(lambda items: ([], len(items)))

    async def close(self) -> None:
        await self._client.aclose()
