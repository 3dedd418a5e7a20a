"""
In-process record store.

Records live in an insertion-ordered dict whose first entry is the newest
record. Contents are lost when the process exits.
"""

import asyncio
import logging
from collections import OrderedDict
from typing import List, Optional

from fsm_intake.email_processing.models import EmailRecord
from fsm_intake.storage.base import DEFAULT_MAX_RECORDS, RecordStore

logger = logging.getLogger(__name__)


class InMemoryRecordStore(RecordStore):
    """Record store backed by an ``OrderedDict`` kept newest first."""

    def __init__(self, max_records: int = DEFAULT_MAX_RECORDS):
        super().__init__(max_records)
        self._records: "OrderedDict[str, EmailRecord]" = OrderedDict()
        self._lock = asyncio.Lock()

    async def list(self) -> List[EmailRecord]:
        return list(self._records.values())

    async def get(self, record_id: str) -> Optional[EmailRecord]:
        return self._records.get(record_id)

    async def count(self) -> int:
        return len(self._records)

    async def upsert(self, record: EmailRecord) -> bool:
        async with self._lock:
            if record.id in self._records:
                self._records[record.id] = record
                logger.debug(f"Updated email {record.id} in place")
                return False

            self._records[record.id] = record
            self._records.move_to_end(record.id, last=False)

            while len(self._records) > self.max_records:
                evicted_id, _ = self._records.popitem(last=True)
                logger.info(f"Evicted oldest email {evicted_id} (limit {self.max_records})")
            return True

    async def replace_if_unchanged(self, expected: EmailRecord, updated: EmailRecord) -> bool:
        async with self._lock:
            if self._records.get(expected.id) != expected:
                return False
            self._records[expected.id] = updated
            return True

    async def delete(self, record_id: str) -> bool:
        async with self._lock:
            return self._records.pop(record_id, None) is not None

    async def clear(self) -> int:
        async with self._lock:
            count = len(self._records)
            self._records.clear()
            return count
