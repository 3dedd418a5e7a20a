"""
Record store contract.

A record store keeps the most recent email records, newest first, keyed by
record id. Implementations must leave their previous state untouched when an
operation fails and report the failure as ``StorageError``.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from fsm_intake.email_processing.models import EmailRecord

DEFAULT_MAX_RECORDS = 100


class StorageError(Exception):
    """Raised when the storage backend cannot complete an operation."""
    pass


class RecordStore(ABC):
    """Keyed, capped, insertion-ordered collection of email records."""

    def __init__(self, max_records: int = DEFAULT_MAX_RECORDS):
        if max_records < 1:
            raise ValueError("max_records must be at least 1")
        self.max_records = max_records

    @abstractmethod
    async def list(self) -> List[EmailRecord]:
        """All retained records, newest first."""

    @abstractmethod
    async def get(self, record_id: str) -> Optional[EmailRecord]:
        """Record with ``record_id`` or None."""

    @abstractmethod
    async def upsert(self, record: EmailRecord) -> bool:
        """
        Insert or update a record by id.

        An existing record is replaced in place and keeps its position; a new
        record is placed first and the oldest records beyond ``max_records``
        are evicted.

        Returns:
            True if the record was inserted, False if it replaced one
        """

    @abstractmethod
    async def replace_if_unchanged(self, expected: EmailRecord, updated: EmailRecord) -> bool:
        """
        Replace ``expected`` with ``updated`` in one step.

        Nothing is written when the stored record was deleted or no longer
        equals ``expected``.

        Returns:
            True if the replacement was written
        """

    @abstractmethod
    async def delete(self, record_id: str) -> bool:
        """Remove a record; False when it was not present."""

    @abstractmethod
    async def clear(self) -> int:
        """Remove every record and return how many were removed."""

    async def count(self) -> int:
        return len(await self.list())

    async def close(self) -> None:
        """Release backend resources."""
        return None
