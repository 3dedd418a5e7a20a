"""
Email Service Implementation

Bridges the API routes and the intake core: stores records received from
the classification workflow, serves them to the inbox, and interprets a
record's classification on request.

Design Considerations:
- Record store injected, memory or Redis
- Storage failures logged and re-raised as StorageError
- One interpreter per service instance, so query references stay stable
  for the lifetime of the server process
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from fsm_api.config import get_settings
from fsm_intake.email_processing import (
    Classification,
    ClassificationInterpreter,
    EmailRecord,
    Interpretation,
    transform_intake_payload,
)
from fsm_intake.storage import RecordStore, StorageError, create_record_store

# Configure logging
logger = logging.getLogger(__name__)


class EmailNotFoundError(LookupError):
    """Raised when a requested email record does not exist."""

    def __init__(self, email_id: str):
        super().__init__(f"Email with ID {email_id} not found")
        self.email_id = email_id


class EmailService:
    """
    Email intake and retrieval service.

    Owns the record store and the server-side classification interpreter.
    """

    def __init__(self, store: RecordStore, interpreter: Optional[ClassificationInterpreter] = None):
        """
        Initialize email service with its collaborators.

        Args:
            store: Record store holding the retained emails
            interpreter: Optional interpreter (for testing/dependency injection)
        """
        self.store = store
        self.interpreter = interpreter or ClassificationInterpreter()

    async def list_emails(self) -> List[EmailRecord]:
        """Retained emails, newest first."""
        try:
            emails = await self.store.list()
        except StorageError:
            logger.error("Error retrieving emails", exc_info=True)
            raise
        logger.info(f"Fetching {len(emails)} emails for the inbox")
        return emails

    async def get_email(self, email_id: str) -> EmailRecord:
        """
        Retrieve one email.

        Raises:
            EmailNotFoundError: If no record has this id
        """
        email = await self.store.get(email_id)
        if email is None:
            raise EmailNotFoundError(email_id)
        return email

    async def receive_email(self, payload: Dict[str, Any]) -> Tuple[EmailRecord, bool]:
        """
        Store an email posted by the classification workflow.

        A record with the same id is replaced in place with the latest data.

        Args:
            payload: Workflow payload with ``emailData`` and ``output``

        Returns:
            Tuple of (stored record, True if it was added rather than updated)

        Raises:
            IntakeError: If the payload is malformed
            StorageError: If the store rejects the write
        """
        record = transform_intake_payload(payload)
        logger.info(
            f"Received email from workflow: subject={record.subject!r}, "
            f"classification={record.classification.value if record.classification else None}"
        )

        try:
            added = await self.store.upsert(record)
        except StorageError:
            logger.error(f"Error storing email {record.id}", exc_info=True)
            raise

        if record.classification is not Classification.VALID:
            # A later VALID delivery is a new transition with a new reference
            self.interpreter.registry.forget(record.id)

        if added:
            logger.info(f"Added new email: {record.id}")
            await self._release_evicted_references()
        else:
            logger.info(f"Updated existing email: {record.id}")
        return record, added

    async def _release_evicted_references(self) -> None:
        """Forget query references of records the store has evicted."""
        if not len(self.interpreter.registry):
            return
        retained = [email.id for email in await self.store.list()]
        released = self.interpreter.registry.retain(retained)
        if released:
            logger.info(f"Released {released} query reference(s) of evicted emails")

    async def delete_email(self, email_id: str) -> bool:
        """Delete one email; False when it does not exist."""
        try:
            deleted = await self.store.delete(email_id)
        except StorageError:
            logger.error(f"Error deleting email {email_id}", exc_info=True)
            raise

        if deleted:
            self.interpreter.registry.forget(email_id)
            logger.info(f"Deleted email: {email_id}")
        else:
            logger.info(f"Delete requested for unknown email: {email_id}")
        return deleted

    async def clear_emails(self) -> int:
        """Remove every email and return how many were removed."""
        try:
            cleared = await self.store.clear()
        except StorageError:
            logger.error("Error clearing emails", exc_info=True)
            raise

        self.interpreter.registry.clear()
        logger.info(f"Cleared {cleared} emails")
        return cleared

    async def interpret_email(self, email_id: str) -> Tuple[EmailRecord, Interpretation]:
        """
        Interpret one email's classification.

        When the derived status differs from the stored one the record is
        written back once; later calls find it already up to date. The write
        is skipped if the record was deleted or replaced in the meantime.

        Raises:
            EmailNotFoundError: If no record has this id
        """
        record = await self.get_email(email_id)
        updated, interpretation = self.interpreter.apply(record)
        if updated is not record:
            written = await self.store.replace_if_unchanged(record, updated)
            if not written:
                logger.info(f"Email {email_id} changed during interpretation, status not written")
        return updated, interpretation

    async def count_emails(self) -> int:
        return await self.store.count()

    async def close(self) -> None:
        await self.store.close()


_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """Provide the process-wide email service for dependency injection."""
    global _email_service
    if _email_service is None:
        settings = get_settings()
        store = create_record_store(
            backend=settings.STORAGE_BACKEND.value,
            redis_url=settings.REDIS_URL,
            redis_key=settings.REDIS_KEY,
            max_records=settings.MAX_STORED_EMAILS,
        )
        _email_service = EmailService(store)
    return _email_service


async def shutdown_email_service() -> None:
    """Close the store behind the process-wide service, if one was created."""
    global _email_service
    if _email_service is not None:
        await _email_service.close()
        _email_service = None
