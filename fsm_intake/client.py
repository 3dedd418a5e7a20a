"""
Inbox client for the intake API.

Provides the operator-side data workflow: loading the inbox, deleting and
clearing records, and interpreting the selected email. Network calls go
through ``EmailApiClient`` (httpx); ``InboxSession`` keeps the working copy
of the inbox for one viewing session together with the session's
classification interpreter.

Ordering rules:
- A delete or clear completes (or fails) before the follow-up refresh is
  issued.
- A refresh whose response arrives after a newer refresh was started is
  discarded.
- An action that is already in flight is not issued a second time.

Transport failures never propagate out of ``InboxSession``; they become a
retryable ``ErrorBanner``.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

import httpx

from fsm_intake.email_processing.interpreter import ClassificationInterpreter, is_logged_query
from fsm_intake.email_processing.models import EmailRecord, Interpretation

logger = logging.getLogger(__name__)

API_URL_ENV = "FSM_EMAIL_API_URL"
DEFAULT_API_URL = "http://localhost:3000"
EMPTY_INBOX_NOTICE = "No emails found. Emails will appear here when received from the intake workflow."


def get_api_base_url() -> str:
    """Base URL of the intake API from ``FSM_EMAIL_API_URL``."""
    return (os.getenv(API_URL_ENV) or DEFAULT_API_URL).rstrip("/")


class EmailApiError(Exception):
    """Raised when the intake API cannot be reached or answers with an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class EmailApiClient:
    """Thin async client for the intake query endpoints."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.base_url = (base_url or get_api_base_url()).rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)
        self._owns_client = client is None

    async def __aenter__(self) -> "EmailApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return await self._client.request(method, f"{self.base_url}{path}", **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise EmailApiError(f"Could not reach the email API: {e}") from e

    @staticmethod
    def _raise_for_status(response: httpx.Response, action: str) -> None:
        if response.is_success:
            return
        raise EmailApiError(
            f"Failed to {action}: {response.status_code} {response.reason_phrase}",
            status_code=response.status_code,
        )

    @staticmethod
    def _json(response: httpx.Response, action: str) -> Dict[str, Any]:
        """Decode a JSON object body; anything else is an API error."""
        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Non-JSON response while trying to {action}: {e}")
            raise EmailApiError(
                f"Failed to {action}: unexpected response from the email API",
                status_code=response.status_code,
            ) from e
        if not isinstance(data, dict):
            raise EmailApiError(
                f"Failed to {action}: expected a JSON object",
                status_code=response.status_code,
            )
        return data

    @staticmethod
    def _record(item: Any, action: str) -> EmailRecord:
        try:
            return EmailRecord.from_dict(item)
        except (KeyError, TypeError, AttributeError) as e:
            raise EmailApiError(f"Failed to {action}: malformed email record") from e

    async def fetch_emails(self) -> List[EmailRecord]:
        response = await self._request("GET", "/api/get-emails")
        self._raise_for_status(response, "fetch emails")
        data = self._json(response, "fetch emails")
        items = data.get("emails") or []
        if not isinstance(items, list):
            raise EmailApiError("Failed to fetch emails: 'emails' is not a list")
        return [self._record(item, "fetch emails") for item in items]

    async def fetch_email(self, email_id: str) -> Optional[EmailRecord]:
        response = await self._request("GET", f"/api/get-emails/{email_id}")
        if response.status_code == 404:
            return None
        self._raise_for_status(response, "fetch email")
        return self._record(self._json(response, "fetch email"), "fetch email")

    async def delete_email(self, email_id: str) -> bool:
        """Delete one email; False when the API reports it was not found."""
        response = await self._request("DELETE", "/api/delete-email", params={"id": email_id})
        if response.status_code == 404:
            return False
        self._raise_for_status(response, "delete email")
        return True

    async def clear_emails(self) -> int:
        response = await self._request("DELETE", "/api/emails/clear")
        self._raise_for_status(response, "clear emails")
        data = self._json(response, "clear emails")
        try:
            return int(data.get("cleared") or 0)
        except (TypeError, ValueError) as e:
            raise EmailApiError("Failed to clear emails: malformed count") from e


@dataclass
class ErrorBanner:
    """Retryable error shown above the inbox."""
    message: str
    action: str
    retryable: bool = True


@dataclass
class DeleteOutcome:
    """Result of a delete request; a missing record is informational."""
    email_id: str
    found: bool
    message: str


class InboxSession:
    """
    One operator's view of the inbox.

    Holds the last fetched record list, the current error banner and the
    interpreter whose query-reference memo lives as long as the session.
    """

    def __init__(self, api: EmailApiClient, interpreter: Optional[ClassificationInterpreter] = None):
        self.api = api
        self.interpreter = interpreter or ClassificationInterpreter()
        self.emails: List[EmailRecord] = []
        self.selected_id: Optional[str] = None
        self.error: Optional[ErrorBanner] = None
        self.notice: Optional[str] = None
        self.pending: Set[str] = set()
        self._refresh_seq = 0
        self._retry: Optional[Callable[[], Awaitable]] = None

    def is_pending(self, action: str) -> bool:
        return action in self.pending

    def _fail(self, action: str, error: EmailApiError, retry: Callable[[], Awaitable]) -> None:
        logger.warning(f"Inbox action '{action}' failed: {error}")
        self.error = ErrorBanner(message=str(error), action=action)
        self._retry = retry

    async def refresh(self) -> bool:
        """
        Reload the inbox.

        Returns:
            True if the fetched list was applied, False on failure or when a
            newer refresh superseded this one
        """
        self._refresh_seq += 1
        seq = self._refresh_seq
        self.pending.add("refresh")
        try:
            emails = await self.api.fetch_emails()
        except EmailApiError as e:
            if seq == self._refresh_seq:
                self._fail("refresh", e, self.refresh)
            return False
        finally:
            if seq == self._refresh_seq:
                self.pending.discard("refresh")

        if seq != self._refresh_seq:
            logger.debug("Discarding superseded inbox refresh")
            return False

        self.emails = emails
        self.error = None
        self._retry = None
        self.notice = EMPTY_INBOX_NOTICE if not emails else None
        if self.selected_id and self.get_email(self.selected_id) is None:
            self.selected_id = None
        logger.info(f"Loaded {len(emails)} emails")
        return True

    async def delete(self, email_id: str) -> Optional[DeleteOutcome]:
        """
        Delete one email, then refresh.

        Returns None while an identical delete is in flight or when the
        request failed (the error banner is set instead).
        """
        action = f"delete:{email_id}"
        if action in self.pending:
            return None

        self.pending.add(action)
        try:
            found = await self.api.delete_email(email_id)
        except EmailApiError as e:
            self._fail("delete", e, lambda: self.delete(email_id))
            return None
        finally:
            self.pending.discard(action)

        self.interpreter.registry.forget(email_id)
        await self.refresh()

        if not found:
            logger.info(f"Email {email_id} was already gone")
            return DeleteOutcome(email_id, False, "Email not found")
        return DeleteOutcome(email_id, True, "Email deleted successfully")

    async def clear(self) -> Optional[int]:
        """Clear the store, then refresh. Returns the number cleared."""
        if "clear" in self.pending:
            return None

        self.pending.add("clear")
        try:
            cleared = await self.api.clear_emails()
        except EmailApiError as e:
            self._fail("clear", e, self.clear)
            return None
        finally:
            self.pending.discard("clear")

        self.interpreter.registry.clear()
        self.selected_id = None
        await self.refresh()
        return cleared

    async def retry(self):
        """Re-issue the action behind the current error banner."""
        if self._retry is None:
            return None
        retry, self._retry = self._retry, None
        return await retry()

    def get_email(self, email_id: str) -> Optional[EmailRecord]:
        for email in self.emails:
            if email.id == email_id:
                return email
        return None

    def select(self, email_id: str) -> Optional[Interpretation]:
        """
        Select an email and interpret it.

        The derived status is written back to the session's working copy;
        the interpretation of an unclassified email carries a notice instead.
        """
        record = self.get_email(email_id)
        if record is None:
            return None
        self.selected_id = email_id
        updated, interpretation = self.interpreter.apply(record)
        if updated is not record:
            self.emails = [updated if e.id == email_id else e for e in self.emails]
        return interpretation

    def logged_queries(self) -> List[EmailRecord]:
        """Emails that belong on the service-request dashboard."""
        return [email for email in self.emails if is_logged_query(email)]
