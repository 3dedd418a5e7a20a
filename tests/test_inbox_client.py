"""
Tests for the inbox client and its session workflow.

HTTP traffic is served by ``httpx.MockTransport`` handlers that mimic the
intake API.
"""

import asyncio
import random

import httpx
import pytest

from fsm_intake.client import (
    API_URL_ENV,
    DEFAULT_API_URL,
    EMPTY_INBOX_NOTICE,
    EmailApiClient,
    EmailApiError,
    InboxSession,
    get_api_base_url,
)
from fsm_intake.email_processing import ClassificationInterpreter, EmailStatus

BASE_URL = "http://intake.test"


def record_json(record_id, classification=None, status="Unprocessed", **extra):
    data = {
        "id": record_id,
        "senderName": "Jane Doe",
        "senderEmail": "jane@example.com",
        "subject": f"Subject {record_id}",
        "receivedAt": "2024-03-01T09:30:00.000Z",
        "status": status,
        "body": "Body",
        "classification": classification,
        "extractedQuery": None,
        "shouldReply": None,
        "replyMessage": None,
        "threadId": None,
    }
    data.update(extra)
    return data


class FakeIntakeApi:
    """In-memory stand-in for the intake API, served over MockTransport."""

    def __init__(self, records=None):
        self.records = list(records or [])
        self.calls = []
        self.fail_next = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append((request.method, request.url.path))
        if self.fail_next:
            error, self.fail_next = self.fail_next, None
            if isinstance(error, Exception):
                raise error
            if isinstance(error, httpx.Response):
                return error
            return httpx.Response(error)

        path = request.url.path
        if request.method == "GET" and path == "/api/get-emails":
            return httpx.Response(200, json={"emails": self.records})
        if request.method == "GET" and path.startswith("/api/get-emails/"):
            record_id = path.rsplit("/", 1)[-1]
            for record in self.records:
                if record["id"] == record_id:
                    return httpx.Response(200, json=record)
            return httpx.Response(404, json={"message": "Email not found"})
        if request.method == "DELETE" and path == "/api/delete-email":
            record_id = request.url.params.get("id")
            remaining = [r for r in self.records if r["id"] != record_id]
            if len(remaining) == len(self.records):
                return httpx.Response(404, json={"message": "Email not found"})
            self.records = remaining
            return httpx.Response(200, json={"success": True, "message": "Email deleted successfully", "id": record_id})
        if request.method == "DELETE" and path == "/api/emails/clear":
            cleared, self.records = len(self.records), []
            return httpx.Response(200, json={"success": True, "cleared": cleared})
        return httpx.Response(405)


@pytest.fixture
def fake_api():
    return FakeIntakeApi([
        record_json("c", "JUNK", "Junk"),
        record_json("b", "INCOMPLETE", "Waiting for Customer"),
        record_json("a", "VALID", "Unprocessed", extractedQuery={"customerName": "Jane Doe", "serviceType": "Repair"}),
    ])


@pytest.fixture
def api_client(fake_api):
    transport = httpx.MockTransport(fake_api.handler)
    return EmailApiClient(base_url=BASE_URL, client=httpx.AsyncClient(transport=transport))


@pytest.fixture
def session(api_client):
    return InboxSession(api_client, ClassificationInterpreter(rng=random.Random(3)))


class TestApiBaseUrl:

    def test_default(self, monkeypatch):
        monkeypatch.delenv(API_URL_ENV, raising=False)
        assert get_api_base_url() == DEFAULT_API_URL

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv(API_URL_ENV, "https://fsm.example.com/")
        assert get_api_base_url() == "https://fsm.example.com"


class TestEmailApiClient:

    @pytest.mark.asyncio
    async def test_fetch_emails(self, api_client):
        emails = await api_client.fetch_emails()

        assert [e.id for e in emails] == ["c", "b", "a"]
        assert emails[2].extracted_query.service_type == "Repair"

    @pytest.mark.asyncio
    async def test_fetch_unknown_email(self, api_client):
        assert await api_client.fetch_email("missing") is None

    @pytest.mark.asyncio
    async def test_server_error_raises(self, api_client, fake_api):
        fake_api.fail_next = 500

        with pytest.raises(EmailApiError) as excinfo:
            await api_client.fetch_emails()

        assert excinfo.value.status_code == 500

    @pytest.mark.asyncio
    async def test_transport_error_raises(self, api_client, fake_api):
        fake_api.fail_next = httpx.ConnectError("connection refused")

        with pytest.raises(EmailApiError):
            await api_client.fetch_emails()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", [
        httpx.Response(200, text="<html>gateway</html>"),
        httpx.Response(200, json=["not", "an", "object"]),
        httpx.Response(200, json={"emails": "nope"}),
        httpx.Response(200, json={"emails": [{"subject": "no id"}]}),
    ])
    async def test_malformed_body_raises(self, api_client, fake_api, response):
        fake_api.fail_next = response

        with pytest.raises(EmailApiError) as excinfo:
            await api_client.fetch_emails()

        assert "fetch emails" in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_clear_with_html_body_raises(self, api_client, fake_api):
        fake_api.fail_next = httpx.Response(200, text="<html>gateway</html>")

        with pytest.raises(EmailApiError):
            await api_client.clear_emails()


class TestInboxSession:

    @pytest.mark.asyncio
    async def test_refresh_loads_emails(self, session):
        assert await session.refresh() is True

        assert [e.id for e in session.emails] == ["c", "b", "a"]
        assert session.error is None
        assert session.notice is None
        assert not session.is_pending("refresh")

    @pytest.mark.asyncio
    async def test_empty_inbox_notice(self, session, fake_api):
        fake_api.records = []

        await session.refresh()

        assert session.notice == EMPTY_INBOX_NOTICE

    @pytest.mark.asyncio
    async def test_refresh_failure_sets_banner_and_retry_recovers(self, session, fake_api):
        fake_api.fail_next = 503

        assert await session.refresh() is False
        assert session.error is not None
        assert session.error.retryable is True
        assert session.error.action == "refresh"

        assert await session.retry() is True
        assert session.error is None
        assert len(session.emails) == 3

    @pytest.mark.asyncio
    async def test_html_response_sets_banner(self, session, fake_api):
        await session.refresh()
        fake_api.fail_next = httpx.Response(200, text="<html>gateway</html>")

        assert await session.refresh() is False
        assert session.error.action == "refresh"
        assert session.error.retryable is True
        assert [e.id for e in session.emails] == ["c", "b", "a"]

        assert await session.retry() is True
        assert session.error is None

    @pytest.mark.asyncio
    async def test_delete_then_refresh(self, session, fake_api):
        await session.refresh()

        outcome = await session.delete("b")

        assert outcome.found is True
        assert outcome.message == "Email deleted successfully"
        assert [e.id for e in session.emails] == ["c", "a"]
        assert fake_api.calls[-2:] == [("DELETE", "/api/delete-email"), ("GET", "/api/get-emails")]

    @pytest.mark.asyncio
    async def test_delete_unknown_is_informational(self, session):
        await session.refresh()

        outcome = await session.delete("missing")

        assert outcome.found is False
        assert outcome.message == "Email not found"
        assert session.error is None
        assert len(session.emails) == 3

    @pytest.mark.asyncio
    async def test_delete_failure_keeps_list(self, session, fake_api):
        await session.refresh()
        fake_api.fail_next = 500

        assert await session.delete("b") is None
        assert session.error.action == "delete"
        assert len(session.emails) == 3

    @pytest.mark.asyncio
    async def test_clear(self, session):
        await session.refresh()
        session.select("a")

        cleared = await session.clear()

        assert cleared == 3
        assert session.emails == []
        assert session.selected_id is None
        assert len(session.interpreter.registry) == 0

    @pytest.mark.asyncio
    async def test_select_writes_back_status(self, session):
        await session.refresh()

        interpretation = session.select("a")

        assert interpretation.status is EmailStatus.QUERY_LOGGED
        assert session.get_email("a").status is EmailStatus.QUERY_LOGGED
        assert session.select("a").logged_query.query_id == interpretation.logged_query.query_id
        assert [e.id for e in session.logged_queries()] == ["a"]

    @pytest.mark.asyncio
    async def test_select_unknown(self, session):
        await session.refresh()
        assert session.select("missing") is None

    @pytest.mark.asyncio
    async def test_stale_refresh_is_discarded(self):
        release_first = asyncio.Event()
        first_started = asyncio.Event()
        responses = iter([
            [record_json("old")],
            [record_json("new")],
        ])

        async def handler(request: httpx.Request) -> httpx.Response:
            emails = next(responses)
            if emails[0]["id"] == "old":
                first_started.set()
                await release_first.wait()
            return httpx.Response(200, json={"emails": emails})

        api = EmailApiClient(base_url=BASE_URL, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        session = InboxSession(api)

        first = asyncio.ensure_future(session.refresh())
        await first_started.wait()
        assert await session.refresh() is True
        release_first.set()

        assert await first is False
        assert [e.id for e in session.emails] == ["new"]
