"""
API endpoint tests for the email intake service.

These tests exercise the webhook, inbox, interpretation and dashboard
endpoints through FastAPI's TestClient against an in-memory store.

Testing Strategy:
- Verify the webhook contract and duplicate handling
- Validate inbox listing, deletion and clearing
- Confirm interpretation memoizes query references per server process
- Confirm error responses use the standard error envelope
"""

import random
import re
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from fsm_api.main import app
from fsm_api.services.email_service import EmailService, get_email_service
from fsm_intake.email_processing import ClassificationInterpreter, IntakeError
from fsm_intake.storage import InMemoryRecordStore, StorageError


@pytest.fixture
def email_service():
    return EmailService(InMemoryRecordStore(), ClassificationInterpreter(rng=random.Random(42)))


@pytest.fixture
def client(email_service):
    app.dependency_overrides[get_email_service] = lambda: email_service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def failing_client():
    """Client whose email service raises the given errors."""
    service = MagicMock()
    app.dependency_overrides[get_email_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client, service
    app.dependency_overrides.clear()


class TestWebhook:

    def test_new_email_is_added(self, client, valid_payload):
        response = client.post("/api/webhook", json=valid_payload)

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "id": "msg-1001",
            "action": "added",
            "message": "Email received and stored",
        }

    def test_repeated_delivery_updates(self, client, valid_payload):
        client.post("/api/webhook", json=valid_payload)
        valid_payload["emailData"]["Subject"] = "Lift still stuck"

        response = client.post("/api/webhook", json=valid_payload)
        emails = client.get("/api/get-emails").json()["emails"]

        assert response.json()["action"] == "updated"
        assert len(emails) == 1
        assert emails[0]["subject"] == "Lift still stuck"

    def test_wrong_section_type_is_validation_error(self, client):
        response = client.post("/api/webhook", json={"emailData": "oops"})

        assert response.status_code == 422
        body = response.json()
        assert body["error_code"] == "VALIDATION_ERROR"
        assert body["path"] == "/api/webhook"
        assert "emailData" in body["validation_errors"][0]["loc"]

    def test_intake_error_is_bad_request(self, failing_client, valid_payload):
        client, service = failing_client
        service.receive_email = AsyncMock(side_effect=IntakeError("Intake payload must be a JSON object"))

        response = client.post("/api/webhook", json=valid_payload)

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_PAYLOAD"
        assert response.json()["details"] == {"reason": "Intake payload must be a JSON object"}


class TestInbox:

    def test_list_newest_first(self, client, valid_payload, incomplete_payload, junk_payload):
        for payload in (valid_payload, incomplete_payload, junk_payload):
            client.post("/api/webhook", json=payload)

        emails = client.get("/api/get-emails").json()["emails"]

        assert [e["id"] for e in emails] == ["msg-1003", "msg-1002", "msg-1001"]
        assert [e["status"] for e in emails] == ["Junk", "Waiting for Customer", "Query Logged"]
        assert emails[2]["senderName"] == "Jane Doe"
        assert emails[2]["receivedAt"] == "2024-03-01T09:30:00.000Z"
        assert emails[2]["extractedQuery"]["assetBrand"] == "Otis"

    def test_empty_inbox(self, client):
        assert client.get("/api/get-emails").json() == {"emails": []}

    def test_get_single_email(self, client, valid_payload):
        client.post("/api/webhook", json=valid_payload)

        response = client.get("/api/get-emails/msg-1001")

        assert response.status_code == 200
        assert response.json()["threadId"] == "thread-1001"

    def test_get_unknown_email(self, client):
        response = client.get("/api/get-emails/missing")

        assert response.status_code == 404
        body = response.json()
        assert body["message"] == "Email not found"
        assert body["error_code"] == "EMAIL_NOT_FOUND"
        assert body["path"] == "/api/get-emails/missing"
        assert body["details"] == {"id": "missing"}
        assert body["retryable"] is False

    def test_delete_email(self, client, valid_payload):
        client.post("/api/webhook", json=valid_payload)

        response = client.delete("/api/delete-email", params={"id": "msg-1001"})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Email deleted successfully",
            "id": "msg-1001",
        }
        assert client.get("/api/get-emails").json()["emails"] == []

    def test_delete_requires_id(self, client):
        response = client.delete("/api/delete-email")

        assert response.status_code == 400
        assert response.json()["message"] == "Email ID is required"

    def test_delete_unknown_leaves_store_unchanged(self, client, valid_payload):
        client.post("/api/webhook", json=valid_payload)

        response = client.delete("/api/delete-email", params={"id": "missing"})

        assert response.status_code == 404
        assert response.json()["error_code"] == "EMAIL_NOT_FOUND"
        assert len(client.get("/api/get-emails").json()["emails"]) == 1

    def test_clear(self, client, valid_payload, incomplete_payload, junk_payload):
        for payload in (valid_payload, incomplete_payload, junk_payload):
            client.post("/api/webhook", json=payload)

        response = client.delete("/api/emails/clear")

        assert response.json() == {"success": True, "cleared": 3}
        assert client.get("/api/get-emails").json()["emails"] == []

    def test_storage_failure_is_server_error(self, failing_client):
        client, service = failing_client
        service.list_emails = AsyncMock(side_effect=StorageError("redis down"))

        response = client.get("/api/get-emails")

        assert response.status_code == 500
        body = response.json()
        assert body["error_code"] == "STORAGE_ERROR"
        assert body["path"] == "/api/get-emails"
        assert body["retryable"] is True
        assert "redis down" not in body["message"]


class TestInterpretation:

    def test_valid_email(self, client, valid_payload):
        client.post("/api/webhook", json=valid_payload)

        body = client.get("/api/emails/msg-1001/interpretation").json()

        assert body["status"] == "Query Logged"
        assert body["isClassified"] is True
        assert body["missingFields"] == []
        assert body["action"]["kind"] == "acknowledgement"
        assert body["action"]["recipient"] == "jane@example.com"
        assert body["loggedQuery"]["customerName"] == "Jane Doe"
        assert re.match(r"^QRY-UK-\d{5}$", body["loggedQuery"]["queryId"])
        assert body["displayFields"]["Asset/Equipment Brand"] == "Otis"

    def test_reference_stable_across_requests(self, client, valid_payload):
        client.post("/api/webhook", json=valid_payload)

        first = client.get("/api/emails/msg-1001/interpretation").json()
        client.post("/api/webhook", json=valid_payload)
        second = client.get("/api/emails/msg-1001/interpretation").json()

        assert first["loggedQuery"]["queryId"] == second["loggedQuery"]["queryId"]

    def test_incomplete_email(self, client, incomplete_payload):
        client.post("/api/webhook", json=incomplete_payload)

        body = client.get("/api/emails/msg-1002/interpretation").json()

        assert body["status"] == "Waiting for Customer"
        assert body["missingFields"] == ["Service Type", "Asset/Equipment Brand"]
        assert body["action"]["kind"] == "clarification"
        assert body["loggedQuery"] is None

    def test_unclassified_email_has_notice(self, client, valid_payload):
        del valid_payload["output"]
        client.post("/api/webhook", json=valid_payload)

        body = client.get("/api/emails/msg-1001/interpretation").json()

        assert body["isClassified"] is False
        assert body["status"] == "Unprocessed"
        assert body["notice"] == "Email not yet classified"

    def test_unknown_email(self, client):
        assert client.get("/api/emails/missing/interpretation").status_code == 404


class TestDashboard:

    @pytest.fixture
    def populated(self, client, valid_payload, incomplete_payload, junk_payload):
        maintenance = {
            "emailData": {"id": "msg-2001", "From": "facilities@example.com", "Subject": "Annual service"},
            "output": {
                "classification": "VALID",
                "extractedQuery": {"serviceType": "Maintenance", "urgency": "High priority"},
            },
        }
        for payload in (valid_payload, incomplete_payload, junk_payload, maintenance):
            client.post("/api/webhook", json=payload)
        return client

    def test_stats(self, populated):
        body = populated.get("/api/dashboard/stats").json()

        assert body["total"] == 2
        assert body["urgent"] == 1
        assert body["maintenance"] == 1
        assert body["repair"] == 1
        assert "lastUpdated" in body

    def test_service_requests(self, populated):
        body = populated.get("/api/dashboard/service-requests").json()
        rows = {row["emailId"]: row for row in body["requests"]}

        assert body["total"] == 2
        assert rows["msg-1001"]["urgencyLevel"] == "critical"
        assert rows["msg-1001"]["assetBrand"] == "Otis"
        assert rows["msg-2001"]["urgencyLevel"] == "high"
        assert rows["msg-2001"]["customerName"] == "facilities@example.com"
        assert rows["msg-2001"]["address"] == "Not specified"


class TestHealth:

    def test_health_reports_count(self, client, valid_payload):
        client.post("/api/webhook", json=valid_payload)

        body = client.get("/health").json()

        assert body["status"] == "ok"
        assert body["emailCount"] == 1
        assert "timestamp" in body
