"""
Shared fixtures for the intake test suite.

Payloads mirror what the classification workflow posts to the webhook.
"""

import copy
import random

import pytest

from fsm_intake.email_processing import (
    Classification,
    ClassificationInterpreter,
    EmailRecord,
    EmailStatus,
    ExtractedQuery,
)

# 2024-03-01T09:30:00.000Z
RECEIVED_MILLIS = "1709285400000"

VALID_PAYLOAD = {
    "emailData": {
        "id": "msg-1001",
        "From": "Jane Doe <jane@example.com>",
        "Subject": "Lift stuck between floors",
        "internalDate": RECEIVED_MILLIS,
        "snippet": "The lift at our office is stuck on level 2.",
        "threadId": "thread-1001",
    },
    "output": {
        "classification": "VALID",
        "extractedQuery": {
            "customerName": "Jane Doe",
            "customerEmail": "jane@example.com",
            "serviceType": "Repair",
            "assetBrand": "Otis",
            "buildingType": "Office",
            "address": "1 High Street, London",
            "urgency": "Urgent",
            "description": "Lift stuck on level 2",
        },
        "shouldReply": True,
        "replyMessage": "Thank you, we have logged your request.",
    },
}

INCOMPLETE_PAYLOAD = {
    "emailData": {
        "id": "msg-1002",
        "From": "Sam Patel <sam@example.com>",
        "Subject": "Something is wrong",
        "internalDate": RECEIVED_MILLIS,
        "snippet": "Please send someone.",
        "threadId": "thread-1002",
    },
    "output": {
        "classification": "INCOMPLETE",
        "extractedQuery": {
            "serviceType": "",
            "assetBrand": "",
            "address": "22 Mill Lane, Leeds",
            "urgency": "This week",
        },
        "shouldReply": True,
        "replyMessage": "Could you tell us which equipment is affected?",
    },
}

JUNK_PAYLOAD = {
    "emailData": {
        "id": "msg-1003",
        "From": "Deals <promo@spam.example>",
        "Subject": "You have won",
        "internalDate": RECEIVED_MILLIS,
        "snippet": "Claim your prize now",
    },
    "output": {"classification": "JUNK", "shouldReply": False},
}


@pytest.fixture
def valid_payload():
    return copy.deepcopy(VALID_PAYLOAD)


@pytest.fixture
def incomplete_payload():
    return copy.deepcopy(INCOMPLETE_PAYLOAD)


@pytest.fixture
def junk_payload():
    return copy.deepcopy(JUNK_PAYLOAD)


@pytest.fixture
def make_record():
    """Factory for email records with sensible defaults."""
    def _make(record_id="msg-1", classification=None, extracted=None, **overrides):
        classification = Classification.parse(classification)
        values = dict(
            id=record_id,
            sender_name="Jane Doe",
            sender_email="jane@example.com",
            subject=f"Subject {record_id}",
            body="Body text",
            received_at="2024-03-01T09:30:00.000Z",
            status=EmailStatus.UNPROCESSED,
            classification=classification,
            extracted_query=ExtractedQuery(**extracted) if extracted is not None else None,
        )
        values.update(overrides)
        return EmailRecord(**values)
    return _make


@pytest.fixture
def interpreter():
    """Interpreter with a seeded reference generator."""
    return ClassificationInterpreter(rng=random.Random(1234))
