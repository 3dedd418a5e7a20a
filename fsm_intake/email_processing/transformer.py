"""
Intake payload transformation.

The classification workflow posts one payload per email:

    {
        "emailData": {"id", "From", "Subject", "internalDate", "snippet", "threadId"},
        "output": {"classification", "extractedQuery", "shouldReply", "replyMessage"}
    }

``transform_intake_payload`` turns that payload into an ``EmailRecord`` with
its initial lifecycle status.
"""

import logging
import re
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from fsm_intake.email_processing.interpreter import status_for_classification
from fsm_intake.email_processing.models import Classification, EmailRecord, ExtractedQuery, parse_flag
from fsm_intake.utils.date_utils import epoch_millis, format_iso_date, parse_epoch_millis, utc_now

logger = logging.getLogger(__name__)

FROM_HEADER_PATTERN = re.compile(r"^(.+?)\s*<(.+?)>$")
UNKNOWN_SENDER = "Unknown"
NO_SUBJECT = "No Subject"


class IntakeError(ValueError):
    """Raised when an intake payload cannot be turned into a record."""
    pass


def parse_from_header(header: Optional[str]) -> Tuple[str, str]:
    """
    Split a ``Name <email>`` header into name and address.

    A header that does not match the pattern is used verbatim for both
    name and address; a missing header yields ``("Unknown", "")``.
    """
    if not header:
        return UNKNOWN_SENDER, ""
    match = FROM_HEADER_PATTERN.match(header.strip())
    if not match:
        return header, header
    name, email = match.group(1).strip(), match.group(2).strip()
    return name or header, email or header


def _section(payload: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = payload.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise IntakeError(f"'{key}' must be an object, got {type(value).__name__}")
    return value


def transform_intake_payload(payload: Dict[str, Any], now: Optional[datetime] = None) -> EmailRecord:
    """
    Build an ``EmailRecord`` from a workflow payload.

    Args:
        payload: Decoded JSON body posted by the workflow
        now: Optional current time, used for missing timestamps and ids

    Returns:
        The record with status derived from the verdict

    Raises:
        IntakeError: If the payload is not an object or a section is malformed
    """
    if not isinstance(payload, dict):
        raise IntakeError("Intake payload must be a JSON object")

    now = now or utc_now()
    email_data = _section(payload, "emailData")
    output = _section(payload, "output")

    sender_name, sender_email = parse_from_header(email_data.get("From"))
    received, parsed = parse_epoch_millis(email_data.get("internalDate"), now=now)
    if not parsed and email_data.get("internalDate") not in (None, ""):
        logger.warning(f"Invalid internalDate {email_data.get('internalDate')!r}, using receipt time")

    raw_classification = output.get("classification")
    classification = Classification.parse(raw_classification)
    if raw_classification and classification is None:
        logger.warning(f"Ignoring unknown classification {raw_classification!r}")

    extracted = output.get("extractedQuery")
    if extracted is not None and not isinstance(extracted, dict):
        raise IntakeError("'output.extractedQuery' must be an object")

    raw_should_reply = output.get("shouldReply")
    should_reply = parse_flag(raw_should_reply)
    if raw_should_reply is not None and should_reply is None:
        raise IntakeError(f"'output.shouldReply' is not a boolean: {raw_should_reply!r}")
    record_id = email_data.get("id")
    thread_id = email_data.get("threadId")

    return EmailRecord(
        id=str(record_id) if record_id else str(epoch_millis(now)),
        sender_name=sender_name,
        sender_email=sender_email,
        subject=email_data.get("Subject") or NO_SUBJECT,
        body=email_data.get("snippet") or "",
        received_at=format_iso_date(received),
        status=status_for_classification(classification),
        classification=classification,
        extracted_query=ExtractedQuery.from_dict(extracted),
        should_reply=should_reply,
        reply_message=output.get("replyMessage"),
        thread_id=str(thread_id) if thread_id is not None else None,
    )
