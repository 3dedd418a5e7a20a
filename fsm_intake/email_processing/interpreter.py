"""
Classification interpretation for received emails.

Turns the verdict produced by the intake workflow, together with the
extracted service-request fields, into the state the service desk works
with: lifecycle status, missing required fields, reply action and, for
valid requests, a logged service query.

Query references are assigned once per record and verdict transition and
memoized in a ``QueryReferenceRegistry`` owned by the viewing session, so
re-rendering an already logged email never issues a second reference.
"""

import logging
import random
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from fsm_intake.email_processing.models import (
    ActionKind,
    Classification,
    EmailRecord,
    EmailStatus,
    ExtractedQuery,
    Interpretation,
    LoggedQuery,
    ReplyAction,
)
from fsm_intake.utils.date_utils import format_iso_date, utc_now

logger = logging.getLogger(__name__)

NOT_SPECIFIED = "Not specified"
NOT_CLASSIFIED_NOTICE = "Email not yet classified"
QUERY_REFERENCE_PREFIX = "QRY-UK-"

# Required fields in display order: (attribute, label)
REQUIRED_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("service_type", "Service Type"),
    ("address", "Building Address"),
    ("asset_brand", "Asset/Equipment Brand"),
    ("urgency", "Urgency/Timeframe"),
)

_STATUS_BY_CLASSIFICATION = {
    Classification.JUNK: EmailStatus.JUNK,
    Classification.INCOMPLETE: EmailStatus.WAITING_FOR_CUSTOMER,
    Classification.VALID: EmailStatus.QUERY_LOGGED,
}

_ACTION_DESCRIPTIONS = {
    ActionKind.NO_ACTION: "No reply, no further action",
    ActionKind.CLARIFICATION: "Clarification reply required",
    ActionKind.ACKNOWLEDGEMENT: "Acknowledgement reply",
}


def status_for_classification(classification: Optional[Classification]) -> EmailStatus:
    """Lifecycle status implied by a verdict; no verdict means Unprocessed."""
    if classification is None:
        return EmailStatus.UNPROCESSED
    return _STATUS_BY_CLASSIFICATION[classification]


def _is_blank(value: Optional[str]) -> bool:
    return not value or not value.strip()


def missing_required_fields(extracted: Optional[ExtractedQuery]) -> List[str]:
    """Labels of required fields that were not extracted, in policy order."""
    if extracted is None:
        return []
    return [label for attr, label in REQUIRED_FIELDS if _is_blank(getattr(extracted, attr))]


def resolve_customer(record: EmailRecord) -> Tuple[str, str]:
    """Customer name and email, falling back to the sender's."""
    extracted = record.extracted_query or ExtractedQuery()
    name = extracted.customer_name if not _is_blank(extracted.customer_name) else record.sender_name
    email = extracted.customer_email if not _is_blank(extracted.customer_email) else record.sender_email
    return name, email


def display_fields(record: EmailRecord) -> Dict[str, str]:
    """Extracted fields as shown to the operator, with placeholders."""
    extracted = record.extracted_query or ExtractedQuery()
    name, email = resolve_customer(record)

    def shown(value: str) -> str:
        return NOT_SPECIFIED if _is_blank(value) else value

    return {
        "Customer Name": name,
        "Customer Email": email,
        "Service Type": shown(extracted.service_type),
        "Asset/Equipment Brand": shown(extracted.asset_brand),
        "Building Type": shown(extracted.building_type),
        "Address": shown(extracted.address),
        "Urgency": shown(extracted.urgency),
        "Description": shown(extracted.description),
    }


def is_logged_query(record: EmailRecord) -> bool:
    """Whether a record belongs on the service-request dashboard."""
    return record.classification is Classification.VALID or record.status is EmailStatus.QUERY_LOGGED


def generate_query_reference(rng: Optional[random.Random] = None) -> str:
    """New ``QRY-UK-NNNNN`` reference, digits uniform in [10000, 99999]."""
    source = rng or random
    return f"{QUERY_REFERENCE_PREFIX}{source.randint(10000, 99999)}"


class QueryReferenceRegistry:
    """
    Session-scoped memo of logged queries keyed by record id.

    Holds the one LoggedQuery issued for each record while its verdict stays
    VALID. Entries are dropped when the verdict moves away from VALID or the
    record is deleted, so a later VALID verdict counts as a new transition.
    """

    def __init__(self):
        self._queries: Dict[str, LoggedQuery] = {}

    def get(self, record_id: str) -> Optional[LoggedQuery]:
        return self._queries.get(record_id)

    def store(self, record_id: str, query: LoggedQuery) -> None:
        previous = self._queries.get(record_id)
        if previous is not None and previous.query_id != query.query_id:
            raise ValueError(
                f"Email {record_id} already holds query reference {previous.query_id}"
            )
        if previous is None:
            logger.info(f"Assigned query reference {query.query_id} to email {record_id}")
        self._queries[record_id] = query

    def forget(self, record_id: str) -> bool:
        return self._queries.pop(record_id, None) is not None

    def clear(self) -> int:
        count = len(self._queries)
        self._queries.clear()
        return count

    def retain(self, record_ids: Iterable[str]) -> int:
        """Drop entries for records outside ``record_ids``; returns how many."""
        keep = set(record_ids)
        stale = [record_id for record_id in self._queries if record_id not in keep]
        for record_id in stale:
            del self._queries[record_id]
        return len(stale)

    def __contains__(self, record_id: str) -> bool:
        return record_id in self._queries

    def __len__(self) -> int:
        return len(self._queries)


class ClassificationInterpreter:
    """
    Derives display state from a record's classification verdict.

    The interpreter is synchronous and keeps no state beyond its registry.
    One instance should live for one viewing session.
    """

    def __init__(
        self,
        registry: Optional[QueryReferenceRegistry] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable] = None,
    ):
        self.registry = registry if registry is not None else QueryReferenceRegistry()
        self._rng = rng
        self._clock = clock or utc_now

    def interpret(self, record: EmailRecord) -> Interpretation:
        """
        Interpret one record.

        Args:
            record: Email record, classified or not

        Returns:
            Interpretation with status, missing fields, action and, for VALID
            verdicts, the memoized logged query. A record without a verdict
            yields a non-blocking "not yet classified" notice.
        """
        classification = record.classification

        if classification is None:
            logger.debug(f"Email {record.id} has no classification yet")
            return Interpretation(
                record_id=record.id,
                classification=None,
                status=record.status,
                is_classified=False,
                notice=NOT_CLASSIFIED_NOTICE,
            )

        status = status_for_classification(classification)

        if classification is Classification.JUNK:
            self.registry.forget(record.id)
            return Interpretation(
                record_id=record.id,
                classification=classification,
                status=status,
                is_classified=True,
                action=self._action(ActionKind.NO_ACTION, record, include_reply=False),
            )

        missing = missing_required_fields(record.extracted_query)

        if classification is Classification.INCOMPLETE:
            self.registry.forget(record.id)
            return Interpretation(
                record_id=record.id,
                classification=classification,
                status=status,
                is_classified=True,
                missing_fields=missing,
                action=self._action(ActionKind.CLARIFICATION, record),
            )

        previous = self.registry.get(record.id)
        logged_query = self._build_logged_query(record, previous)
        if logged_query != previous:
            # Same reference, refreshed fields when the record was re-received
            self.registry.store(record.id, logged_query)
        return Interpretation(
            record_id=record.id,
            classification=classification,
            status=status,
            is_classified=True,
            missing_fields=missing,
            action=self._action(ActionKind.ACKNOWLEDGEMENT, record),
            logged_query=logged_query,
        )

    def apply(self, record: EmailRecord) -> Tuple[EmailRecord, Interpretation]:
        """
        Interpret a record and return a copy carrying the derived status.

        This is the only path through which a record's lifecycle status
        changes. Applying the same verdict again returns an equal record.
        """
        interpretation = self.interpret(record)
        if interpretation.status is record.status:
            return record, interpretation
        logger.info(
            f"Email {record.id} status {record.status.value} -> {interpretation.status.value}"
        )
        return replace(record, status=interpretation.status), interpretation

    def _action(self, kind: ActionKind, record: EmailRecord, include_reply: bool = True) -> ReplyAction:
        if not include_reply:
            return ReplyAction(kind=kind, description=_ACTION_DESCRIPTIONS[kind])
        _, recipient = resolve_customer(record)
        return ReplyAction(
            kind=kind,
            description=_ACTION_DESCRIPTIONS[kind],
            reply_required=bool(record.should_reply),
            reply_message=record.reply_message,
            recipient=recipient or None,
        )

    def _build_logged_query(self, record: EmailRecord, previous: Optional[LoggedQuery]) -> LoggedQuery:
        extracted = record.extracted_query or ExtractedQuery()
        name, email = resolve_customer(record)
        if previous is not None:
            query_id, acknowledged_at = previous.query_id, previous.acknowledged_at
        else:
            query_id = generate_query_reference(self._rng)
            acknowledged_at = format_iso_date(self._clock())
        return LoggedQuery(
            query_id=query_id,
            customer_name=name,
            customer_email=email,
            service_type=extracted.service_type,
            asset_brand=extracted.asset_brand,
            building_type=extracted.building_type,
            address=extracted.address,
            urgency=extracted.urgency,
            description=extracted.description,
            acknowledged_at=acknowledged_at,
        )
