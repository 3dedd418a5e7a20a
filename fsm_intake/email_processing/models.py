"""
Shared data models for email intake and classification interpretation.

Records travel as camelCase JSON (API responses, Redis payloads); the
``to_dict``/``from_dict`` helpers own that mapping so the rest of the
package works with plain attributes.
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional


class Classification(Enum):
    """Verdicts produced by the external classification workflow."""
    JUNK = "JUNK"
    INCOMPLETE = "INCOMPLETE"
    VALID = "VALID"

    @classmethod
    def parse(cls, value: Any) -> Optional["Classification"]:
        """Parse a verdict string; unknown or empty values yield None."""
        if value is None:
            return None
        if isinstance(value, Classification):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return None


class EmailStatus(Enum):
    """Lifecycle status shown in the inbox."""
    UNPROCESSED = "Unprocessed"
    JUNK = "Junk"
    WAITING_FOR_CUSTOMER = "Waiting for Customer"
    QUERY_LOGGED = "Query Logged"

    @classmethod
    def parse(cls, value: Any) -> "EmailStatus":
        if isinstance(value, EmailStatus):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.UNPROCESSED


class ActionKind(Enum):
    """Reply action derived from a verdict."""
    NO_ACTION = "no_action"
    CLARIFICATION = "clarification"
    ACKNOWLEDGEMENT = "acknowledgement"


# snake_case attribute -> camelCase wire key
_QUERY_KEYS = {
    "customer_name": "customerName",
    "customer_email": "customerEmail",
    "service_type": "serviceType",
    "asset_brand": "assetBrand",
    "building_type": "buildingType",
    "address": "address",
    "urgency": "urgency",
    "description": "description",
}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


_TRUE_STRINGS = {"true", "yes", "1"}
_FALSE_STRINGS = {"false", "no", "0", ""}


def parse_flag(value: Any) -> Optional[bool]:
    """
    Parse a yes/no flag from JSON.

    Workflow tools sometimes send booleans as strings; "false" must not
    read as True. None and unrecognised strings yield None.
    """
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
        return None
    return bool(value)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


@dataclass
class ExtractedQuery:
    """Structured service-request data extracted from an email."""
    customer_name: str = ""
    customer_email: str = ""
    service_type: str = ""
    asset_brand: str = ""
    building_type: str = ""
    address: str = ""
    urgency: str = ""
    description: str = ""

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["ExtractedQuery"]:
        if data is None:
            return None
        values = {attr: _text(data.get(key)) for attr, key in _QUERY_KEYS.items()}
        # Older workflow versions call the asset "elevatorBrand"
        if not values["asset_brand"].strip():
            values["asset_brand"] = _text(data.get("elevatorBrand"))
        return cls(**values)

    def to_dict(self) -> Dict[str, str]:
        return {key: getattr(self, attr) for attr, key in _QUERY_KEYS.items()}


@dataclass
class EmailRecord:
    """A received email together with its classification output."""
    id: str
    sender_name: str
    sender_email: str
    subject: str
    body: str
    received_at: str
    status: EmailStatus = EmailStatus.UNPROCESSED
    classification: Optional[Classification] = None
    extracted_query: Optional[ExtractedQuery] = None
    should_reply: Optional[bool] = None
    reply_message: Optional[str] = None
    thread_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EmailRecord":
        """Build a record from its camelCase JSON form."""
        return cls(
            id=str(data["id"]),
            sender_name=_text(data.get("senderName")),
            sender_email=_text(data.get("senderEmail")),
            subject=_text(data.get("subject")),
            body=_text(data.get("body")),
            received_at=_text(data.get("receivedAt")),
            status=EmailStatus.parse(data.get("status")),
            classification=Classification.parse(data.get("classification")),
            extracted_query=ExtractedQuery.from_dict(data.get("extractedQuery")),
            should_reply=parse_flag(data.get("shouldReply")),
            reply_message=data.get("replyMessage"),
            thread_id=data.get("threadId"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the camelCase JSON form used by the API and Redis."""
        return {
            "id": self.id,
            "senderName": self.sender_name,
            "senderEmail": self.sender_email,
            "subject": self.subject,
            "receivedAt": self.received_at,
            "status": self.status.value,
            "body": self.body,
            "classification": self.classification.value if self.classification else None,
            "extractedQuery": self.extracted_query.to_dict() if self.extracted_query else None,
            "shouldReply": self.should_reply,
            "replyMessage": self.reply_message,
            "threadId": self.thread_id,
        }


@dataclass(frozen=True)
class LoggedQuery:
    """Service query synthesized for a VALID email. Never persisted."""
    query_id: str
    customer_name: str
    customer_email: str
    service_type: str
    asset_brand: str
    building_type: str
    address: str
    urgency: str
    description: str
    acknowledged_at: str
    status: str = "Logged"
    source: str = "Email"
    sla: str = "4-hour response"
    assigned_engineer: str = "Not assigned"

    def to_dict(self) -> Dict[str, str]:
        return {_camel(f.name): getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class ReplyAction:
    """What the service desk does with an email after interpretation."""
    kind: ActionKind
    description: str
    reply_required: bool = False
    reply_message: Optional[str] = None
    recipient: Optional[str] = None


@dataclass(frozen=True)
class Interpretation:
    """Display state derived from one record's classification."""
    record_id: str
    classification: Optional[Classification]
    status: EmailStatus
    is_classified: bool
    missing_fields: List[str] = field(default_factory=list)
    action: Optional[ReplyAction] = None
    logged_query: Optional[LoggedQuery] = None
    notice: Optional[str] = None
