"""
Email Data Models

Defines the request and response models for email intake, retrieval and
classification interpretation.

Design Considerations:
- camelCase on the wire, snake_case in Python
- Lenient intake models: the workflow may omit any field
- Responses built from the core dataclasses
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from fsm_intake.email_processing.models import Interpretation, LoggedQuery, ReplyAction


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExtractedQueryModel(CamelModel):
    """
    Structured service-request fields extracted by the workflow.

    Every field is optional; an empty string means "not extracted".
    """
    customer_name: Optional[str] = Field(default=None, description="Customer name")
    customer_email: Optional[str] = Field(default=None, description="Customer email address")
    service_type: Optional[str] = Field(default=None, description="Requested service type")
    asset_brand: Optional[str] = Field(default=None, description="Asset or equipment brand")
    building_type: Optional[str] = Field(default=None, description="Building type")
    address: Optional[str] = Field(default=None, description="Site address")
    urgency: Optional[str] = Field(default=None, description="Urgency label")
    description: Optional[str] = Field(default=None, description="Free-text description")
    elevator_brand: Optional[str] = Field(
        default=None,
        description="Legacy name for assetBrand, accepted on intake only",
        exclude=True,
    )


class IntakeEmailData(BaseModel):
    """Raw email metadata as forwarded by the workflow (Gmail field names)."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: Optional[Union[str, int]] = Field(default=None, description="Source message id")
    from_header: Optional[str] = Field(default=None, alias="From", description="From header, 'Name <email>'")
    subject: Optional[str] = Field(default=None, alias="Subject", description="Subject line")
    internal_date: Optional[Union[str, int]] = Field(
        default=None,
        alias="internalDate",
        description="Receipt time in milliseconds since the epoch"
    )
    snippet: Optional[str] = Field(default=None, description="Body snippet")
    thread_id: Optional[Union[str, int]] = Field(default=None, alias="threadId", description="Source thread id")


class ClassificationOutput(CamelModel):
    """Classification result produced by the workflow."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    classification: Optional[str] = Field(default=None, description="JUNK, INCOMPLETE or VALID")
    extracted_query: Optional[ExtractedQueryModel] = Field(default=None, description="Extracted fields")
    should_reply: Optional[bool] = Field(default=None, description="Whether a reply should be sent")
    reply_message: Optional[str] = Field(default=None, description="Reply text drafted by the workflow")


class IntakePayload(CamelModel):
    """Payload posted to the intake webhook."""
    email_data: Optional[IntakeEmailData] = Field(default=None, description="Email metadata")
    output: Optional[ClassificationOutput] = Field(default=None, description="Classification output")

    def to_transformer_input(self) -> Dict[str, Any]:
        """Plain dict in the workflow's own shape."""
        payload: Dict[str, Any] = {}
        if self.email_data is not None:
            payload["emailData"] = self.email_data.model_dump(by_alias=True)
        if self.output is not None:
            output = self.output.model_dump(by_alias=True, exclude={"extracted_query"})
            if self.output.extracted_query is not None:
                extracted = self.output.extracted_query.model_dump(by_alias=True)
                extracted["elevatorBrand"] = self.output.extracted_query.elevator_brand
                output["extractedQuery"] = extracted
            payload["output"] = output
        return payload


class IntakeResponse(BaseModel):
    """Acknowledgement returned to the workflow."""
    success: bool = Field(default=True, description="Whether the email was stored")
    id: str = Field(..., description="Stored record id")
    action: str = Field(..., description="'added' or 'updated'")
    message: str = Field(default="Email received and stored", description="Human-readable result")


class EmailRecordModel(CamelModel):
    """Stored email record as served to the inbox."""
    id: str = Field(..., description="Record id")
    sender_name: str = Field(..., description="Sender display name")
    sender_email: str = Field(..., description="Sender email address")
    subject: str = Field(..., description="Subject line")
    received_at: str = Field(..., description="Receipt time, ISO-8601 UTC")
    status: str = Field(..., description="Lifecycle status")
    body: str = Field(default="", description="Body text")
    classification: Optional[str] = Field(default=None, description="Verdict, if classified")
    extracted_query: Optional[ExtractedQueryModel] = Field(default=None, description="Extracted fields")
    should_reply: Optional[bool] = Field(default=None, description="Reply required flag")
    reply_message: Optional[str] = Field(default=None, description="Reply text")
    thread_id: Optional[str] = Field(default=None, description="Source thread id")


class EmailListResponse(BaseModel):
    """Retained records, newest first."""
    emails: List[EmailRecordModel] = Field(
        default_factory=list,
        description="Email records"
    )


class DeleteResponse(BaseModel):
    """Result of deleting one record."""
    success: bool = Field(default=True, description="Whether the record was deleted")
    message: str = Field(..., description="Human-readable result")
    id: str = Field(..., description="Deleted record id")


class ClearResponse(BaseModel):
    """Result of clearing the store."""
    success: bool = Field(default=True, description="Whether the store was cleared")
    cleared: int = Field(..., ge=0, description="Number of records removed")


class LoggedQueryModel(CamelModel):
    """Service query logged for a VALID email."""
    query_id: str
    customer_name: str
    customer_email: str
    service_type: str
    asset_brand: str
    building_type: str
    address: str
    urgency: str
    description: str
    status: str
    source: str
    sla: str
    assigned_engineer: str
    acknowledged_at: str

    @classmethod
    def from_query(cls, query: LoggedQuery) -> "LoggedQueryModel":
        return cls(**query.to_dict())


class ReplyActionModel(CamelModel):
    """Reply action derived from the verdict."""
    kind: str = Field(..., description="no_action, clarification or acknowledgement")
    description: str = Field(..., description="Human-readable action")
    reply_required: bool = Field(default=False, description="Whether a reply goes out")
    reply_message: Optional[str] = Field(default=None, description="Reply text")
    recipient: Optional[str] = Field(default=None, description="Reply recipient")

    @classmethod
    def from_action(cls, action: ReplyAction) -> "ReplyActionModel":
        return cls(
            kind=action.kind.value,
            description=action.description,
            reply_required=action.reply_required,
            reply_message=action.reply_message,
            recipient=action.recipient,
        )


class InterpretationResponse(CamelModel):
    """Display state for one email."""
    email_id: str = Field(..., description="Record id")
    classification: Optional[str] = Field(default=None, description="Verdict, if classified")
    status: str = Field(..., description="Derived lifecycle status")
    is_classified: bool = Field(..., description="Whether a verdict is present")
    missing_fields: List[str] = Field(default_factory=list, description="Missing required fields")
    action: Optional[ReplyActionModel] = Field(default=None, description="Reply action")
    logged_query: Optional[LoggedQueryModel] = Field(default=None, description="Logged service query")
    display_fields: Dict[str, str] = Field(default_factory=dict, description="Extracted fields for display")
    notice: Optional[str] = Field(default=None, description="Non-blocking notice")

    @classmethod
    def from_interpretation(cls, interpretation: Interpretation, display_fields: Dict[str, str]) -> "InterpretationResponse":
        return cls(
            email_id=interpretation.record_id,
            classification=interpretation.classification.value if interpretation.classification else None,
            status=interpretation.status.value,
            is_classified=interpretation.is_classified,
            missing_fields=list(interpretation.missing_fields),
            action=ReplyActionModel.from_action(interpretation.action) if interpretation.action else None,
            logged_query=LoggedQueryModel.from_query(interpretation.logged_query) if interpretation.logged_query else None,
            display_fields=display_fields,
            notice=interpretation.notice,
        )
