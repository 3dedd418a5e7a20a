"""
Email processing package initialization.
"""

from .models import (
    ActionKind,
    Classification,
    EmailRecord,
    EmailStatus,
    ExtractedQuery,
    Interpretation,
    LoggedQuery,
    ReplyAction,
)
from .interpreter import (
    ClassificationInterpreter,
    QueryReferenceRegistry,
    display_fields,
    missing_required_fields,
    resolve_customer,
    status_for_classification,
)
from .transformer import IntakeError, parse_from_header, transform_intake_payload

__all__ = [
    'ActionKind',
    'Classification',
    'EmailRecord',
    'EmailStatus',
    'ExtractedQuery',
    'Interpretation',
    'LoggedQuery',
    'ReplyAction',
    'ClassificationInterpreter',
    'QueryReferenceRegistry',
    'display_fields',
    'missing_required_fields',
    'resolve_customer',
    'status_for_classification',
    'IntakeError',
    'parse_from_header',
    'transform_intake_payload',
]
