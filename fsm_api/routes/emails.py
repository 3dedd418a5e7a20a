"""
Email Inbox API Routes

Endpoints the inbox uses to list, inspect, interpret and remove stored
emails.

Design Considerations:
- Paths kept compatible with the existing inbox front end
- Not-found and storage failures rendered by the global handlers
- Interpretation memoized for the lifetime of the server process
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from fsm_api.models.emails import (
    ClearResponse,
    DeleteResponse,
    EmailListResponse,
    EmailRecordModel,
    InterpretationResponse,
)
from fsm_api.services.email_service import EmailNotFoundError, EmailService, get_email_service
from fsm_intake.email_processing import EmailRecord, display_fields
from fsm_intake.storage import StorageError

# Configure logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(tags=["Emails"])


def to_model(record: EmailRecord) -> EmailRecordModel:
    """Convert a stored record into its response model."""
    return EmailRecordModel.model_validate(record.to_dict())


@router.get(
    "/get-emails",
    response_model=EmailListResponse,
    summary="Get stored emails, newest first"
)
async def get_emails(
    email_service: EmailService = Depends(get_email_service)
):
    """
    Retrieve every retained email.

    Returns:
        Email records, newest first
    """
    try:
        emails = await email_service.list_emails()
        return EmailListResponse(emails=[to_model(email) for email in emails])
    except StorageError:
        raise
    except Exception as e:
        logger.error(f"Error retrieving emails: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to retrieve emails: {str(e)}"
        )


@router.get(
    "/get-emails/{email_id}",
    response_model=EmailRecordModel,
    summary="Get one stored email"
)
async def get_email_detail(
    email_id: str = Path(..., description="Email id"),
    email_service: EmailService = Depends(get_email_service)
):
    """
    Retrieve one email by id.

    Raises:
        EmailNotFoundError: If email not found
    """
    email = await email_service.get_email(email_id)
    return to_model(email)


@router.delete(
    "/delete-email",
    response_model=DeleteResponse,
    summary="Delete one stored email"
)
async def delete_email(
    email_id: Optional[str] = Query(None, alias="id", description="Email id"),
    email_service: EmailService = Depends(get_email_service)
):
    """
    Remove one email from the store.

    Args:
        email_id: Id of the email to delete, passed as ``?id=``

    Returns:
        Confirmation with the deleted id
    """
    if not email_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email ID is required"
        )

    try:
        deleted = await email_service.delete_email(email_id)
    except StorageError:
        raise
    except Exception as e:
        logger.error(f"Error deleting email {email_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete email: {str(e)}"
        )

    if not deleted:
        raise EmailNotFoundError(email_id)

    return DeleteResponse(
        success=True,
        message="Email deleted successfully",
        id=email_id
    )


@router.delete(
    "/emails/clear",
    response_model=ClearResponse,
    summary="Remove every stored email"
)
async def clear_emails(
    email_service: EmailService = Depends(get_email_service)
):
    """Empty the store and report how many emails were removed."""
    cleared = await email_service.clear_emails()
    return ClearResponse(success=True, cleared=cleared)


@router.get(
    "/emails/{email_id}/interpretation",
    response_model=InterpretationResponse,
    summary="Interpret an email's classification"
)
async def get_interpretation(
    email_id: str = Path(..., description="Email id"),
    email_service: EmailService = Depends(get_email_service)
):
    """
    Derive status, missing fields, reply action and logged query for one
    email.

    Re-requesting a VALID email returns the same query reference while the
    server keeps running.
    """
    record, interpretation = await email_service.interpret_email(email_id)
    return InterpretationResponse.from_interpretation(interpretation, display_fields(record))
