"""
Intake Webhook Route

Receives classified emails from the external classification workflow.

Design Considerations:
- Lenient payload model; the workflow may omit any field
- Repeated deliveries of one email update the stored record
- Malformed payloads answer 400 through the global handlers
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from fsm_api.models.emails import IntakePayload, IntakeResponse
from fsm_api.services.email_service import EmailService, get_email_service
from fsm_intake.email_processing import IntakeError
from fsm_intake.storage import StorageError

# Configure logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(tags=["Intake"])


@router.post(
    "/webhook",
    response_model=IntakeResponse,
    summary="Receive a classified email from the workflow"
)
async def receive_email(
    payload: IntakePayload,
    email_service: EmailService = Depends(get_email_service)
):
    """
    Store one classified email.

    Args:
        payload: Email metadata and classification output

    Returns:
        The stored record id and whether it was added or updated
    """
    try:
        record, added = await email_service.receive_email(payload.to_transformer_input())
        return IntakeResponse(
            success=True,
            id=record.id,
            action="added" if added else "updated"
        )
    except (IntakeError, StorageError):
        raise
    except Exception as e:
        logger.error(f"Error processing webhook: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to store email: {str(e)}"
        )
