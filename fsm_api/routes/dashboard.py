"""
Dashboard API Routes

Service-request dashboard: headline counts and the logged-query table.

Design Considerations:
- Computed from the record store on every request
- Consistent route organization with the inbox endpoints
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from fsm_api.models.dashboard import DashboardStats, ServiceRequestList
from fsm_api.services.dashboard_service import DashboardService, get_dashboard_service
from fsm_intake.storage import StorageError

# Configure logging
logger = logging.getLogger(__name__)

# Create router with prefix
router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get(
    "/stats",
    response_model=DashboardStats,
    summary="Get dashboard statistics"
)
async def get_dashboard_stats(
    dashboard_service: DashboardService = Depends(get_dashboard_service)
):
    """
    Retrieve headline statistics over logged service requests.

    Returns:
        Total, urgent, maintenance and repair counts
    """
    try:
        return await dashboard_service.get_stats()
    except StorageError:
        raise
    except Exception as e:
        logger.error(f"Error retrieving dashboard stats: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to retrieve dashboard statistics: {str(e)}"
        )


@router.get(
    "/service-requests",
    response_model=ServiceRequestList,
    summary="Get logged service requests"
)
async def get_service_requests(
    dashboard_service: DashboardService = Depends(get_dashboard_service)
):
    """Rows for the dashboard table, newest first."""
    try:
        return await dashboard_service.get_service_requests()
    except StorageError:
        raise
    except Exception as e:
        logger.error(f"Error retrieving service requests: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to retrieve service requests: {str(e)}"
        )
