"""
Dashboard Service Implementation

Aggregates logged service requests for the dashboard view.

Design Considerations:
- Derived on every request from the record store; nothing is cached
- Same fallbacks and placeholders as the inbox detail view
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Depends

from fsm_api.models.dashboard import DashboardStats, ServiceRequestList, ServiceRequestRow
from fsm_api.services.email_service import EmailService, get_email_service
from fsm_intake.email_processing import EmailRecord, ExtractedQuery, resolve_customer
from fsm_intake.email_processing.interpreter import NOT_SPECIFIED, is_logged_query

# Configure logging
logger = logging.getLogger(__name__)

DEFAULT_URGENCY = "Normal"


def _contains(value: Optional[str], needle: str) -> bool:
    return bool(value) and needle in value.lower()


def urgency_level(urgency: Optional[str]) -> str:
    """Badge level for an urgency label: critical, high or normal."""
    if _contains(urgency, "urgent") or _contains(urgency, "emergency"):
        return "critical"
    if _contains(urgency, "high"):
        return "high"
    return "normal"


class DashboardService:
    """Service-request dashboard built from the retained emails."""

    def __init__(self, email_service: EmailService):
        self.email_service = email_service

    async def logged_queries(self) -> List[EmailRecord]:
        """Emails classified VALID or already in Query Logged status."""
        return [email for email in await self.email_service.list_emails() if is_logged_query(email)]

    async def get_stats(self) -> DashboardStats:
        """
        Headline counts for the dashboard cards.

        Returns:
            Totals for all logged requests and the urgent, maintenance and
            repair subsets (case-insensitive substring matches)
        """
        queries = await self.logged_queries()
        extracted = [email.extracted_query or ExtractedQuery() for email in queries]

        stats = DashboardStats(
            total=len(queries),
            urgent=sum(1 for q in extracted if _contains(q.urgency, "urgent")),
            maintenance=sum(1 for q in extracted if _contains(q.service_type, "maintenance")),
            repair=sum(1 for q in extracted if _contains(q.service_type, "repair")),
            last_updated=datetime.now(timezone.utc),
        )
        logger.debug(f"Dashboard stats: {stats.total} logged requests")
        return stats

    async def get_service_requests(self) -> ServiceRequestList:
        """Rows for the dashboard table, newest first."""
        rows = []
        for email in await self.logged_queries():
            extracted = email.extracted_query or ExtractedQuery()
            name, address = resolve_customer(email)
            rows.append(ServiceRequestRow(
                email_id=email.id,
                customer_name=name,
                customer_email=address,
                service_type=extracted.service_type or NOT_SPECIFIED,
                address=extracted.address or NOT_SPECIFIED,
                building_type=extracted.building_type or "",
                asset_brand=extracted.asset_brand or NOT_SPECIFIED,
                urgency=extracted.urgency or DEFAULT_URGENCY,
                urgency_level=urgency_level(extracted.urgency),
                received_at=email.received_at,
            ))
        return ServiceRequestList(requests=rows, total=len(rows))


def get_dashboard_service(
    email_service: EmailService = Depends(get_email_service)
) -> DashboardService:
    """Provide dashboard service instance for dependency injection."""
    return DashboardService(email_service)
