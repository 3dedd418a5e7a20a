"""
Dashboard Data Models

Defines models for the service-request dashboard: headline statistics and
the table of logged queries.

Design Considerations:
- camelCase on the wire
- Placeholder values resolved server-side
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DashboardStats(BaseModel):
    """Headline counts over logged service requests."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total: int = Field(..., ge=0, description="Logged service requests")
    urgent: int = Field(..., ge=0, description="Requests whose urgency mentions 'urgent'")
    maintenance: int = Field(..., ge=0, description="Maintenance requests")
    repair: int = Field(..., ge=0, description="Repair requests")
    last_updated: datetime = Field(..., description="When these statistics were computed")


class ServiceRequestRow(BaseModel):
    """One logged service request as shown in the dashboard table."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    email_id: str = Field(..., description="Source email id")
    customer_name: str = Field(..., description="Customer name, or sender name")
    customer_email: str = Field(..., description="Customer email, or sender email")
    service_type: str = Field(..., description="Service type or placeholder")
    address: str = Field(..., description="Address or placeholder")
    building_type: str = Field(default="", description="Building type, empty when unknown")
    asset_brand: str = Field(..., description="Asset brand or placeholder")
    urgency: str = Field(..., description="Urgency label, 'Normal' when unknown")
    urgency_level: str = Field(..., description="critical, high or normal")
    received_at: str = Field(..., description="Receipt time, ISO-8601 UTC")


class ServiceRequestList(BaseModel):
    """Dashboard table contents."""
    requests: List[ServiceRequestRow] = Field(default_factory=list, description="Logged service requests")
    total: int = Field(..., ge=0, description="Number of rows")
