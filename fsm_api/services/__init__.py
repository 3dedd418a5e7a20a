# fsm_api/services/__init__.py
"""
API Services Package

Centralizes service implementations for clean business logic
separation from route handlers.
"""

from fsm_api.services.email_service import EmailService, EmailNotFoundError, get_email_service
from fsm_api.services.dashboard_service import DashboardService, get_dashboard_service

__all__ = [
    "EmailService",
    "EmailNotFoundError",
    "get_email_service",
    "DashboardService",
    "get_dashboard_service",
]
