"""
API Package Initialization

FastAPI application serving the email intake webhook, the inbox endpoints
and the service-request dashboard.
"""

from fsm_api.config import get_settings

__all__ = ['get_settings']
