"""
API Routes Package

Centralizes route management with explicit module imports.
"""

from fsm_api.routes import intake
from fsm_api.routes import emails
from fsm_api.routes import dashboard

__all__ = ["intake", "emails", "dashboard"]
