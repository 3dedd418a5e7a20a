"""
API Application Entry Point

Defines the FastAPI application with middleware, route configuration and
lifecycle management.

Design Considerations:
- CORS configured from settings for the inbox front end
- Domain errors rendered by the global exception handlers
- Record store closed on shutdown
"""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware

from fsm_api.config import get_settings, EnvironmentType
from fsm_api.services.email_service import EmailService, get_email_service, shutdown_email_service
from fsm_api.utils.error_handlers import add_exception_handlers
from fsm_api.routes import intake, emails, dashboard

# Configure logging
logging.basicConfig(
    level=getattr(logging, get_settings().LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("fsm_api")


# Create application
def create_application() -> FastAPI:
    """
    Create and configure FastAPI application instance.

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.API_TITLE,
        description=settings.API_DESCRIPTION,
        version=settings.API_VERSION,
        docs_url="/docs" if settings.ENVIRONMENT != EnvironmentType.PRODUCTION else None,
        redoc_url="/redoc" if settings.ENVIRONMENT != EnvironmentType.PRODUCTION else None,
        debug=settings.DEBUG
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials="*" not in settings.CORS_ORIGINS,
        allow_methods=settings.CORS_METHODS,
        allow_headers=["*"],
    )

    # Add exception handlers
    add_exception_handlers(app)

    # Include routers
    app.include_router(intake.router, prefix="/api")
    app.include_router(emails.router, prefix="/api")
    app.include_router(dashboard.router, prefix="/api")

    @app.get("/health", tags=["Monitoring"])
    async def health_check(email_service: EmailService = Depends(get_email_service)):
        """API health check endpoint."""
        return {
            "status": "ok",
            "emailCount": await email_service.count_emails(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.on_event("startup")
    async def startup_event():
        """Perform initialization tasks on application startup."""
        logger.info(
            f"API service starting up with {settings.STORAGE_BACKEND.value} storage "
            f"(keeping {settings.MAX_STORED_EMAILS} emails)"
        )

    @app.on_event("shutdown")
    async def shutdown_event():
        """Release the record store on application shutdown."""
        logger.info("API service shutting down")
        await shutdown_email_service()

    logger.info(f"Application initialized in {settings.ENVIRONMENT.value} environment")
    return app


# Create application instance
app = create_application()
