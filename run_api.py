"""
API Server Runner

Entry point for running the intake API under uvicorn with environment
setup from the command line and an optional ``.env`` file.

Design Considerations:
- Environment variables set before the application module is imported
- Storage configuration reported at startup for operational visibility
- Graceful error management and reporting
"""

import argparse
import logging
import os
import sys
import traceback

import uvicorn
from dotenv import load_dotenv

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("api_runner")


def parse_arguments(argv=None):
    """Parse command line arguments for the API server."""
    parser = argparse.ArgumentParser(description="Run the FSM email intake API server")

    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind the server to (default: 127.0.0.1)"
    )

    parser.add_argument(
        "--port",
        type=int,
        default=3000,
        help="Port to bind the server to (default: 3000)"
    )

    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development"
    )

    parser.add_argument(
        "--env",
        type=str,
        choices=["development", "testing", "production"],
        default="development",
        help="Environment to run in (default: development)"
    )

    return parser.parse_args(argv)


def setup_environment(env: str) -> None:
    """
    Set environment variables for the selected deployment context.

    Values from ``.env`` are loaded first; the command line decides
    ENVIRONMENT and DEBUG.

    Args:
        env: Environment name (development, testing, production)
    """
    load_dotenv(override=True)

    os.environ["ENVIRONMENT"] = env
    os.environ["DEBUG"] = "true" if env in ["development", "testing"] else "false"

    backend = os.environ.get("STORAGE_BACKEND", "memory")
    logger.info(f"Email storage backend: {backend}")
    if backend == "redis" and not os.environ.get("REDIS_URL"):
        logger.warning("STORAGE_BACKEND is redis but REDIS_URL is not set")


def main():
    """Run the API server."""
    args = parse_arguments()

    setup_environment(args.env)

    logger.info(f"Starting API server in {args.env} mode")
    logger.info(f"Server will be available at http://{args.host}:{args.port}")

    if args.env == "development":
        logger.info(f"API documentation will be available at http://{args.host}:{args.port}/docs")

    uvicorn.run(
        "fsm_api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info" if args.env == "production" else "debug"
    )


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Error running server: {str(e)}")
        logger.error(traceback.format_exc())
        sys.exit(1)
