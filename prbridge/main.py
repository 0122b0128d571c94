# Copyright (c) 2025 Parth Sinha and Shine Gupta. All rights reserved.
# prbridge - Automated pull requests and webhook handling for GitHub, GitLab and Azure DevOps.

"""
prbridge FastAPI application.
"""

from datetime import datetime, timezone
from typing import Dict, Any

from fastapi import FastAPI, status
import structlog
import uvicorn

from prbridge import __version__
from prbridge.api import router as api_router, pages_router
from prbridge.core.config import get_settings
from prbridge.core.logging import configure_logging

logger = structlog.get_logger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(level=settings.log_level, fmt=settings.log_format)

    application = FastAPI(
        title="prbridge",
        description="Automated pull requests and webhook handling for GitHub, GitLab and Azure DevOps.",
        version=__version__,
    )
    application.include_router(api_router)
    application.include_router(pages_router)

    @application.get(
        "/health",
        status_code=status.HTTP_200_OK,
        summary="Health check",
        tags=["Health"],
    )
    async def health() -> Dict[str, Any]:
        return {
            "status": "healthy",
            "version": __version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    logger.info("application_created", version=__version__)
    return application


app = create_app()


def main() -> None:
    """Run the API with uvicorn."""
    uvicorn.run("prbridge.main:app", host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
