# Copyright (c) 2025 Parth Sinha and Shine Gupta. All rights reserved.
# prbridge - Automated pull requests and webhook handling for GitHub, GitLab and Azure DevOps.

"""
API Router

PR/MR creation endpoints and webhook receivers under /api.
"""

from fastapi import APIRouter

from .prs import router as prs_router
from .webhooks import router as webhooks_router
from .pages import router as pages_router

# Create /api router
router = APIRouter(prefix="/api")

# Include sub-routers
router.include_router(prs_router)
router.include_router(webhooks_router)

__all__ = ["router", "pages_router"]
