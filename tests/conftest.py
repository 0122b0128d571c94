# Copyright (c) 2025 Parth Sinha and Shine Gupta. All rights reserved.
# prbridge - Automated pull requests and webhook handling for GitHub, GitLab and Azure DevOps.

"""
Shared pytest fixtures.
"""

import pytest
from fastapi.testclient import TestClient

from prbridge.core.config import Settings, get_settings
from prbridge.dependencies import get_webhook_manager
from prbridge.main import app


@pytest.fixture(autouse=True)
def clear_cached_dependencies():
    """Reset cached settings and overrides between tests."""
    get_settings.cache_clear()
    get_webhook_manager.cache_clear()
    yield
    app.dependency_overrides.clear()
    get_settings.cache_clear()
    get_webhook_manager.cache_clear()


@pytest.fixture
def make_settings():
    """Build Settings from explicit values, ignoring the environment file."""
    def _make(**values) -> Settings:
        return Settings(_env_file=None, **values)
    return _make


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)
