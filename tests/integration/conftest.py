"""
Integration test fixtures
"""

import pytest
from fastapi.testclient import TestClient

from klick.api.dependencies import get_workflow
from klick.api.main import create_app


@pytest.fixture
def app(workflow):
    """API wired to the in-memory workflow from the shared fixtures."""
    app = create_app()
    app.dependency_overrides[get_workflow] = lambda: workflow
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client
