"""Shared fixtures: the FastAPI app wired to an in-memory storage."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "api"))

import pytest
from fastapi.testclient import TestClient

from main import app
from services.auth import get_current_user
from services.memory_storage import MemoryStorage
from services.storage import get_storage


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def client(storage):
    app.dependency_overrides[get_storage] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login_as(client):
    """Authenticate every request as the given user."""
    def _login(user):
        app.dependency_overrides[get_current_user] = lambda: user
        return user
    return _login
