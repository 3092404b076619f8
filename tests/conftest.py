"""Pytest fixtures."""

import pytest
from fastapi.testclient import TestClient

from smartguide.relay.main import app
from smartguide.relay.state import relay_state


@pytest.fixture(autouse=True)
def reset_relay_state():
    """Each test starts with an empty relay."""
    relay_state.reset()
    yield
    relay_state.reset()


@pytest.fixture
def client():
    """Test client for the development relay."""
    with TestClient(app) as c:
        yield c
