"""Pytest fixtures for API tests.

Provides a TestClient whose application uses an in-memory conversation
store, and the identity headers the auth proxy would forward.
"""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from agentchat.api.main import app
from agentchat.api.middleware.auth import reset_rate_limiter
from tests.helpers import FakeConversationStore


@pytest.fixture(autouse=True)
def _reset_sse_app_status():
    """Drop sse_starlette's exit event so each TestClient loop creates its own."""
    import sse_starlette.sse as sse

    status = getattr(sse, "AppStatus", None)
    if status is not None and hasattr(status, "should_exit_event"):
        status.should_exit_event = None
    yield


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter state between tests."""
    reset_rate_limiter()
    yield
    reset_rate_limiter()


@pytest.fixture
def client(fake_store: FakeConversationStore) -> Generator[TestClient, None, None]:
    """TestClient with the fake store installed before startup.

    Yields:
        TestClient configured for testing.
    """
    app.state.store = fake_store
    with TestClient(app) as c:
        yield c
    app.state.store = None


@pytest.fixture
def identity() -> dict[str, str]:
    """Headers the auth proxy forwards for a signed-in user."""
    return {"X-Forwarded-Email": "jane.doe@example.com", "X-Forwarded-User": "Jane Doe"}
