"""Root-level pytest fixtures for all tests.

Provides:
- Config isolation (no config files or platform env vars leak in)
- An in-memory conversation store
- Authenticated user fixtures
"""

import pytest

from agentchat.cli.config import get_config
from agentchat.services.contact_service import UserIdentity
from agentchat.services.store_models import BotRecord
from tests.helpers import FakeConversationStore

_ISOLATED_ENV_PREFIXES = ("AGENTCHAT_", "CHATBOTKIT_")


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path, monkeypatch):
    """Run every test with default configuration and an empty home."""
    import os

    for key in list(os.environ):
        if key.startswith(_ISOLATED_ENV_PREFIXES):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.chdir(tmp_path)
    get_config.cache_clear()
    yield
    get_config.cache_clear()


@pytest.fixture
def user() -> UserIdentity:
    return UserIdentity(email="jane.doe@example.com", name="Jane Doe")


@pytest.fixture
def fake_store() -> FakeConversationStore:
    return FakeConversationStore(
        bots=[
            BotRecord(id="bot-1", name="Support", description="Answers questions"),
            BotRecord(id="bot-2", name=None, description=None),
        ]
    )
