"""Test helper utilities."""

from tests.helpers.fake_store import FakeConversationStore
from tests.helpers.sse import parse_sse

__all__ = [
    "FakeConversationStore",
    "parse_sse",
]
