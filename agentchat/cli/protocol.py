"""AgentChatClient protocol and CLI data models.

Defines the interface the chat session controller talks to. HttpClient
implements it against a running API; tests substitute an in-memory fake.
"""

from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(frozen=True)
class BotSummary:
    """A selectable bot.

    Aligned with agentchat/api/schemas_conversations.py:BotResponse.
    """

    id: str
    name: str
    description: str = ""

    @classmethod
    def from_api(cls, data: dict) -> "BotSummary":
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            description=data.get("description") or "",
        )


@dataclass(frozen=True)
class ConversationSummary:
    """A conversation in the history sidebar."""

    id: str
    name: str = ""
    description: str = ""
    created_at: str | None = None

    @classmethod
    def from_api(cls, data: dict) -> "ConversationSummary":
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            description=data.get("description") or "",
            created_at=data.get("created_at"),
        )


@dataclass(frozen=True)
class Message:
    """A chat message held by the client (restored or live)."""

    type: str
    text: str
    id: str | None = None
    created_at: str | None = None

    @classmethod
    def from_api(cls, data: dict) -> "Message":
        return cls(
            type=data["type"],
            text=data.get("text") or "",
            id=data.get("id"),
            created_at=data.get("created_at"),
        )

    def wire(self) -> dict[str, str]:
        return {"type": self.type, "text": self.text}


@dataclass
class TurnEvent:
    """One event of a streamed turn: conversation, token, message, error or done."""

    event_type: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class HealthStatus:
    """API health check response."""

    status: str
    version: str
    uptime_seconds: int


class AgentChatClientError(Exception):
    """Error from the agentchat API.

    Attributes:
        message: Human-readable error message.
        status_code: HTTP status, None for transport failures.
        error_code: E-XXXX code when the API supplied one.
    """

    def __init__(self, message: str, status_code: int | None = None, error_code: str | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code


class AgentChatClient(Protocol):
    """Protocol for backends the chat session can drive."""

    async def ensure_contact(self) -> str:
        """Resolve the calling user's contact id."""
        ...

    async def list_bots(self) -> list[BotSummary]:
        ...

    async def list_conversations(self, contact_id: str) -> list[ConversationSummary]:
        ...

    async def get_messages(self, conversation_id: str) -> list[Message]:
        """Visible history of a conversation, in creation order."""
        ...

    async def delete_conversation(self, conversation_id: str) -> None:
        ...

    def complete_turn(
        self,
        messages: list[Message],
        bot_id: str | None,
        contact_id: str | None,
        conversation_id: str | None,
    ) -> AsyncIterator[TurnEvent]:
        """Run one turn and stream its events."""
        ...

    async def health(self) -> HealthStatus:
        ...
