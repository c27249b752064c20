"""Models exchanged with the remote conversation store."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class MessageType(str, Enum):
    """Message types known to the conversation store.

    Only USER and BOT messages are shown to people; the remaining types
    carry function activity and platform bookkeeping.
    """

    USER = "user"
    BOT = "bot"
    ACTIVITY = "activity"
    CONTEXT = "context"
    SYSTEM = "system"


VISIBLE_MESSAGE_TYPES = frozenset({MessageType.USER.value, MessageType.BOT.value})


class ChatMessage(BaseModel):
    """A single conversation message, as sent on the wire or stored remotely."""

    type: str = Field(..., description="Message type: user, bot, activity, ...")
    text: str = Field(default="", description="Message text")
    id: str | None = Field(None, description="Store-assigned message id")
    created_at: Any = Field(None, description="Creation timestamp as returned by the store")

    def wire(self) -> dict[str, str]:
        """Return the {type, text} form sent to completion endpoints."""
        return {"type": self.type, "text": self.text}


class BotRecord(BaseModel):
    """Agent configuration available on the platform."""

    id: str
    name: str | None = None
    description: str | None = None


class ConversationRecord(BaseModel):
    """Conversation summary as listed for a contact."""

    id: str
    name: str | None = None
    description: str | None = None
    created_at: Any = None


class FunctionDefinition(BaseModel):
    """Function the model may call during a completion."""

    name: str
    description: str
    parameters: dict[str, Any] = Field(default_factory=dict)


class FunctionCall(BaseModel):
    """A function invocation requested by the model."""

    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class CompletionRequest(BaseModel):
    """Stateless completion call: the full history is sent every time.

    Either bot_id (server-side bot configuration) or backstory plus model
    (inline persona) is set.
    """

    messages: list[ChatMessage]
    bot_id: str | None = None
    backstory: str | None = None
    model: str | None = None
    contact_id: str | None = None
    functions: list[FunctionDefinition] = Field(default_factory=list)


class CompletionEvent(BaseModel):
    """One event of a streaming completion.

    type is 'token' (data.token holds a text fragment) or 'result'
    (data.text holds the final reply; data.call, when present, asks for a
    function invocation instead).
    """

    type: str
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def call(self) -> FunctionCall | None:
        raw = self.data.get("call")
        if not isinstance(raw, dict) or not raw.get("name"):
            return None
        arguments = raw.get("arguments") or raw.get("args") or {}
        return FunctionCall(name=raw["name"], arguments=arguments if isinstance(arguments, dict) else {})
