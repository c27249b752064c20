"""Pydantic schemas for the chat API.

Defines the request/response contracts for contacts, bots, conversation
history and the streaming turn endpoint.
"""

from typing import Literal

from pydantic import BaseModel, Field


class EnsureContactResponse(BaseModel):
    """Contact resolved for the calling user."""

    contact_id: str


class BotResponse(BaseModel):
    """A bot the user may chat with."""

    id: str
    name: str
    description: str = ""


class BotListResponse(BaseModel):
    bots: list[BotResponse]


class ConversationSummary(BaseModel):
    """A conversation as shown in the history sidebar."""

    id: str
    name: str = ""
    description: str = ""
    created_at: str | None = None


class ConversationListResponse(BaseModel):
    conversations: list[ConversationSummary]


class HistoryMessage(BaseModel):
    """A persisted user or bot message."""

    id: str | None = None
    type: Literal["user", "bot"]
    text: str
    created_at: str | None = None


class MessageListResponse(BaseModel):
    """Visible history of one conversation, in creation order."""

    conversation_id: str
    messages: list[HistoryMessage]


class TurnMessage(BaseModel):
    """A message in the history submitted with a turn."""

    type: str = Field(..., min_length=1, description="Message type: user, bot, activity, ...")
    text: str = Field(default="", description="Message text")


class CompleteTurnRequest(BaseModel):
    """Request for one chat turn.

    messages is the full history, ending with the new user message.
    Omitting contact_id runs the turn without persistence; omitting
    conversation_id starts a new conversation.
    """

    bot_id: str | None = None
    contact_id: str | None = None
    conversation_id: str | None = None
    messages: list[TurnMessage] = Field(..., min_length=1)
