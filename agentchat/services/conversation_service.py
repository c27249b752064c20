"""Read and delete operations on a user's conversations.

Every method requires an authenticated user before contacting the store.
Listings are shaped for display: bot names and conversation labels get
defaults, message history is filtered to user/bot types and timestamps are
normalized to ISO-8601 UTC strings.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from agentchat.services.contact_service import UserIdentity, require_user
from agentchat.services.conversation_store import ConversationStore
from agentchat.services.store_models import (
    VISIBLE_MESSAGE_TYPES,
    BotRecord,
    ChatMessage,
    ConversationRecord,
)

logger = logging.getLogger(__name__)

UNNAMED_BOT = "Unnamed Bot"


def normalize_timestamp(value: Any) -> str | None:
    """Render a store timestamp as an ISO-8601 UTC string with milliseconds.

    Accepts epoch milliseconds, datetime objects and ISO strings (a trailing
    'Z' is accepted). Unparseable strings and out-of-range epochs are
    returned as given.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, (int, float)):
        try:
            dt = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return str(value)
    elif isinstance(value, datetime):
        dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    else:
        text = str(value)
        try:
            dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return text
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def filter_bots(bots: list[BotRecord], allowed_ids: list[str] | None) -> list[BotRecord]:
    """Apply the bot allow-list and display defaults.

    Args:
        bots: Bots as listed by the store.
        allowed_ids: Allow-list; None or empty means every bot is visible.

    Returns:
        Visible bots in store order with name and description filled in.
    """
    allowed = set(allowed_ids or [])
    return [
        BotRecord(
            id=bot.id,
            name=bot.name or UNNAMED_BOT,
            description=bot.description or "",
        )
        for bot in bots
        if not allowed or bot.id in allowed
    ]


def visible_messages(messages: list[ChatMessage]) -> list[ChatMessage]:
    """Keep user/bot messages only, with normalized timestamps."""
    return [
        ChatMessage(
            id=m.id,
            type=m.type,
            text=m.text,
            created_at=normalize_timestamp(m.created_at),
        )
        for m in messages
        if m.type in VISIBLE_MESSAGE_TYPES
    ]


class ConversationService:
    """Bot listing and conversation history for authenticated users."""

    def __init__(
        self,
        store: ConversationStore,
        allowed_bot_ids: list[str] | None = None,
        page_size: int = 50,
    ) -> None:
        self._store = store
        self._allowed_bot_ids = allowed_bot_ids
        self._page_size = page_size

    async def list_bots(self, user: UserIdentity | None) -> list[BotRecord]:
        require_user(user)
        bots = await self._store.list_bots()
        visible = filter_bots(bots, self._allowed_bot_ids)
        logger.debug("Listed %d of %d bots", len(visible), len(bots))
        return visible

    async def list_conversations(
        self, user: UserIdentity | None, contact_id: str
    ) -> list[ConversationRecord]:
        """List the contact's conversations, newest first.

        Raises:
            UnauthorizedError: If there is no authenticated user.
            RemoteStoreError: If the store call fails.
        """
        require_user(user)
        records = await self._store.list_contact_conversations(
            contact_id, order="desc", take=self._page_size
        )
        return [
            ConversationRecord(
                id=r.id,
                name=r.name or "",
                description=r.description or "",
                created_at=normalize_timestamp(r.created_at),
            )
            for r in records
        ]

    async def fetch_messages(
        self, user: UserIdentity | None, conversation_id: str
    ) -> list[ChatMessage]:
        """Load a conversation's visible history in creation order."""
        require_user(user)
        messages = await self._store.list_messages(conversation_id)
        return visible_messages(messages)

    async def delete_conversation(self, user: UserIdentity | None, conversation_id: str) -> None:
        require_user(user)
        await self._store.delete_conversation(conversation_id)
        logger.info("Deleted conversation %s", conversation_id)
