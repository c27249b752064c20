"""In-memory ConversationStore for tests.

Keeps contacts, conversations and messages in dicts, counts every call,
and replays scripted completion rounds. Failures are injected per
operation through ``fail_on``.

Example:
    store = FakeConversationStore(bots=[BotRecord(id="b1", name="Helper")])
    store.script_reply("Hello there")
    contact_id = await store.ensure_contact("fp", "jane@example.com", "Jane")
"""

from collections import Counter
from collections.abc import AsyncIterator
from typing import Any

from agentchat.services.conversation_store import ConversationStore
from agentchat.services.store_models import (
    BotRecord,
    ChatMessage,
    CompletionEvent,
    CompletionRequest,
    ConversationRecord,
)


class FakeConversationStore(ConversationStore):
    """ConversationStore backed by dicts with call counting."""

    def __init__(self, bots: list[BotRecord] | None = None) -> None:
        self.bots = list(bots or [])
        self.contacts: dict[str, dict[str, Any]] = {}
        self.conversations: dict[str, dict[str, Any]] = {}
        self.messages: dict[str, list[ChatMessage]] = {}
        self.calls: Counter = Counter()
        self.created_messages: list[tuple[str, str, str]] = []
        self.completion_requests: list[CompletionRequest] = []
        self.fail_on: dict[str, Exception] = {}
        self.last_list_args: dict[str, Any] = {}
        self._rounds: list[list[CompletionEvent]] = []
        self._seq = 0
        self.closed = False

    # ------------------------------------------------------------------
    # Test controls
    # ------------------------------------------------------------------

    def script_round(self, events: list[CompletionEvent]) -> None:
        """Queue the events of one completion call."""
        self._rounds.append(events)

    def script_reply(self, text: str) -> None:
        """Queue a completion that streams text word by word and ends with it."""
        words = text.split(" ")
        tokens = [w if i == 0 else f" {w}" for i, w in enumerate(words)]
        events = [CompletionEvent(type="token", data={"token": t}) for t in tokens]
        events.append(CompletionEvent(type="result", data={"text": text}))
        self.script_round(events)

    def script_call(self, name: str, arguments: dict | None = None) -> None:
        """Queue a completion that asks for a function call."""
        self.script_round([
            CompletionEvent(type="result", data={"call": {"name": name, "arguments": arguments or {}}}),
        ])

    def _next_id(self, prefix: str) -> str:
        self._seq += 1
        return f"{prefix}-{self._seq}"

    def _check(self, operation: str) -> None:
        self.calls[operation] += 1
        if operation in self.fail_on:
            raise self.fail_on[operation]

    # ------------------------------------------------------------------
    # ConversationStore
    # ------------------------------------------------------------------

    async def ensure_contact(self, fingerprint: str, email: str, name: str) -> str:
        self._check("contact.ensure")
        contact = self.contacts.get(fingerprint)
        if contact is None:
            contact = {"id": self._next_id("contact"), "email": email, "name": name}
            self.contacts[fingerprint] = contact
        return contact["id"]

    async def list_bots(self) -> list[BotRecord]:
        self._check("bot.list")
        return list(self.bots)

    async def create_conversation(self, contact_id: str, bot_id: str | None = None) -> str:
        self._check("conversation.create")
        conversation_id = self._next_id("conv")
        self.conversations[conversation_id] = {
            "contact_id": contact_id,
            "bot_id": bot_id,
            "name": None,
            "description": None,
            "created_at": 1_700_000_000_000 + self._seq,
        }
        self.messages[conversation_id] = []
        return conversation_id

    async def update_conversation(self, conversation_id: str, name: str, description: str) -> None:
        self._check("conversation.update")
        self.conversations[conversation_id].update(name=name, description=description)

    async def delete_conversation(self, conversation_id: str) -> None:
        self._check("conversation.delete")
        self.conversations.pop(conversation_id, None)
        self.messages.pop(conversation_id, None)

    async def list_contact_conversations(
        self, contact_id: str, order: str = "desc", take: int = 50
    ) -> list[ConversationRecord]:
        self._check("contact.conversation.list")
        self.last_list_args = {"order": order, "take": take}
        records = [
            ConversationRecord(
                id=cid,
                name=c["name"],
                description=c["description"],
                created_at=c["created_at"],
            )
            for cid, c in self.conversations.items()
            if c["contact_id"] == contact_id
        ]
        records.sort(key=lambda r: r.created_at, reverse=(order == "desc"))
        return records[:take]

    async def list_messages(self, conversation_id: str) -> list[ChatMessage]:
        self._check("conversation.message.list")
        return list(self.messages.get(conversation_id, []))

    async def create_message(self, conversation_id: str, type: str, text: str) -> str:
        self._check("conversation.message.create")
        message_id = self._next_id("msg")
        self.messages.setdefault(conversation_id, []).append(
            ChatMessage(id=message_id, type=type, text=text, created_at=1_700_000_000_000 + self._seq)
        )
        self.created_messages.append((conversation_id, type, text))
        return message_id

    async def complete_stream(self, request: CompletionRequest) -> AsyncIterator[CompletionEvent]:
        self._check("conversation.complete")
        self.completion_requests.append(request)
        events = self._rounds.pop(0) if self._rounds else [
            CompletionEvent(type="token", data={"token": "OK"}),
            CompletionEvent(type="result", data={"text": "OK"}),
        ]
        for event in events:
            yield event

    async def aclose(self) -> None:
        self.closed = True
