"""Abstract boundary over the remote conversation store.

The store owns every persisted record (contacts, bots, conversations and
messages) and hosts model execution. Concrete bindings implement exactly
the operations below; tests substitute an in-memory implementation.

Example implementation:
    class ChatBotKitStore(ConversationStore):
        async def ensure_contact(self, fingerprint, email, name) -> str:
            # POST /contact/ensure
            ...
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from agentchat.services.store_models import (
    BotRecord,
    ChatMessage,
    CompletionEvent,
    CompletionRequest,
    ConversationRecord,
)


class ConversationStore(ABC):
    """Remote conversation store operations.

    Every method raises RemoteStoreError (or its NotFoundError subclass)
    on failure. Implementations never retry.
    """

    @abstractmethod
    async def ensure_contact(self, fingerprint: str, email: str, name: str) -> str:
        """Idempotently upsert the contact keyed by fingerprint.

        Returns:
            Contact id; the same id for every call with the same fingerprint.
        """
        ...

    @abstractmethod
    async def list_bots(self) -> list[BotRecord]:
        """List every bot configured on the platform."""
        ...

    @abstractmethod
    async def create_conversation(self, contact_id: str, bot_id: str | None = None) -> str:
        """Create a conversation owned by contact_id.

        Returns:
            New conversation id.
        """
        ...

    @abstractmethod
    async def update_conversation(self, conversation_id: str, name: str, description: str) -> None:
        """Replace the conversation's name and description labels."""
        ...

    @abstractmethod
    async def delete_conversation(self, conversation_id: str) -> None:
        """Delete a conversation and, by cascade, its messages."""
        ...

    @abstractmethod
    async def list_contact_conversations(
        self, contact_id: str, order: str = "desc", take: int = 50
    ) -> list[ConversationRecord]:
        """List a contact's conversations ordered by creation time."""
        ...

    @abstractmethod
    async def list_messages(self, conversation_id: str) -> list[ChatMessage]:
        """List every message of a conversation in creation order."""
        ...

    @abstractmethod
    async def create_message(self, conversation_id: str, type: str, text: str) -> str:
        """Append a message to a conversation.

        Returns:
            New message id.
        """
        ...

    @abstractmethod
    def complete_stream(self, request: CompletionRequest) -> AsyncIterator[CompletionEvent]:
        """Run one stateless completion and stream its events."""
        ...

    async def aclose(self) -> None:
        """Release transport resources. No-op by default."""
        return None
