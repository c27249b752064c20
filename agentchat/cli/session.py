"""Client-side chat session state machine.

SessionState is an immutable value; every transition is a pure function
(state, event) -> state. SessionController performs the remote calls
through an AgentChatClient and applies the transitions.

The transcript shown to the user is restored_messages followed by
live_messages. The restored buffer is only ever replaced wholesale, and
every switch of conversation increments the epoch, which discards the live
buffer. Events from a turn started in an older epoch are ignored, so a
message streamed for conversation A can never surface after switching to B.

Example:
    async with HttpClient(api_url, email=email) as client:
        controller = SessionController(client)
        await controller.resolve_contact()
        await controller.load_bots()
        async for event in controller.submit_turn("Hello"):
            ...
"""

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, replace

from agentchat.cli.protocol import (
    AgentChatClient,
    AgentChatClientError,
    BotSummary,
    ConversationSummary,
    Message,
    TurnEvent,
)

logger = logging.getLogger(__name__)

VISIBLE_TYPES = ("user", "bot")


@dataclass(frozen=True)
class SessionState:
    """Serializable state of one chat session.

    Attributes:
        bot_id: Selected bot, None for the inline persona.
        contact_id: Resolved contact, None until resolved (turns then run
            without persistence).
        active_conversation_id: Conversation the next turn continues.
        restored_messages: History loaded for the active conversation;
            None for a fresh conversation.
        live_messages: Messages sent and received since the last switch.
        epoch: Incremented on every conversation switch.
        history_revision: Incremented when the conversation list may have
            changed and should be reloaded.
    """

    bot_id: str | None = None
    contact_id: str | None = None
    active_conversation_id: str | None = None
    restored_messages: tuple[Message, ...] | None = None
    live_messages: tuple[Message, ...] = ()
    epoch: int = 0
    history_revision: int = 0

    @property
    def transcript(self) -> tuple[Message, ...]:
        """Every message of the current conversation, oldest first."""
        return (self.restored_messages or ()) + self.live_messages

    @property
    def visible_transcript(self) -> tuple[Message, ...]:
        return tuple(m for m in self.transcript if m.type in VISIBLE_TYPES)


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def select_conversation(
    state: SessionState, conversation_id: str, messages: list[Message]
) -> SessionState:
    """Switch to an existing conversation with its loaded history."""
    return replace(
        state,
        active_conversation_id=conversation_id,
        restored_messages=tuple(messages),
        live_messages=(),
        epoch=state.epoch + 1,
    )


def new_conversation(state: SessionState) -> SessionState:
    """Start a fresh conversation."""
    return replace(
        state,
        active_conversation_id=None,
        restored_messages=None,
        live_messages=(),
        epoch=state.epoch + 1,
    )


def conversation_deleted(state: SessionState, conversation_id: str) -> SessionState:
    """Apply a deletion; deleting the active conversation starts a fresh one."""
    state = replace(state, history_revision=state.history_revision + 1)
    if conversation_id == state.active_conversation_id:
        return new_conversation(state)
    return state


def select_bot(state: SessionState, bot_id: str | None) -> SessionState:
    return replace(state, bot_id=bot_id)


def contact_resolved(state: SessionState, contact_id: str) -> SessionState:
    return replace(state, contact_id=contact_id, history_revision=state.history_revision + 1)


def outgoing_messages(state: SessionState, user_message: Message) -> list[Message]:
    """History sent with a turn: restored, then live, then the new message."""
    return list(state.transcript) + [user_message]


def append_live(state: SessionState, epoch: int, message: Message) -> SessionState:
    """Append a live message if it belongs to the current epoch."""
    if epoch != state.epoch:
        return state
    return replace(state, live_messages=state.live_messages + (message,))


def retract_live(state: SessionState, epoch: int, message: Message) -> SessionState:
    """Remove message from the end of the live buffer (a turn that failed)."""
    if epoch != state.epoch or not state.live_messages or state.live_messages[-1] != message:
        return state
    return replace(state, live_messages=state.live_messages[:-1])


def adopt_conversation(state: SessionState, epoch: int, conversation_id: str) -> SessionState:
    """Adopt the conversation id reported by a turn of the current epoch."""
    if epoch != state.epoch or state.active_conversation_id == conversation_id:
        return state
    return replace(state, active_conversation_id=conversation_id)


def response_completed(state: SessionState) -> SessionState:
    return replace(state, history_revision=state.history_revision + 1)


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------


class SessionController:
    """Drives a SessionState against an AgentChatClient.

    Failures while resolving the contact, listing bots or loading history
    degrade the affected surface (no contact, empty bot list, unchanged
    conversation) instead of ending the session.
    """

    def __init__(self, client: AgentChatClient, state: SessionState | None = None) -> None:
        self.client = client
        self.state = state or SessionState()
        self.bots: list[BotSummary] = []
        self.bot_error: str | None = None
        self.conversations: list[ConversationSummary] = []
        self.pending_input: str | None = None

    async def resolve_contact(self) -> str | None:
        try:
            contact_id = await self.client.ensure_contact()
        except AgentChatClientError as e:
            logger.error("Failed to ensure contact: %s", e)
            return None
        self.state = contact_resolved(self.state, contact_id)
        return contact_id

    async def load_bots(self) -> list[BotSummary]:
        """Load bots and auto-select the first one when none is selected."""
        try:
            self.bots = await self.client.list_bots()
            self.bot_error = None
        except AgentChatClientError as e:
            logger.error("Failed to load bots: %s", e)
            self.bots = []
            self.bot_error = "Failed to load bots"
            return []
        if self.bots and self.state.bot_id is None:
            self.state = select_bot(self.state, self.bots[0].id)
        return self.bots

    def choose_bot(self, bot_id: str | None) -> None:
        self.state = select_bot(self.state, bot_id)

    async def refresh_conversations(self) -> list[ConversationSummary]:
        if not self.state.contact_id:
            self.conversations = []
            return []
        try:
            self.conversations = await self.client.list_conversations(self.state.contact_id)
        except AgentChatClientError as e:
            logger.error("Failed to load conversations: %s", e)
            self.conversations = []
        return self.conversations

    async def select_conversation(self, conversation_id: str) -> bool:
        """Load a conversation's history and switch to it.

        Returns:
            False (state unchanged) when the history could not be loaded.
        """
        try:
            messages = await self.client.get_messages(conversation_id)
        except AgentChatClientError as e:
            logger.error("Failed to load conversation %s: %s", conversation_id, e)
            return False
        self.state = select_conversation(self.state, conversation_id, messages)
        return True

    def new_conversation(self) -> None:
        self.state = new_conversation(self.state)

    async def delete_conversation(self, conversation_id: str) -> bool:
        try:
            await self.client.delete_conversation(conversation_id)
        except AgentChatClientError as e:
            logger.error("Failed to delete conversation %s: %s", conversation_id, e)
            return False
        self.state = conversation_deleted(self.state, conversation_id)
        self.conversations = [c for c in self.conversations if c.id != conversation_id]
        return True

    async def submit_turn(self, text: str) -> AsyncIterator[TurnEvent]:
        """Send a user message and stream the turn's events.

        The user message joins the live buffer immediately. When the turn
        fails before any reply it is taken back out and kept in
        pending_input so it can be resent. A failure after a reply keeps
        both in the transcript and offers no resend, since the server may
        already hold the user message.
        """
        user_message = Message(type="user", text=text)
        epoch = self.state.epoch
        snapshot = self.state
        messages = outgoing_messages(snapshot, user_message)
        self.state = append_live(self.state, epoch, user_message)
        self.pending_input = None
        failed = False

        try:
            async for event in self.client.complete_turn(
                messages,
                bot_id=snapshot.bot_id,
                contact_id=snapshot.contact_id,
                conversation_id=snapshot.active_conversation_id,
            ):
                if event.event_type == "conversation" and event.data.get("id"):
                    self.state = adopt_conversation(self.state, epoch, event.data["id"])
                elif event.event_type == "message":
                    reply = Message(type=event.data.get("type", "bot"), text=event.data.get("text", ""))
                    self.state = append_live(self.state, epoch, reply)
                elif event.event_type == "error":
                    failed = True
                yield event
        except AgentChatClientError:
            failed = True
            raise
        finally:
            if failed:
                retracted = retract_live(self.state, epoch, user_message)
                if retracted is not self.state:
                    self.state = retracted
                    self.pending_input = text
            self.state = response_completed(self.state)
