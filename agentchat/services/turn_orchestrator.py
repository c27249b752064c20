"""Server-side turn protocol: resolve, stream, persist.

A turn is stateless on the wire (the client resends the full history) but
is reconciled against a conversation record held by the store:

1. begin_turn:  create the conversation on the first turn of a session
                that has a contact and no conversation id.
2. streaming:   forward the history to the model, pass tokens through and
                run local function calls until the model replies.
3. end_turn:    persist the messages the turn produced, then relabel the
                conversation from its first user messages.

stream_turn() drives all three phases and yields SSE-compatible event
dicts ({"event": ..., "data": ...}).

Example:
    orchestrator = TurnOrchestrator(store, persona=config.persona)
    ctx = TurnContext(user=user, contact_id=cid, messages=[ChatMessage(type="user", text="Hi")])
    async for event in orchestrator.stream_turn(ctx):
        ...
"""

import asyncio
import json
import logging
import time
from collections.abc import AsyncIterator
from contextlib import aclosing
from dataclasses import dataclass, field
from enum import Enum

from agentchat.cli.config import PersonaConfig
from agentchat.errors import RemoteStoreError
from agentchat.services.agent_functions import completion_functions, invoke_function
from agentchat.services.contact_service import UserIdentity, require_user
from agentchat.services.conversation_store import ConversationStore
from agentchat.services.store_models import ChatMessage, CompletionRequest, MessageType

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 80
DESCRIPTION_MAX_LENGTH = 200
LABEL_USER_MESSAGES = 3
PLACEHOLDER_NAME = "New conversation"
MAX_FUNCTION_ROUNDS = 5


class TurnState(str, Enum):
    """Lifecycle of one turn."""

    IDLE = "idle"
    RESOLVING = "resolving"
    STREAMING = "streaming"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class TurnContext:
    """Inputs of one turn as submitted by the client.

    Attributes:
        user: Authenticated user, None when there is no session.
        messages: Full history including the new user message.
        bot_id: Remote bot configuration; None selects the inline persona.
        contact_id: Owning contact; None runs the turn without persistence.
        conversation_id: Conversation to resume; None creates one.
    """

    user: UserIdentity | None
    messages: list[ChatMessage]
    bot_id: str | None = None
    contact_id: str | None = None
    conversation_id: str | None = None


@dataclass
class TurnHandle:
    """Per-turn state shared between the protocol phases."""

    context: TurnContext
    conversation_id: str | None = None
    state: TurnState = TurnState.IDLE
    persisted_count: int = 0
    aborted: bool = False
    started_at: float = field(default_factory=time.monotonic)


@dataclass(frozen=True)
class ConversationUpdate:
    """Label written to the conversation after a turn."""

    id: str
    name: str
    description: str

    def to_event_data(self) -> dict:
        return {"id": self.id, "name": self.name, "description": self.description}


def derive_label(messages: list[ChatMessage]) -> tuple[str, str]:
    """Derive (name, description) from the first user messages.

    Joins the text of up to three user messages with spaces; the name is
    the first 80 characters (or the placeholder when there is no user
    text) and the description the first 200 characters.
    """
    texts = [m.text for m in messages if m.type == MessageType.USER.value][:LABEL_USER_MESSAGES]
    joined = " ".join(texts)
    name = joined[:NAME_MAX_LENGTH] or PLACEHOLDER_NAME
    description = joined[:DESCRIPTION_MAX_LENGTH]
    return name, description


def new_messages_since(submitted_count: int, final_messages: list[ChatMessage]) -> list[ChatMessage]:
    """Return the messages a turn added to the history.

    The boundary sits one before the end of the submitted history, so the
    user message that opened the turn is persisted together with
    everything the model produced after it.
    """
    return final_messages[max(submitted_count - 1, 0):]


def _event(event: str, data: dict) -> dict:
    return {"event": event, "data": data}


class TurnOrchestrator:
    """Runs chat turns against a ConversationStore."""

    def __init__(
        self,
        store: ConversationStore,
        persona: PersonaConfig | None = None,
        max_function_rounds: int = MAX_FUNCTION_ROUNDS,
    ) -> None:
        self._store = store
        self._persona = persona or PersonaConfig()
        self._max_function_rounds = max_function_rounds

    # ------------------------------------------------------------------
    # Protocol phases
    # ------------------------------------------------------------------

    async def begin_turn(self, context: TurnContext) -> TurnHandle:
        """Authorize the turn and resolve its conversation.

        Raises:
            UnauthorizedError: Before any remote call when there is no user.
            RemoteStoreError: If creating the conversation fails.
        """
        require_user(context.user)
        handle = TurnHandle(context=context, conversation_id=context.conversation_id)
        handle.state = TurnState.RESOLVING

        if not context.contact_id:
            logger.debug("No contact on turn; persistence skipped")
            return handle

        if not handle.conversation_id:
            try:
                handle.conversation_id = await self._store.create_conversation(
                    context.contact_id, bot_id=context.bot_id
                )
            except Exception:
                handle.state = TurnState.FAILED
                raise
            logger.info(
                "Created conversation %s for contact %s",
                handle.conversation_id,
                context.contact_id,
            )
        return handle

    async def end_turn(
        self, handle: TurnHandle, final_messages: list[ChatMessage]
    ) -> ConversationUpdate | None:
        """Persist the turn's new messages and relabel the conversation.

        Messages are created one at a time in order. A failed label update
        is logged and tolerated; the messages already written stay.

        Returns:
            The written label, or None when nothing was persisted or the
            label update failed.

        Raises:
            RemoteStoreError: If creating a message fails.
        """
        handle.state = TurnState.PERSISTING
        if not handle.conversation_id:
            handle.state = TurnState.DONE
            return None

        new_messages = new_messages_since(len(handle.context.messages), final_messages)
        if not new_messages:
            handle.state = TurnState.DONE
            return None

        try:
            for message in new_messages:
                await self._store.create_message(handle.conversation_id, message.type, message.text)
                handle.persisted_count += 1
        except Exception:
            handle.state = TurnState.FAILED
            logger.error(
                "Persisted %d of %d messages to conversation %s before failure",
                handle.persisted_count,
                len(new_messages),
                handle.conversation_id,
            )
            raise

        name, description = derive_label(final_messages)
        try:
            await self._store.update_conversation(handle.conversation_id, name, description)
        except RemoteStoreError as e:
            logger.warning("Label update failed for conversation %s: %s", handle.conversation_id, e)
            handle.state = TurnState.DONE
            return None

        handle.state = TurnState.DONE
        return ConversationUpdate(id=handle.conversation_id, name=name, description=description)

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    async def stream_turn(
        self,
        context: TurnContext,
        abort_event: asyncio.Event | None = None,
    ) -> AsyncIterator[dict]:
        """Run a whole turn, yielding SSE-compatible events.

        Yields, in order: a 'conversation' event with the id (when the turn
        is persisted), 'token' and 'message' events from the model, and a
        final 'conversation' event with the new label.

        Setting abort_event stops reading the model stream; the messages
        completed so far (including the user's) are still persisted.

        Raises:
            UnauthorizedError: If there is no authenticated user.
            RemoteStoreError: On store failures outside the label update.
        """
        handle = await self.begin_turn(context)
        if handle.conversation_id:
            yield _event("conversation", {"id": handle.conversation_id})

        final_messages = list(context.messages)
        handle.state = TurnState.STREAMING
        try:
            async for event in self._stream_completion(handle, final_messages, abort_event):
                yield event
        except Exception:
            handle.state = TurnState.FAILED
            raise

        update = await self.end_turn(handle, final_messages)
        if update is not None:
            yield _event("conversation", update.to_event_data())

        logger.info(
            "Turn complete: conversation=%s new_messages=%d aborted=%s elapsed=%.2fs",
            handle.conversation_id,
            handle.persisted_count,
            handle.aborted,
            time.monotonic() - handle.started_at,
        )

    def build_request(self, handle: TurnHandle, messages: list[ChatMessage]) -> CompletionRequest:
        """Build the completion call for the current history.

        A selected bot carries its whole configuration server-side;
        otherwise the inline persona names the user.
        """
        ctx = handle.context
        if ctx.bot_id:
            persona: dict = {"bot_id": ctx.bot_id}
        else:
            user_name = (ctx.user.name if ctx.user else None) or "a user"
            persona = {
                "backstory": self._persona.backstory.replace("{user_name}", user_name),
                "model": self._persona.model,
            }
        return CompletionRequest(
            messages=list(messages),
            contact_id=ctx.contact_id,
            functions=completion_functions(),
            **persona,
        )

    async def _stream_completion(
        self,
        handle: TurnHandle,
        history: list[ChatMessage],
        abort_event: asyncio.Event | None,
    ) -> AsyncIterator[dict]:
        """Stream model output, appending completed messages to history."""
        for _ in range(self._max_function_rounds):
            request = self.build_request(handle, history)
            tokens: list[str] = []
            result_text: str | None = None
            call = None

            async with aclosing(self._store.complete_stream(request)) as events:
                async for event in events:
                    if abort_event is not None and abort_event.is_set():
                        handle.aborted = True
                        break
                    if event.type == "token":
                        token = str(event.data.get("token", ""))
                        tokens.append(token)
                        yield _event("token", {"token": token})
                    elif event.type == "result":
                        call = event.call
                        result_text = event.data.get("text")

            if handle.aborted:
                logger.info("Turn aborted by client after %d tokens", len(tokens))
                return

            if call is not None:
                result = await invoke_function(call)
                activity = ChatMessage(
                    type=MessageType.ACTIVITY.value,
                    text=json.dumps({"name": call.name, "args": call.arguments, "result": result}),
                )
                history.append(activity)
                yield _event("message", activity.wire())
                continue

            reply = ChatMessage(
                type=MessageType.BOT.value,
                text=result_text if result_text is not None else "".join(tokens),
            )
            history.append(reply)
            yield _event("message", reply.wire())
            return

        logger.warning(
            "Function call limit (%d rounds) reached without a reply", self._max_function_rounds
        )
