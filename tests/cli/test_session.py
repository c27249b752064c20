"""Tests for the client-side session state machine and controller."""

import pytest

from agentchat.cli.protocol import (
    AgentChatClientError,
    BotSummary,
    ConversationSummary,
    Message,
    TurnEvent,
)
from agentchat.cli.session import (
    SessionController,
    SessionState,
    adopt_conversation,
    append_live,
    conversation_deleted,
    new_conversation,
    outgoing_messages,
    retract_live,
    select_conversation,
)

HELLO = Message(type="user", text="Hello")
REPLY = Message(type="bot", text="Hi there")


class FakeClient:
    """Scripted AgentChatClient."""

    def __init__(self):
        self.bots = [BotSummary(id="bot-1", name="Support"), BotSummary(id="bot-2", name="Sales")]
        self.histories: dict[str, list[Message]] = {}
        self.turn_events: list[TurnEvent] = []
        self.turn_error: AgentChatClientError | None = None
        self.fail: set[str] = set()
        self.turn_calls: list[dict] = []
        self.deleted: list[str] = []

    def _maybe_fail(self, op: str) -> None:
        if op in self.fail:
            raise AgentChatClientError(f"{op} failed", status_code=502)

    async def ensure_contact(self) -> str:
        self._maybe_fail("ensure_contact")
        return "contact-1"

    async def list_bots(self):
        self._maybe_fail("list_bots")
        return list(self.bots)

    async def list_conversations(self, contact_id):
        self._maybe_fail("list_conversations")
        return [ConversationSummary(id=cid) for cid in self.histories]

    async def get_messages(self, conversation_id):
        self._maybe_fail("get_messages")
        return list(self.histories[conversation_id])

    async def delete_conversation(self, conversation_id):
        self._maybe_fail("delete_conversation")
        self.deleted.append(conversation_id)

    async def complete_turn(self, messages, bot_id, contact_id, conversation_id):
        self.turn_calls.append({
            "messages": list(messages),
            "bot_id": bot_id,
            "contact_id": contact_id,
            "conversation_id": conversation_id,
        })
        for event in self.turn_events:
            yield event
        if self.turn_error is not None:
            raise self.turn_error

    async def health(self):
        raise NotImplementedError


def _turn(conversation_id: str = "conv-1", text: str = "Hi there") -> list[TurnEvent]:
    return [
        TurnEvent("conversation", {"id": conversation_id}),
        TurnEvent("token", {"token": text}),
        TurnEvent("message", {"type": "bot", "text": text}),
        TurnEvent("conversation", {"id": conversation_id, "name": "Hello", "description": "Hello"}),
        TurnEvent("done", {}),
    ]


async def _drain(controller: SessionController, text: str) -> list[TurnEvent]:
    return [event async for event in controller.submit_turn(text)]


class TestTransitions:

    def test_transcript_is_restored_then_live(self):
        state = select_conversation(SessionState(), "conv-1", [HELLO])
        state = append_live(state, state.epoch, REPLY)
        assert state.transcript == (HELLO, REPLY)

    def test_select_conversation_discards_live(self):
        state = append_live(SessionState(), 0, HELLO)
        state = select_conversation(state, "conv-2", [REPLY])
        assert state.live_messages == ()
        assert state.restored_messages == (REPLY,)
        assert state.epoch == 1

    def test_new_conversation_resets(self):
        state = select_conversation(SessionState(), "conv-1", [HELLO])
        state = new_conversation(state)
        assert state.active_conversation_id is None
        assert state.restored_messages is None
        assert state.transcript == ()

    def test_stale_epoch_events_ignored(self):
        state = SessionState()
        stale_epoch = state.epoch
        state = select_conversation(state, "conv-b", [])
        assert append_live(state, stale_epoch, REPLY) is state
        assert adopt_conversation(state, stale_epoch, "conv-a") is state

    def test_adopt_conversation(self):
        state = adopt_conversation(SessionState(), 0, "conv-9")
        assert state.active_conversation_id == "conv-9"

    def test_delete_active_starts_fresh(self):
        state = select_conversation(SessionState(), "conv-1", [HELLO])
        state = conversation_deleted(state, "conv-1")
        assert state.active_conversation_id is None
        assert state.history_revision == 1

    def test_delete_other_keeps_active(self):
        state = select_conversation(SessionState(), "conv-1", [HELLO])
        after = conversation_deleted(state, "conv-2")
        assert after.active_conversation_id == "conv-1"
        assert after.epoch == state.epoch
        assert after.history_revision == state.history_revision + 1

    def test_outgoing_merges_restored_live_and_new(self):
        state = select_conversation(SessionState(), "conv-1", [HELLO, REPLY])
        state = append_live(state, state.epoch, Message(type="user", text="Again"))
        new = Message(type="user", text="Third")
        assert [m.text for m in outgoing_messages(state, new)] == ["Hello", "Hi there", "Again", "Third"]

    def test_retract_only_matching_tail(self):
        state = append_live(SessionState(), 0, HELLO)
        assert retract_live(state, 0, REPLY) is state
        assert retract_live(state, 0, HELLO).live_messages == ()

    def test_visible_transcript_hides_activity(self):
        state = select_conversation(SessionState(), "c", [HELLO, Message(type="activity", text="{}"), REPLY])
        assert [m.type for m in state.visible_transcript] == ["user", "bot"]


class TestController:

    @pytest.mark.asyncio
    async def test_resolve_contact(self):
        controller = SessionController(FakeClient())
        assert await controller.resolve_contact() == "contact-1"
        assert controller.state.contact_id == "contact-1"

    @pytest.mark.asyncio
    async def test_resolve_contact_failure_degrades(self):
        client = FakeClient()
        client.fail.add("ensure_contact")
        controller = SessionController(client)
        assert await controller.resolve_contact() is None
        assert controller.state.contact_id is None

    @pytest.mark.asyncio
    async def test_load_bots_selects_first(self):
        controller = SessionController(FakeClient())
        await controller.load_bots()
        assert controller.state.bot_id == "bot-1"
        assert controller.bot_error is None

    @pytest.mark.asyncio
    async def test_load_bots_failure(self):
        client = FakeClient()
        client.fail.add("list_bots")
        controller = SessionController(client)
        assert await controller.load_bots() == []
        assert controller.bot_error == "Failed to load bots"
        assert controller.state.bot_id is None

    @pytest.mark.asyncio
    async def test_first_turn_adopts_conversation(self):
        client = FakeClient()
        client.turn_events = _turn("conv-1")
        controller = SessionController(client)
        await controller.resolve_contact()

        await _drain(controller, "Hello")

        assert controller.state.active_conversation_id == "conv-1"
        assert controller.state.live_messages == (HELLO, REPLY)
        assert client.turn_calls[0]["conversation_id"] is None
        assert client.turn_calls[0]["contact_id"] == "contact-1"
        assert client.turn_calls[0]["messages"] == [HELLO]

    @pytest.mark.asyncio
    async def test_second_turn_sends_history(self):
        client = FakeClient()
        client.turn_events = _turn("conv-1")
        controller = SessionController(client)
        await _drain(controller, "Hello")
        await _drain(controller, "More")

        second = client.turn_calls[1]
        assert second["conversation_id"] == "conv-1"
        assert [m.text for m in second["messages"]] == ["Hello", "Hi there", "More"]

    @pytest.mark.asyncio
    async def test_switch_mid_turn_isolates_reply(self):
        """A reply streamed for A never appears after switching to B."""
        client = FakeClient()
        client.histories["conv-b"] = [Message(type="user", text="B history")]
        client.turn_events = _turn("conv-a", "reply for A")
        controller = SessionController(client)

        async for event in controller.submit_turn("Hello A"):
            if event.event_type == "token":
                await controller.select_conversation("conv-b")

        assert controller.state.active_conversation_id == "conv-b"
        assert [m.text for m in controller.state.transcript] == ["B history"]

    @pytest.mark.asyncio
    async def test_error_event_keeps_input_for_resend(self):
        client = FakeClient()
        client.turn_events = [
            TurnEvent("error", {"error_code": "E-3001", "message": "down"}),
            TurnEvent("done", {}),
        ]
        controller = SessionController(client)
        await _drain(controller, "Hello")
        assert controller.pending_input == "Hello"
        assert controller.state.live_messages == ()

    @pytest.mark.asyncio
    async def test_client_error_reraises_and_retracts(self):
        client = FakeClient()
        client.turn_error = AgentChatClientError("Stream interrupted")
        controller = SessionController(client)
        revision = controller.state.history_revision
        with pytest.raises(AgentChatClientError):
            await _drain(controller, "Hello")
        assert controller.pending_input == "Hello"
        assert controller.state.live_messages == ()
        assert controller.state.history_revision == revision + 1

    @pytest.mark.asyncio
    async def test_error_after_reply_offers_no_resend(self):
        client = FakeClient()
        client.turn_events = [
            TurnEvent("conversation", {"id": "conv-1"}),
            TurnEvent("message", {"type": "bot", "text": "Hi there"}),
            TurnEvent("error", {"error_code": "E-3001", "message": "save failed"}),
            TurnEvent("done", {}),
        ]
        controller = SessionController(client)
        await _drain(controller, "Hello")
        assert controller.pending_input is None
        assert controller.state.live_messages == (HELLO, REPLY)

        client.turn_events = _turn(text="Again")
        await _drain(controller, "Next")
        sent = [(m.type, m.text) for m in client.turn_calls[1]["messages"]]
        assert sent == [("user", "Hello"), ("bot", "Hi there"), ("user", "Next")]
        assert sent.count(("user", "Hello")) == 1

    @pytest.mark.asyncio
    async def test_select_failure_leaves_state(self):
        client = FakeClient()
        client.fail.add("get_messages")
        controller = SessionController(client)
        before = controller.state
        assert await controller.select_conversation("conv-x") is False
        assert controller.state is before

    @pytest.mark.asyncio
    async def test_delete_active_conversation(self):
        client = FakeClient()
        client.histories["conv-1"] = [HELLO]
        controller = SessionController(client)
        await controller.resolve_contact()
        await controller.refresh_conversations()
        await controller.select_conversation("conv-1")

        assert await controller.delete_conversation("conv-1") is True
        assert client.deleted == ["conv-1"]
        assert controller.state.active_conversation_id is None
        assert controller.conversations == []

    @pytest.mark.asyncio
    async def test_refresh_without_contact(self):
        client = FakeClient()
        client.histories["conv-1"] = []
        controller = SessionController(client)
        assert await controller.refresh_conversations() == []
