"""FastAPI routes for conversation history and streaming chat turns.

A turn runs as a background task that pushes events onto a queue; the SSE
response drains that queue. When the client disconnects mid-stream the
task is told to abort rather than cancelled, so the messages completed so
far are still persisted.

Endpoints:
    POST   /conversations/complete       — Run one turn (SSE stream)
    GET    /conversations/{id}/messages  — Visible history of a conversation
    DELETE /conversations/{id}           — Delete a conversation
"""

import asyncio
import json
import logging
import time
from typing import AsyncGenerator

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from sse_starlette.sse import EventSourceResponse

from agentchat.api.dependencies import get_conversation_service, get_turn_orchestrator
from agentchat.api.identity import get_current_user
from agentchat.api.schemas_conversations import (
    CompleteTurnRequest,
    HistoryMessage,
    MessageListResponse,
)
from agentchat.errors import AgentChatError, DomainError, error_payload
from agentchat.services.contact_service import UserIdentity, require_user
from agentchat.services.conversation_service import ConversationService
from agentchat.services.store_models import ChatMessage
from agentchat.services.turn_orchestrator import TurnContext, TurnOrchestrator
from agentchat.utils.redaction import sanitize_error_message

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/conversations", tags=["conversations"])

KEEPALIVE_SECONDS = 15.0

# Running turn tasks, with the abort signal of each.
_turn_tasks: dict[asyncio.Task, asyncio.Event] = {}


async def _run_turn(
    orchestrator: TurnOrchestrator,
    context: TurnContext,
    queue: asyncio.Queue,
    abort_event: asyncio.Event,
) -> None:
    """Run a turn and deliver its events to the queue.

    Runs as a background task. Failures become an 'error' event; 'done'
    always ends the stream.
    """
    started_at = time.perf_counter()
    first_event_at: float | None = None
    try:
        async for event in orchestrator.stream_turn(context, abort_event=abort_event):
            if first_event_at is None:
                first_event_at = time.perf_counter()
            await queue.put(event)
    except DomainError as e:
        logger.error("Turn failed (%s): %s", e.code, sanitize_error_message(str(e)))
        await queue.put({"event": "error", "data": error_payload(e)})
    except Exception as e:
        logger.exception("Unexpected turn failure")
        error = AgentChatError.from_code("E-4003", details=sanitize_error_message(str(e)))
        await queue.put({"event": "error", "data": error_payload(error)})

    await queue.put({"event": "done", "data": {}})

    elapsed = time.perf_counter() - started_at
    ttfb = (first_event_at - started_at) if first_event_at is not None else -1.0
    logger.info(
        "turn_timing marker=done_emitted conversation_id=%s aborted=%s ttfb=%.3f elapsed=%.3f",
        context.conversation_id,
        abort_event.is_set(),
        ttfb,
        elapsed,
    )


async def _event_generator(
    request: Request,
    queue: asyncio.Queue,
    abort_event: asyncio.Event,
) -> AsyncGenerator[dict, None]:
    """Generate SSE events from a turn's event queue.

    Args:
        request: FastAPI request for disconnect detection.
        queue: Async queue receiving turn events.
        abort_event: Set when the client goes away before 'done'.

    Yields:
        SSE event dictionaries.
    """
    finished = False
    try:
        while True:
            if await request.is_disconnected():
                break

            try:
                event = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
            except asyncio.TimeoutError:
                yield {"data": json.dumps({"event": "ping"})}
                continue

            if event.get("event") == "done":
                finished = True
                yield {"data": json.dumps({"event": "done", "data": {}})}
                break

            yield {
                "data": json.dumps(
                    {
                        "event": event.get("event", "unknown"),
                        "data": event.get("data", {}),
                    }
                ),
            }
    finally:
        if not finished:
            logger.info("Client disconnected mid-turn; aborting stream")
            abort_event.set()


def start_turn_task(
    orchestrator: TurnOrchestrator,
    context: TurnContext,
    queue: asyncio.Queue,
) -> asyncio.Event:
    """Start a turn in the background and return its abort signal."""
    abort_event = asyncio.Event()
    task = asyncio.create_task(_run_turn(orchestrator, context, queue, abort_event))
    _turn_tasks[task] = abort_event
    task.add_done_callback(lambda t: _turn_tasks.pop(t, None))
    return abort_event


async def shutdown_turn_runtime(timeout: float = 10.0) -> None:
    """Abort running turns and wait for them to persist what they have."""
    if not _turn_tasks:
        return
    for abort_event in _turn_tasks.values():
        abort_event.set()
    tasks = list(_turn_tasks)
    done, pending = await asyncio.wait(tasks, timeout=timeout)
    for task in pending:
        task.cancel()
    logger.info("Turn runtime shut down: %d finished, %d cancelled", len(done), len(pending))


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/complete")
async def complete_turn(
    payload: CompleteTurnRequest,
    request: Request,
    user: UserIdentity | None = Depends(get_current_user),
    orchestrator: TurnOrchestrator = Depends(get_turn_orchestrator),
) -> EventSourceResponse:
    """Run one chat turn and stream its events.

    Events: 'conversation' ({id} before any model output, then
    {id, name, description} after persisting), 'token', 'message',
    'error' and finally 'done'.

    Raises:
        UnauthorizedError: 401 before streaming when there is no user.
    """
    require_user(user)
    context = TurnContext(
        user=user,
        messages=[ChatMessage(type=m.type, text=m.text) for m in payload.messages],
        bot_id=payload.bot_id,
        contact_id=payload.contact_id,
        conversation_id=payload.conversation_id,
    )
    queue: asyncio.Queue = asyncio.Queue()
    abort_event = start_turn_task(orchestrator, context, queue)

    return EventSourceResponse(
        _event_generator(request, queue, abort_event),
        media_type="text/event-stream",
    )


@router.get("/{conversation_id}/messages", response_model=MessageListResponse)
async def get_messages(
    conversation_id: str,
    user: UserIdentity | None = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
) -> MessageListResponse:
    """Get the user/bot history of a conversation in creation order."""
    messages = await service.fetch_messages(user, conversation_id)
    return MessageListResponse(
        conversation_id=conversation_id,
        messages=[
            HistoryMessage(id=m.id, type=m.type, text=m.text, created_at=m.created_at)
            for m in messages
        ],
    )


@router.delete("/{conversation_id}", status_code=204)
async def delete_conversation(
    conversation_id: str,
    user: UserIdentity | None = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
) -> Response:
    """Delete a conversation and its messages.

    Returns:
        204 No Content.
    """
    await service.delete_conversation(user, conversation_id)
    return Response(status_code=204)
