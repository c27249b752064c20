"""FastAPI dependency providers for the store and services."""

from fastapi import Depends, Request

from agentchat.cli.config import get_config
from agentchat.services.contact_service import ContactService
from agentchat.services.conversation_service import ConversationService
from agentchat.services.conversation_store import ConversationStore
from agentchat.services.turn_orchestrator import TurnOrchestrator


def get_store(request: Request) -> ConversationStore:
    """Return the store created by the application lifespan."""
    return request.app.state.store


def get_contact_service(store: ConversationStore = Depends(get_store)) -> ContactService:
    return ContactService(store)


def get_conversation_service(store: ConversationStore = Depends(get_store)) -> ConversationService:
    cbk = get_config().chatbotkit
    return ConversationService(
        store,
        allowed_bot_ids=cbk.bot_ids,
        page_size=cbk.conversation_page_size,
    )


def get_turn_orchestrator(store: ConversationStore = Depends(get_store)) -> TurnOrchestrator:
    return TurnOrchestrator(store, persona=get_config().persona)
