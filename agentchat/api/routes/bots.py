"""API route listing the bots available to the user."""

from fastapi import APIRouter, Depends

from agentchat.api.dependencies import get_conversation_service
from agentchat.api.identity import get_current_user
from agentchat.api.schemas_conversations import BotListResponse, BotResponse
from agentchat.services.contact_service import UserIdentity
from agentchat.services.conversation_service import ConversationService

router = APIRouter(prefix="/bots", tags=["bots"])


@router.get("", response_model=BotListResponse)
async def list_bots(
    user: UserIdentity | None = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
) -> BotListResponse:
    """List bots, restricted to the configured allow-list when one is set."""
    bots = await service.list_bots(user)
    return BotListResponse(
        bots=[BotResponse(id=b.id, name=b.name, description=b.description) for b in bots]
    )
