"""API routes for the calling user's contact record and its conversations.

All endpoints use the /api/v1/contacts prefix.
"""

import logging

from fastapi import APIRouter, Depends

from agentchat.api.dependencies import get_contact_service, get_conversation_service
from agentchat.api.identity import get_current_user
from agentchat.api.schemas_conversations import (
    ConversationListResponse,
    ConversationSummary,
    EnsureContactResponse,
)
from agentchat.services.contact_service import ContactService, UserIdentity
from agentchat.services.conversation_service import ConversationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contacts", tags=["contacts"])


@router.post("/ensure", response_model=EnsureContactResponse)
async def ensure_contact(
    user: UserIdentity | None = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
) -> EnsureContactResponse:
    """Create or resolve the contact for the calling user.

    Idempotent: every call for the same email returns the same id.
    """
    contact_id = await service.ensure_contact(user)
    return EnsureContactResponse(contact_id=contact_id)


@router.get("/{contact_id}/conversations", response_model=ConversationListResponse)
async def list_conversations(
    contact_id: str,
    user: UserIdentity | None = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationListResponse:
    """List the contact's conversations, newest first.

    Args:
        contact_id: Contact whose conversations are listed.
        user: Authenticated caller (injected).
        service: ConversationService (injected).

    Returns:
        Conversation summaries with name and description labels.
    """
    records = await service.list_conversations(user, contact_id)
    return ConversationListResponse(
        conversations=[
            ConversationSummary(
                id=r.id,
                name=r.name,
                description=r.description,
                created_at=r.created_at,
            )
            for r in records
        ]
    )
