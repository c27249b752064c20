"""Identity checks and contact resolution against the conversation store.

The authenticated user arrives from the identity provider on every request.
It is never stored locally: the store keeps a Contact keyed by the user's
fingerprint, and "ensure" upserts it idempotently.

Example:
    resolver = ContactService(store)
    contact_id = await resolver.ensure_contact(UserIdentity(email="jane@example.com", name="Jane"))
"""

import logging
from dataclasses import dataclass

from agentchat.errors import UnauthorizedError
from agentchat.services.conversation_store import ConversationStore
from agentchat.services.fingerprint import derive_fingerprint
from agentchat.utils.redaction import mask_email

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserIdentity:
    """Authenticated user as supplied by the identity provider."""

    email: str
    name: str | None = None


def require_user(user: UserIdentity | None) -> UserIdentity:
    """Return the user, or fail when there is no authenticated session.

    Raises:
        UnauthorizedError: If user is missing or carries no email.
    """
    if user is None or not user.email:
        raise UnauthorizedError()
    return user


class ContactService:
    """Resolves authenticated users to contact records in the store."""

    def __init__(self, store: ConversationStore) -> None:
        self._store = store

    async def ensure_contact(self, user: UserIdentity | None) -> str:
        """Ensure a contact exists for the user and return its id.

        Args:
            user: Authenticated user, or None when there is no session.

        Returns:
            Store-assigned contact id. Repeated calls for the same email
            (in any letter case) return the same id.

        Raises:
            UnauthorizedError: If there is no authenticated user.
            RemoteStoreError: If the store call fails.
        """
        user = require_user(user)
        fingerprint = derive_fingerprint(user.email)
        contact_id = await self._store.ensure_contact(
            fingerprint=fingerprint,
            email=user.email,
            name=user.name or "",
        )
        logger.info("Resolved contact %s for %s", contact_id, mask_email(user.email))
        return contact_id
