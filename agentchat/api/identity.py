"""Authenticated user extraction from identity-provider headers.

The identity provider runs as an auth proxy in front of the API and
forwards the signed-in user's email and display name. Header names come
from the auth section of the configuration.
"""

from fastapi import Request

from agentchat.cli.config import get_config
from agentchat.services.contact_service import UserIdentity


def get_current_user(request: Request) -> UserIdentity | None:
    """FastAPI dependency returning the caller, or None without a session.

    Services reject None with UnauthorizedError before any remote call.
    """
    auth = get_config().auth
    email = request.headers.get(auth.email_header, "").strip()
    if not email:
        return None
    name = request.headers.get(auth.name_header, "").strip() or None
    return UserIdentity(email=email, name=name)
