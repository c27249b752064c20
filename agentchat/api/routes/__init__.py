"""FastAPI route modules.

Exports all route modules for inclusion in the main application.
"""

from agentchat.api.routes import bots, contacts, conversations

__all__ = [
    "bots",
    "contacts",
    "conversations",
]
