"""agentchat: conversational front end for remotely hosted AI agents."""

__version__ = "0.1.0"
