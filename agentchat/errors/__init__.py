"""Error handling framework for agentchat.

This package provides:
- Error code registry with E-XXXX format codes
- Typed domain exceptions mapped to HTTP statuses
- Error formatting for API payloads and terminal output

Error categories:
- E-2xxx: Validation errors
- E-3xxx: Remote conversation store errors
- E-4xxx: System/internal errors
- E-5xxx: Authentication errors
"""

from agentchat.errors.domain import (
    DomainError,
    NotFoundError,
    RemoteStoreError,
    StreamAbortedError,
    UnauthorizedError,
)
from agentchat.errors.formatter import AgentChatError, error_payload, format_error
from agentchat.errors.registry import (
    ERROR_REGISTRY,
    ErrorCategory,
    ErrorCode,
    get_error,
    get_errors_by_category,
)

__all__ = [
    # Registry
    "ErrorCode",
    "ErrorCategory",
    "ERROR_REGISTRY",
    "get_error",
    "get_errors_by_category",
    # Domain exceptions
    "DomainError",
    "UnauthorizedError",
    "RemoteStoreError",
    "NotFoundError",
    "StreamAbortedError",
    # Formatter
    "AgentChatError",
    "error_payload",
    "format_error",
]
