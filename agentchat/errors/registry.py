"""Error code registry with E-XXXX format codes.

This module defines the error code system for agentchat, organizing errors
into categories:
- E-2xxx: Validation errors
- E-3xxx: Remote conversation store errors
- E-4xxx: System/internal errors
- E-5xxx: Authentication errors

Each error includes a code, title, message template, and remediation steps.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCategory(str, Enum):
    """Categories for error codes."""

    VALIDATION = "validation"  # E-2xxx: Validation errors
    REMOTE_STORE = "remote_store"  # E-3xxx: Remote store errors
    SYSTEM = "system"  # E-4xxx: System/internal errors
    AUTH = "auth"  # E-5xxx: Authentication errors


@dataclass
class ErrorCode:
    """Definition of an error code with metadata.

    Attributes:
        code: Error code in E-XXXX format.
        category: Error category for grouping.
        title: Short title for display.
        message_template: Message with {placeholders} for context.
        remediation: Action user should take to resolve.
        is_retryable: Whether the operation can be retried without user action.
    """

    code: str
    category: ErrorCategory
    title: str
    message_template: str
    remediation: str
    is_retryable: bool = False


ERROR_REGISTRY: dict[str, ErrorCode] = {
    # Validation errors (E-2xxx)
    "E-2001": ErrorCode(
        code="E-2001",
        category=ErrorCategory.VALIDATION,
        title="Invalid Turn Request",
        message_template="The chat turn request is invalid: {details}",
        remediation="Send at least one message with a type and text.",
    ),
    # Remote store errors (E-3xxx)
    "E-3001": ErrorCode(
        code="E-3001",
        category=ErrorCategory.REMOTE_STORE,
        title="Conversation Store Unavailable",
        message_template="The conversation store did not respond during '{operation}'.",
        remediation="Wait a moment and retry. Check the platform status if the issue persists.",
        is_retryable=True,
    ),
    "E-3002": ErrorCode(
        code="E-3002",
        category=ErrorCategory.REMOTE_STORE,
        title="Conversation Store Rejected Request",
        message_template="The conversation store rejected '{operation}' (status {status_code}).",
        remediation="Check the platform credential and the request parameters.",
    ),
    "E-3003": ErrorCode(
        code="E-3003",
        category=ErrorCategory.REMOTE_STORE,
        title="Resource Not Found",
        message_template="{resource_type} '{identifier}' not found.",
        remediation="Refresh the conversation list; the item may have been deleted.",
    ),
    "E-3004": ErrorCode(
        code="E-3004",
        category=ErrorCategory.REMOTE_STORE,
        title="Conversation Store Timeout",
        message_template="The conversation store timed out during '{operation}'.",
        remediation="Retry the operation. No automatic retry is performed.",
        is_retryable=True,
    ),
    # System errors (E-4xxx)
    "E-4001": ErrorCode(
        code="E-4001",
        category=ErrorCategory.SYSTEM,
        title="Turn Aborted",
        message_template="The chat turn was aborted before the response completed.",
        remediation="Send the message again to get a full response.",
        is_retryable=True,
    ),
    "E-4002": ErrorCode(
        code="E-4002",
        category=ErrorCategory.SYSTEM,
        title="Configuration Error",
        message_template="Configuration problem: {details}",
        remediation="Check agentchat.yaml and the CHATBOTKIT_* environment variables.",
    ),
    "E-4003": ErrorCode(
        code="E-4003",
        category=ErrorCategory.SYSTEM,
        title="Internal Error",
        message_template="Unexpected error while handling the request: {details}",
        remediation="Retry the request. Check the server logs if the issue persists.",
    ),
    # Auth errors (E-5xxx)
    "E-5001": ErrorCode(
        code="E-5001",
        category=ErrorCategory.AUTH,
        title="Unauthorized",
        message_template="No authenticated user session.",
        remediation="Sign in through the identity provider and retry.",
    ),
}


def get_error(code: str) -> ErrorCode | None:
    """Get error definition by code.

    Args:
        code: Error code in E-XXXX format.

    Returns:
        ErrorCode if found, None otherwise.
    """
    return ERROR_REGISTRY.get(code)


def get_errors_by_category(category: ErrorCategory) -> list[ErrorCode]:
    """Get all errors in a category.

    Args:
        category: The error category to filter by.

    Returns:
        List of ErrorCode objects in the specified category.
    """
    return [e for e in ERROR_REGISTRY.values() if e.category == category]
