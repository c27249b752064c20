"""Error formatting utilities.

This module provides:
- AgentChatError, a registry-backed application error
- Rendering of domain errors into the API error payload
- Human-readable formatting for the CLI
"""

from dataclasses import dataclass, field

from agentchat.errors.domain import DomainError
from agentchat.errors.registry import get_error


@dataclass
class AgentChatError(Exception):
    """Application error with code, message, and context.

    Attributes:
        code: Error code in E-XXXX format.
        message: Human-readable error message.
        remediation: Action user should take to resolve.
        is_retryable: Whether the operation can be retried without user action.
        details: Additional context dictionary.
    """

    code: str
    message: str
    remediation: str
    is_retryable: bool = False
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        """Return string representation of the error."""
        return f"{self.code}: {self.message}"

    @classmethod
    def from_code(cls, code: str, **kwargs: object) -> "AgentChatError":
        """Create error from registry code with context substitution.

        Args:
            code: Error code in E-XXXX format.
            **kwargs: Context values for message template substitution.
                The special key 'details' is stored on the error when it
                is a dict rather than substituted into the template.

        Returns:
            AgentChatError instance with formatted message.
        """
        error_def = get_error(code)
        details = kwargs.get("details")
        if not error_def:
            return cls(
                code=code,
                message=f"Unknown error: {code}",
                remediation="Contact support.",
                details=details if isinstance(details, dict) else {},
            )

        message = error_def.message_template
        try:
            message = message.format(**kwargs)
        except KeyError:
            # Keep template if some placeholders are missing
            pass

        return cls(
            code=error_def.code,
            message=message,
            remediation=error_def.remediation,
            is_retryable=error_def.is_retryable,
            details=details if isinstance(details, dict) else {},
        )

    @classmethod
    def from_domain(cls, exc: DomainError) -> "AgentChatError":
        """Translate a domain exception into its registry-backed error."""
        return cls.from_code(exc.code, **exc.context)


def error_payload(exc: DomainError | AgentChatError) -> dict:
    """Build the JSON body returned by the API for an error.

    Args:
        exc: Domain exception or already-translated application error.

    Returns:
        Dict with error_code, message, remediation and retry hint.
    """
    error = exc if isinstance(exc, AgentChatError) else AgentChatError.from_domain(exc)
    return {
        "error_code": error.code,
        "message": error.message,
        "remediation": error.remediation,
        "retryable": error.is_retryable,
    }


def format_error(error: AgentChatError, include_remediation: bool = True) -> str:
    """Format error for display to user.

    Args:
        error: The AgentChatError to format.
        include_remediation: Whether to include remediation steps.

    Returns:
        Multi-line formatted string suitable for terminal display.
    """
    lines = [f"{error.code}: {error.message}"]
    if include_remediation:
        lines.append(f"  Action: {error.remediation}")
    return "\n".join(lines)
