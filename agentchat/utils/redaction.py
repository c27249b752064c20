"""Redaction helpers for safe logging and error responses.

Keeps the platform credential and end-user emails out of logs and out of
error messages relayed from the conversation store.
"""

import re

# Substring patterns matched case-insensitively against dict keys
_DEFAULT_SENSITIVE_PATTERNS = frozenset({
    "secret", "token", "authorization", "api_key", "password", "credential",
})

# Keys whose entire value is redacted (regardless of content type)
_CONTAINER_KEYS = frozenset({"headers"})

_REDACTED = "***REDACTED***"

_EMAIL_PATTERN = re.compile(r"([A-Za-z0-9._%+-])[A-Za-z0-9._%+-]*@([A-Za-z0-9.-]+\.[A-Za-z]{2,})")

_SENSITIVE_KEYWORDS = r"secret|token|password|api_key|authorization|credential"
_SENSITIVE_VALUE_PATTERNS = re.compile(
    r"(?i)"
    r"(?:"
    # Authorization: Bearer <token>
    r"Authorization\s*:\s*Bearer\s+\S+"
    r"|"
    # JSON-style "key": "value"
    r'"(?:' + _SENSITIVE_KEYWORDS + r')"\s*:\s*"[^"]*"'
    r"|"
    # key=value (unquoted, consumes until whitespace/end)
    r"(?:" + _SENSITIVE_KEYWORDS + r")\s*[=:]\s*\S+"
    r")",
)


def mask_email(email: str | None) -> str:
    """Mask an email address for log output.

    Keeps the first character of the local part and the domain, so
    'jane.doe@example.com' becomes 'j***@example.com'.

    Args:
        email: Address to mask. None and empty values render as '<none>'.

    Returns:
        Masked address.
    """
    if not email:
        return "<none>"
    if "@" not in email:
        return email[:1] + "***"
    return _EMAIL_PATTERN.sub(r"\1***@\2", email)


def redact_for_logging(
    obj: dict,
    sensitive_patterns: frozenset[str] = _DEFAULT_SENSITIVE_PATTERNS,
) -> dict:
    """Redact sensitive values from a dict for safe logging/error responses.

    Args:
        obj: Dict to redact. Not mutated; a copy is returned.
        sensitive_patterns: Substring patterns whose matching keys' values
            should be replaced. Matching is case-insensitive.

    Returns:
        New dict with sensitive values replaced by '***REDACTED***' and
        email addresses masked. Handles nested dicts and lists of dicts.
    """
    result = {}
    for key, value in obj.items():
        key_lower = key.lower()
        if key_lower in _CONTAINER_KEYS or any(p in key_lower for p in sensitive_patterns):
            result[key] = _REDACTED
        elif isinstance(value, dict):
            result[key] = redact_for_logging(value, sensitive_patterns)
        elif isinstance(value, list):
            result[key] = [
                redact_for_logging(item, sensitive_patterns) if isinstance(item, dict) else item
                for item in value
            ]
        elif key_lower == "email" and isinstance(value, str):
            result[key] = mask_email(value)
        else:
            result[key] = value
    return result


def sanitize_error_message(msg: str | None, max_length: int = 500) -> str | None:
    """Sanitize an upstream error message before logging or relaying it.

    Redacts credential-looking fragments, masks emails and truncates.

    Args:
        msg: Error message to sanitize (None passes through).
        max_length: Maximum length of the sanitized message.

    Returns:
        Sanitized and truncated message, or None.
    """
    if msg is None:
        return None
    sanitized = _SENSITIVE_VALUE_PATTERNS.sub(_REDACTED, msg)
    sanitized = _EMAIL_PATTERN.sub(r"\1***@\2", sanitized)
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length - 3] + "..."
    return sanitized
