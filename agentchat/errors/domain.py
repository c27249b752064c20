"""Typed domain exceptions for API error mapping.

Every exception carries an E-XXXX code from the registry so routes and
exception handlers can map it to an HTTP status without string matching.

Usage:
    # In service layer
    raise NotFoundError("Conversation", conversation_id)

    # In route handler / exception handler
    except DomainError as e:
        return JSONResponse(status_code=e.status_code, content=error_payload(e))
"""


class DomainError(Exception):
    """Base exception for all domain errors."""

    code = "E-4003"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)

    @property
    def context(self) -> dict:
        """Placeholder values for the registry message template."""
        return {"details": str(self)}


class UnauthorizedError(DomainError):
    """No authenticated user session. Maps to HTTP 401."""

    code = "E-5001"
    status_code = 401

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class RemoteStoreError(DomainError):
    """Failure reported by, or while talking to, the remote conversation store.

    Attributes:
        operation: Store operation that failed (e.g. 'conversation.create').
        http_status: HTTP status returned by the store, None for transport errors.
        timed_out: True when the call exceeded its timeout.
    """

    status_code = 502

    def __init__(
        self,
        operation: str,
        message: str,
        http_status: int | None = None,
        timed_out: bool = False,
    ) -> None:
        super().__init__(f"{operation}: {message}")
        self.operation = operation
        self.http_status = http_status
        self.timed_out = timed_out
        if timed_out:
            self.code = "E-3004"
            self.status_code = 504
        elif http_status is None:
            self.code = "E-3001"
        else:
            self.code = "E-3002"

    @property
    def context(self) -> dict:
        return {"operation": self.operation, "status_code": self.http_status}


class NotFoundError(RemoteStoreError):
    """Remote resource was not found. Maps to HTTP 404."""

    def __init__(self, resource_type: str, identifier: str, operation: str = "") -> None:
        super().__init__(operation or f"{resource_type.lower()}.get", f"{resource_type} '{identifier}' not found", 404)
        self.resource_type = resource_type
        self.identifier = identifier
        self.code = "E-3003"
        self.status_code = 404

    @property
    def context(self) -> dict:
        return {"resource_type": self.resource_type, "identifier": self.identifier}


class StreamAbortedError(DomainError):
    """The client cancelled a turn while the response was streaming."""

    code = "E-4001"
    status_code = 499

    def __init__(self, message: str = "Turn aborted by client") -> None:
        super().__init__(message)
