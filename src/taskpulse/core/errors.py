# src/taskpulse/core/errors.py

"""
Error taxonomy.

- RemoteCallFailure: any rejected call to the authoritative store. Adapters raise it
  at the transport boundary so nothing downstream inspects raw exception shapes.
- NotFoundLocally: update/delete of an id the in-memory collection does not hold.
  This is a caller bug, not a transient condition, so it propagates.

Malformed repeat policies have no error type: they decode to NO_REPEAT.
"""

from __future__ import annotations

SYNC_FAILED_MESSAGE = "Failed to sync offline changes"


class RemoteCallFailure(Exception):
    def __init__(self, operation: str, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.operation = operation
        self.message = message
        self.cause = cause

    @classmethod
    def wrap(cls, operation: str, exc: BaseException) -> RemoteCallFailure:
        if isinstance(exc, RemoteCallFailure):
            return exc
        message = str(exc).strip() or exc.__class__.__name__
        return cls(operation, message, exc)

    def __repr__(self) -> str:
        return f"RemoteCallFailure(operation={self.operation!r}, message={self.message!r})"


class NotFoundLocally(LookupError):
    def __init__(self, entity_id: str) -> None:
        super().__init__(f"Entity {entity_id!r} is not in the local collection")
        self.entity_id = entity_id


def friendly_error_message(failure: RemoteCallFailure) -> str:
    """
    Map a failure to short user-facing text.

    Validation messages are kept verbatim since they are already written for users.
    """
    raw = failure.message or ""
    low = raw.lower()
    op = failure.operation or "complete the request"

    if "validation" in low or "invalid" in low:
        return raw
    if "database" in low or "sqlite" in low:
        return "Database error occurred. Please try again."
    if "not found" in low:
        return "The requested item was not found."
    if "lock" in low or "permission" in low:
        return "Unable to access the resource. Please try again."
    if "network" in low or "connection" in low:
        return "Network error. Please check your connection and try again."
    if "timeout" in low or "timed out" in low:
        return "The request took too long to complete. Please try again."
    if not raw:
        return f"Failed to {op}. Please try again."
    return f"Failed to {op}: {raw}"
