"""
todosync Errors — Failure Taxonomy
===================================
Every failure the sync core can report derives from SyncError.

    ValidationError   — malformed input, rejected before any mutation
    UnknownTaskError  — a patch names a task the store does not hold
    PersistenceError  — durable storage could not be written or read
    TransportError    — the client could not talk to the server
"""

from __future__ import annotations

from typing import Any


class SyncError(Exception):
    """Base class for all todosync errors."""
    pass


class ValidationError(SyncError):
    """Raised when a request body or stored document has the wrong shape."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.errors = errors or []


class UnknownTaskError(SyncError):
    """A patch targets a task id that is not in the collection.

    Recorded per patch by the merger; it never aborts a batch.
    """

    def __init__(self, patch):
        super().__init__(f"Unknown task '{patch.todo_id}' for patch on '{patch.key}'")
        self.patch = patch

    def to_warning(self) -> dict:
        return {
            "todoId": self.patch.todo_id,
            "key": self.patch.key,
            "reason": "unknown-task",
        }


class PersistenceError(SyncError):
    """Durable storage I/O failed. In-memory state is left untouched."""
    pass


class TransportError(SyncError):
    """The sync client could not complete a request to the server."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status
