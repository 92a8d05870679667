"""Custom exception types for the workflow orchestration layer."""

from __future__ import annotations


class WorkflowError(Exception):
    """Base exception for workflow orchestration issues."""


class SessionNotFoundError(WorkflowError):
    """Raised when a resolved session id has no persisted record."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"No persisted session for id '{session_id}'")
        self.session_id = session_id


class PersistenceWriteFailure(WorkflowError):
    """Raised when the durable session store rejects a write."""


class NavigationDesync(WorkflowError):
    """Post-transition verification found local and shared state apart."""


class NavigationTerminalFailure(WorkflowError):
    """Corrective rewrite did not converge; a hard reload is required."""


class VariantMismatch(WorkflowError):
    """The current step index does not fit the newly resolved variant."""


class InvalidSnapshot(WorkflowError):
    """Uploaded session snapshot could not be parsed."""
