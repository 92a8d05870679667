"""Core package for configuration merging, seeds and error types."""

from .errors import (
    InvalidSnapshot,
    NavigationDesync,
    NavigationTerminalFailure,
    PersistenceWriteFailure,
    SessionNotFoundError,
    VariantMismatch,
    WorkflowError,
)
from .merge import deep_merge, get_in, merge_config

__all__ = [
    "InvalidSnapshot",
    "NavigationDesync",
    "NavigationTerminalFailure",
    "PersistenceWriteFailure",
    "SessionNotFoundError",
    "VariantMismatch",
    "WorkflowError",
    "deep_merge",
    "get_in",
    "merge_config",
]
