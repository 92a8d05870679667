"""Session state utilities."""

from .config_store import ConfigStore
from .draft_autosave import DraftAutosaveService
from .ensure_state import ensure_state, reset_state
from .session_store import InMemoryKeyValueStore, JsonFileKeyValueStore, SessionStore

__all__ = [
    "ConfigStore",
    "DraftAutosaveService",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "SessionStore",
    "ensure_state",
    "reset_state",
]
