"""Single owned game configuration shared by the workflow and the step editors."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from copy import deepcopy
from typing import Any, Callable, Iterator, Mapping, MutableMapping, cast

import streamlit as st

from constants.keys import ConfigFields, StateKeys
from core.merge import KNOWN_SUBTREES, get_in, merge_config
from models.session import WorkflowMirror

logger = logging.getLogger(__name__)

ConfigListener = Callable[[dict[str, Any]], None]

# The lock lives next to the configuration so every rerun shares it.
_STORE_LOCK_KEY = "workflow.config_lock"


class ConfigStore:
    """Own the game configuration and serialize every write to it.

    Editors call :meth:`apply_update` with partial patches. The ``workflow``
    sub-tree is reserved for the controller and only changes through
    :meth:`write_workflow`. Listeners receive a deep copy of the settled
    configuration after every write.
    """

    def __init__(self, session_state: MutableMapping[str, Any] | None = None) -> None:
        self._session_state = cast(
            MutableMapping[str, Any], session_state if session_state is not None else st.session_state
        )
        lock = self._session_state.get(_STORE_LOCK_KEY)
        if lock is None:
            lock = threading.RLock()
            self._session_state[_STORE_LOCK_KEY] = lock
        self._lock: threading.RLock = lock
        self._listeners: list[ConfigListener] = []
        if not isinstance(self._session_state.get(StateKeys.CONFIG), dict):
            self._session_state[StateKeys.CONFIG] = {}

    @property
    def _config(self) -> dict[str, Any]:
        return cast(dict[str, Any], self._session_state[StateKeys.CONFIG])

    @contextmanager
    def serialized(self) -> Iterator[None]:
        """Hold the update queue for a multi-step operation such as a transition."""

        with self._lock:
            yield

    def subscribe(self, listener: ConfigListener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that removes it again."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def load(self, config: Mapping[str, Any]) -> None:
        """Hydrate the store from a persisted configuration.

        Only used while mounting a session. No listeners fire because the
        data already lives in the durable store.
        """

        with self._lock:
            self._session_state[StateKeys.CONFIG] = deepcopy(dict(config))

    def apply_update(self, patch: Mapping[str, Any]) -> dict[str, Any]:
        """Merge ``patch`` into the configuration and return the new snapshot."""

        if not isinstance(patch, Mapping):
            raise TypeError("Configuration updates must be mappings")
        cleaned = dict(patch)
        if ConfigFields.WORKFLOW in cleaned:
            logger.warning("Ignoring write to the reserved '%s' sub-tree from an editor", ConfigFields.WORKFLOW)
            cleaned.pop(ConfigFields.WORKFLOW)
        if not cleaned:
            return self.snapshot()
        return self._write(cleaned)

    def write_workflow(self, mirror: WorkflowMirror) -> dict[str, Any]:
        """Replace the ``workflow`` mirror with the controller's state."""

        with self._lock:
            config = dict(self._config)
            config[ConfigFields.WORKFLOW] = mirror.to_config()
            self._session_state[StateKeys.CONFIG] = config
            return self._notify()

    def _write(self, patch: Mapping[str, Any]) -> dict[str, Any]:
        with self._lock:
            self._session_state[StateKeys.CONFIG] = merge_config(self._config, patch, subtrees=KNOWN_SUBTREES)
            return self._notify()

    def _notify(self) -> dict[str, Any]:
        snapshot = deepcopy(self._config)
        for listener in list(self._listeners):
            try:
                listener(deepcopy(snapshot))
            except Exception:
                logger.exception("Configuration listener %r failed", listener)
        return snapshot

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return deepcopy(self._config)

    def get(self, key: str, default: Any = None) -> Any:
        """Return a deep copy of a (dot-separated) configuration value."""

        with self._lock:
            return deepcopy(get_in(self._config, key, default))

    def step_pointer(self) -> int | None:
        """Return ``workflow.currentStep`` as seen by other readers of the store."""

        value = get_in(self._config, f"{ConfigFields.WORKFLOW}.currentStep")
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        return value

    def session_id(self) -> str | None:
        value = self._config.get(ConfigFields.GAME_ID)
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None


__all__ = ["ConfigListener", "ConfigStore"]
