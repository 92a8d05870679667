"""Resolve the effective session id from its candidate sources."""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Any, Iterator, MutableMapping, cast

import streamlit as st

from constants.keys import StateKeys
from state.config_store import ConfigStore
from state.session_store import SessionStore

logger = logging.getLogger(__name__)


class IdentitySource(StrEnum):
    CACHE = "cache"
    CONFIG = "config"
    STORAGE = "storage"


def _clean(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


class SessionIdentityResolver:
    """Look up the session id in the cache, the shared config, then storage.

    The first hit is cached in ``st.session_state`` so later reruns skip the
    slower sources.
    """

    def __init__(
        self,
        config_store: ConfigStore,
        session_store: SessionStore,
        *,
        session_state: MutableMapping[str, Any] | None = None,
    ) -> None:
        self._config_store = config_store
        self._session_store = session_store
        self._session_state = cast(
            MutableMapping[str, Any], session_state if session_state is not None else st.session_state
        )

    def cached(self) -> str | None:
        return _clean(self._session_state.get(StateKeys.SESSION_ID_CACHE))

    def candidates(self) -> Iterator[tuple[IdentitySource, str]]:
        """Yield ``(source, id)`` for every source that currently has a value."""

        cached = self.cached()
        if cached:
            yield IdentitySource.CACHE, cached
        from_config = self._config_store.session_id()
        if from_config:
            yield IdentitySource.CONFIG, from_config
        stored = self._session_store.active_session_id()
        if stored:
            yield IdentitySource.STORAGE, stored

    def resolve(self) -> str | None:
        """Return the first available session id, or ``None`` for a new session."""

        for source, session_id in self.candidates():
            if source is not IdentitySource.CACHE:
                self.remember(session_id)
            logger.debug("Resolved session '%s' from %s", session_id, source.value)
            return session_id
        return None

    def remember(self, session_id: str) -> None:
        self._session_state[StateKeys.SESSION_ID_CACHE] = session_id

    def forget(self) -> None:
        self._session_state.pop(StateKeys.SESSION_ID_CACHE, None)


__all__ = ["IdentitySource", "SessionIdentityResolver"]
