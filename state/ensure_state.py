"""Helpers for initializing Streamlit session state."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Callable, MutableMapping, cast

import streamlit as st

from constants.keys import StateKeys

logger = logging.getLogger(__name__)


_DEFAULT_STATE_FACTORIES: Mapping[str, Callable[[], Any]] = MappingProxyType(
    {
        StateKeys.CONFIG: dict,
        StateKeys.LAST_OUTCOME: lambda: None,
    }
)


def _resolve(session_state: MutableMapping[str, Any] | None) -> MutableMapping[str, Any]:
    return cast(MutableMapping[str, Any], session_state if session_state is not None else st.session_state)


def ensure_state(session_state: MutableMapping[str, Any] | None = None) -> None:
    """Populate missing session keys with their defaults."""

    state = _resolve(session_state)
    for key, factory in _DEFAULT_STATE_FACTORIES.items():
        if key not in state:
            state[key] = factory()
    if not isinstance(state.get(StateKeys.CONFIG), dict):
        logger.warning("Replacing non-mapping configuration in session state")
        state[StateKeys.CONFIG] = {}


def reset_state(session_state: MutableMapping[str, Any] | None = None) -> None:
    """Drop every in-memory key so the next run starts from persisted data only."""

    state = _resolve(session_state)
    for key in list(state.keys()):
        del state[key]
    ensure_state(state)


__all__ = ["ensure_state", "reset_state"]
