"""Step editors resolved from ``StepDefinition.component_ref``.

Editors are thin form renderers. They read the shared configuration and
write back exclusively through :meth:`WorkflowSession.apply_update`.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Callable, Mapping, Sequence

import streamlit as st

from constants.keys import ConfigFields
from core.merge import get_in, patch_for_path
from wizard.step_registry import StepDefinition

if TYPE_CHECKING:
    from wizard.bootstrap import WorkflowSession

EditorRenderer = Callable[["WorkflowSession", StepDefinition], None]

GAME_TYPE_OPTIONS: tuple[tuple[str, str], ...] = (
    ("classic-reels", "Classic reels"),
    ("ways", "Ways to win"),
    ("cluster", "Cluster pays"),
    ("crash", "Crash"),
    ("plinko", "Plinko"),
    ("mines", "Mines"),
    ("coin_flip", "Coin flip"),
    ("scratch", "Scratch card"),
)


def _widget_key(step: StepDefinition, path: str) -> str:
    return f"editor.{step.id}.{path}"


def _commit_widget(session: "WorkflowSession", key: str, path: str) -> Callable[[], None]:
    def _run() -> None:
        session.apply_update(patch_for_path(path, st.session_state.get(key)))

    return _run


def _text_field(session: "WorkflowSession", step: StepDefinition, label: str, path: str) -> None:
    key = _widget_key(step, path)
    current = get_in(session.config_store.snapshot(), path, "")
    st.text_input(
        label,
        value=str(current or ""),
        key=key,
        on_change=_commit_widget(session, key, path),
    )


def _number_field(
    session: "WorkflowSession",
    step: StepDefinition,
    label: str,
    path: str,
    *,
    default: float,
    min_value: float,
    max_value: float,
    step_size: float = 1,
) -> None:
    key = _widget_key(step, path)
    current = get_in(session.config_store.snapshot(), path, default)
    if isinstance(current, bool) or not isinstance(current, (int, float)):
        current = default
    as_int = all(float(value).is_integer() for value in (default, min_value, max_value, step_size))
    coerce = int if as_int else float
    st.number_input(
        label,
        min_value=coerce(min_value),
        max_value=coerce(max_value),
        value=coerce(min(max(current, min_value), max_value)),
        step=coerce(step_size),
        key=key,
        on_change=_commit_widget(session, key, path),
    )


def _select_field(
    session: "WorkflowSession",
    step: StepDefinition,
    label: str,
    path: str,
    options: Sequence[str],
) -> None:
    key = _widget_key(step, path)
    current = get_in(session.config_store.snapshot(), path)
    index = options.index(current) if current in options else 0
    st.selectbox(label, options, index=index, key=key, on_change=_commit_widget(session, key, path))


def render_theme_editor(session: "WorkflowSession", step: StepDefinition) -> None:
    _text_field(session, step, "Game name", ConfigFields.DISPLAY_NAME)
    _text_field(session, step, "Main theme", "theme.mainTheme")
    _select_field(session, step, "Art style", "theme.artStyle", ("cartoon", "realistic", "pixel", "hand-drawn"))
    _select_field(session, step, "Mood", "theme.mood", ("playful", "mysterious", "epic", "relaxed"))
    _text_field(session, step, "Description", "theme.description")


def render_game_type_editor(session: "WorkflowSession", step: StepDefinition) -> None:
    """Pick the game type; the selection decides which workflow variant applies."""

    key = _widget_key(step, ConfigFields.SELECTED_GAME_TYPE)
    values = [value for value, _ in GAME_TYPE_OPTIONS]
    labels = dict(GAME_TYPE_OPTIONS)
    current = session.config_store.get(ConfigFields.SELECTED_GAME_TYPE)
    st.radio(
        "Game type",
        values,
        index=values.index(current) if current in values else 0,
        format_func=lambda value: labels.get(value, value),
        key=key,
        on_change=_commit_widget(session, key, ConfigFields.SELECTED_GAME_TYPE),
    )


def render_grid_layout_editor(session: "WorkflowSession", step: StepDefinition) -> None:
    _number_field(session, step, "Reels", "reels.layout.reels", default=5, min_value=3, max_value=9)
    _number_field(session, step, "Rows", "reels.layout.rows", default=3, min_value=2, max_value=9)
    _select_field(
        session, step, "Pay mechanism", "reels.layout.payMechanism", ("betlines", "ways", "cluster")
    )


def render_audio_editor(session: "WorkflowSession", step: StepDefinition) -> None:
    _select_field(session, step, "Music style", "audio.musicStyle", ("orchestral", "electronic", "ambient"))
    _number_field(session, step, "Master volume", "audio.volume", default=80, min_value=0, max_value=100)


def render_bonus_editor(session: "WorkflowSession", step: StepDefinition) -> None:
    _number_field(session, step, "Free spins", "bonus.freeSpins.count", default=10, min_value=0, max_value=100)
    _number_field(
        session, step, "Free spin multiplier", "bonus.freeSpins.multiplier", default=1, min_value=1, max_value=10
    )


def render_math_model_editor(session: "WorkflowSession", step: StepDefinition) -> None:
    _number_field(
        session, step, "Target RTP (%)", "reels.math.rtp", default=96.0, min_value=85.0, max_value=99.5, step_size=0.1
    )
    _select_field(session, step, "Volatility", "reels.math.volatility", ("low", "medium", "high"))


def render_crash_editor(session: "WorkflowSession", step: StepDefinition) -> None:
    _number_field(
        session, step, "Growth rate", "crash.growthRate", default=0.1, min_value=0.01, max_value=1.0, step_size=0.01
    )
    _number_field(session, step, "House edge (%)", "crash.houseEdge", default=4, min_value=0, max_value=20)
    _number_field(session, step, "Max multiplier", "crash.maxMultiplier", default=1000, min_value=2, max_value=100000)


def render_instant_editor(session: "WorkflowSession", step: StepDefinition) -> None:
    mechanic = session.config_store.get(ConfigFields.SELECTED_GAME_TYPE)
    if mechanic == "plinko":
        _number_field(session, step, "Rows", "instant.rows", default=12, min_value=8, max_value=16)
    elif mechanic == "mines":
        _number_field(session, step, "Grid size", "instant.gridSize", default=5, min_value=3, max_value=8)
    _number_field(session, step, "House edge (%)", "instant.houseEdge", default=2, min_value=0, max_value=10)


def render_placeholder_editor(session: "WorkflowSession", step: StepDefinition) -> None:
    """Fallback for steps whose editor lives outside the workflow layer."""

    st.info(f"The '{step.title}' editor is provided by an external module.")
    with st.expander("Current configuration", expanded=False):
        st.code(json.dumps(session.config_store.snapshot(), indent=2, ensure_ascii=False), language="json")


EDITORS: Mapping[str, EditorRenderer] = {
    "theme": render_theme_editor,
    "game_type": render_game_type_editor,
    "grid_layout": render_grid_layout_editor,
    "audio": render_audio_editor,
    "bonus_features": render_bonus_editor,
    "math_model": render_math_model_editor,
    "crash": render_crash_editor,
    "instant": render_instant_editor,
}


def resolve_editor(component_ref: str) -> EditorRenderer:
    return EDITORS.get(component_ref, render_placeholder_editor)


__all__ = ["EDITORS", "EditorRenderer", "GAME_TYPE_OPTIONS", "resolve_editor"]
