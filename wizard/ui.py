"""Streamlit presentation of the workflow: progress, step editor and navigation."""

from __future__ import annotations

import logging
from typing import Callable

import streamlit as st

from constants.keys import StateKeys
from core.defaults import TEMPLATES
from core.errors import InvalidSnapshot, PersistenceWriteFailure, SessionNotFoundError
from state.snapshot import export_session, import_snapshot
from utils.logging_context import set_session_id
from wizard.bootstrap import MountResult, WorkflowSession, get_workflow_session
from wizard.editors import resolve_editor
from wizard.recovery import RecoveryOutcome

logger = logging.getLogger(__name__)

_UPLOAD_KEY = "workflow.snapshot_upload"
_SESSION_PICKER_KEY = "workflow.session_picker"
_TEMPLATE_PICKER_KEY = "workflow.template_picker"


def _remember_outcome(action: Callable[[], RecoveryOutcome]) -> Callable[[], None]:
    def _run() -> None:
        outcome = action()
        st.session_state[StateKeys.LAST_OUTCOME] = outcome

    return _run


def render_progress(session: WorkflowSession) -> None:
    """Render the progress bar and the clickable step indicator."""

    state = session.controller.state
    steps = session.controller.steps
    st.progress(state.progress / 100, text=f"Step {state.current_index + 1} of {state.total_steps} · {state.progress}%")
    columns = st.columns(len(steps))
    for index, (column, step) in enumerate(zip(columns, steps)):
        if index == state.current_index:
            marker = "●"
        elif state.completed.get(step.id):
            marker = "✓"
        else:
            marker = "○"
        column.button(
            f"{marker} {index + 1}",
            key=f"workflow.jump.{step.id}",
            help=step.title,
            disabled=index == state.current_index,
            use_container_width=True,
            on_click=_remember_outcome(lambda target=index: session.jump_to(target)),
        )


def render_step(session: WorkflowSession) -> None:
    step = session.controller.current_step
    st.subheader(step.title)
    st.caption(step.description)
    resolve_editor(step.component_ref)(session, step)


def render_navigation(session: WorkflowSession) -> None:
    state = session.controller.state
    is_last = state.current_index >= state.total_steps - 1
    back_col, next_col = st.columns(2)
    back_col.button(
        "◀ Back",
        key="workflow.nav.back",
        disabled=state.current_index == 0,
        use_container_width=True,
        on_click=_remember_outcome(session.retreat),
    )
    next_col.button(
        "Finish ✓" if is_last else "Next ▶",
        key="workflow.nav.next",
        type="primary",
        use_container_width=True,
        on_click=_remember_outcome(session.advance),
    )
    outcome = st.session_state.get(StateKeys.LAST_OUTCOME)
    if isinstance(outcome, RecoveryOutcome) and outcome.workflow_complete:
        st.success("Workflow complete. Your configuration is saved and ready for export.")


def render_redirect_notice(result: MountResult, session: WorkflowSession) -> None:
    st.warning("This game session could not be found. It may have been removed or never saved.")
    if result.redirect_to:
        st.link_button("Go to the start page", result.redirect_to)
    st.button("Start a new game", key="workflow.redirect.new", on_click=session.start_new)


def _import_uploaded_snapshot(session: WorkflowSession) -> None:
    upload = st.session_state.get(_UPLOAD_KEY)
    if upload is None:
        return
    try:
        imported = import_snapshot(session.session_store, upload.getvalue())
    except (InvalidSnapshot, PersistenceWriteFailure) as exc:
        logger.warning("Rejected uploaded snapshot: %s", exc)
        st.toast(f"Could not import snapshot: {exc}")
        return
    session.open_session(imported.session_id)


def render_sidebar(session: WorkflowSession) -> None:
    """Session picker, new-game templates and snapshot export/import."""

    with st.sidebar:
        st.markdown("### Game sessions")
        sessions = session.list_sessions()
        current_id = session.session_id
        if sessions:
            ids = [item.session_id for item in sessions]
            names = {
                item.session_id: f"{item.config.get('displayName') or item.session_id} ({item.session_id})"
                for item in sessions
            }
            selected = st.selectbox(
                "Resume a session",
                ids,
                index=ids.index(current_id) if current_id in ids else 0,
                format_func=lambda value: names.get(value, value),
                key=_SESSION_PICKER_KEY,
            )
            st.button(
                "Open session",
                key="workflow.sidebar.open",
                disabled=selected == current_id,
                on_click=session.open_session,
                args=(selected,),
            )

        template = st.selectbox("New game from template", list(TEMPLATES), key=_TEMPLATE_PICKER_KEY)
        st.button("Start new game", key="workflow.sidebar.new", on_click=session.start_new, args=(template,))

        st.markdown("### Snapshot")
        if current_id:
            try:
                payload = export_session(session.session_store, current_id)
            except SessionNotFoundError:
                st.caption("The current session has not been saved yet.")
            else:
                st.download_button(
                    "Download snapshot",
                    data=payload,
                    file_name=f"{current_id}.json",
                    mime="application/json",
                    key="workflow.sidebar.download",
                )
        st.file_uploader(
            "Import snapshot",
            type=["json"],
            key=_UPLOAD_KEY,
            on_change=_import_uploaded_snapshot,
            args=(session,),
        )


def run_workflow() -> None:
    """Entry point rendering one rerun of the workflow."""

    session = get_workflow_session()
    result = session.mount()
    set_session_id(session.session_id)
    if not result.ok:
        render_redirect_notice(result, session)
        return
    render_sidebar(session)
    render_progress(session)
    render_step(session)
    render_navigation(session)


__all__ = [
    "render_navigation",
    "render_progress",
    "render_sidebar",
    "render_step",
    "run_workflow",
]
