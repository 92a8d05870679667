"""Workflow position, completion and progress outside the UI layer."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any, Mapping, MutableMapping, cast

import streamlit as st

from constants.keys import ConfigFields, StateKeys
from core.errors import VariantMismatch
from models.session import WorkflowMirror
from state.config_store import ConfigStore
from utils.logging_context import set_wizard_step
from wizard.progress import percentage
from wizard.step_registry import StepDefinition, Variant, resolve_variant, step_ids, steps_for

logger = logging.getLogger(__name__)


class TransitionKind(StrEnum):
    ADVANCE = "advance"
    RETREAT = "retreat"
    JUMP = "jump"
    VARIANT = "variant"
    FORCE = "force"


@dataclass
class WorkflowState:
    """Position of the user inside the active variant's step sequence."""

    variant: Variant
    current_index: int = 0
    total_steps: int = 0
    completed: dict[str, bool] = field(default_factory=dict)
    progress: int = 0

    def to_mirror(self) -> WorkflowMirror:
        return WorkflowMirror(
            current_step=self.current_index,
            total_steps=self.total_steps,
            progress=self.progress,
            completed_steps=dict(self.completed),
        )


@dataclass(frozen=True)
class TransitionResult:
    kind: TransitionKind
    changed: bool
    expected_index: int
    workflow_complete: bool = False
    variant_reset: bool = False


def _coerce_index(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def _clamp(index: int, total: int) -> int:
    if total <= 0:
        return 0
    return min(max(index, 0), total - 1)


class WorkflowController:
    """Own the workflow state and mirror it into ``config.workflow``.

    The state object lives in ``st.session_state`` and is hydrated lazily
    from the shared configuration the first time it is accessed.
    """

    def __init__(
        self,
        config_store: ConfigStore,
        *,
        session_state: MutableMapping[str, Any] | None = None,
    ) -> None:
        self._config_store = config_store
        self._session_state = cast(
            MutableMapping[str, Any], session_state if session_state is not None else st.session_state
        )

    @property
    def state(self) -> WorkflowState:
        raw = self._session_state.get(StateKeys.WORKFLOW_STATE)
        if isinstance(raw, WorkflowState):
            return raw
        return self.hydrate()

    @property
    def steps(self) -> tuple[StepDefinition, ...]:
        return steps_for(self.state.variant)

    @property
    def current_index(self) -> int:
        return self.state.current_index

    @property
    def current_step(self) -> StepDefinition:
        state = self.state
        return steps_for(state.variant)[state.current_index]

    def is_completed(self, step_id: str) -> bool:
        return bool(self.state.completed.get(step_id))

    def hydrate(self) -> WorkflowState:
        """Rebuild the state from the persisted ``config.workflow`` mirror."""

        config = self._config_store.snapshot()
        variant = resolve_variant(config)
        total = len(steps_for(variant))
        mirror = config.get(ConfigFields.WORKFLOW)
        index = 0
        completed: dict[str, bool] = {}
        if isinstance(mirror, Mapping):
            stored_index = _coerce_index(mirror.get("currentStep"))
            if stored_index is not None:
                index = _clamp(stored_index, total)
            stored_completed = mirror.get("completedSteps")
            if isinstance(stored_completed, Mapping):
                allowed = set(step_ids(variant))
                completed = {str(key): True for key, value in stored_completed.items() if value and key in allowed}
        state = WorkflowState(variant=variant, current_index=index, total_steps=total, completed=completed)
        self._commit(state)
        logger.debug("Hydrated %s workflow at step %s/%s", variant.value, index, total)
        return state

    def advance(self) -> TransitionResult:
        state = self.state
        if state.current_index >= state.total_steps - 1:
            return TransitionResult(
                TransitionKind.ADVANCE, changed=False, expected_index=state.current_index, workflow_complete=True
            )
        step_id = steps_for(state.variant)[state.current_index].id
        completed = dict(state.completed)
        completed[step_id] = True
        new_state = replace(state, current_index=state.current_index + 1, completed=completed)
        self._commit(new_state)
        return TransitionResult(TransitionKind.ADVANCE, changed=True, expected_index=new_state.current_index)

    def retreat(self) -> TransitionResult:
        state = self.state
        if state.current_index == 0:
            return TransitionResult(TransitionKind.RETREAT, changed=False, expected_index=0)
        new_state = replace(state, current_index=state.current_index - 1)
        self._commit(new_state)
        return TransitionResult(TransitionKind.RETREAT, changed=True, expected_index=new_state.current_index)

    def jump_to(self, target_index: int) -> TransitionResult:
        """Move directly to ``target_index``; completion of skipped steps is not required."""

        state = self.state
        target = _clamp(target_index, state.total_steps)
        if target == state.current_index:
            return TransitionResult(TransitionKind.JUMP, changed=False, expected_index=target)
        self._commit(replace(state, current_index=target))
        return TransitionResult(TransitionKind.JUMP, changed=True, expected_index=target)

    def sync_variant(self) -> TransitionResult:
        """Re-resolve the variant after a configuration change."""

        state = self.state
        variant = resolve_variant(self._config_store.snapshot())
        if variant == state.variant:
            return TransitionResult(TransitionKind.VARIANT, changed=False, expected_index=state.current_index)
        total = len(steps_for(variant))
        if state.current_index >= total:
            logger.info(
                "Workflow reset to the first step",
                exc_info=VariantMismatch(
                    f"step {state.current_index} does not exist in the {variant.value} workflow ({total} steps)"
                ),
            )
            new_state = replace(state, variant=variant, current_index=0, total_steps=total, completed={})
            reset = True
        else:
            allowed = set(step_ids(variant))
            completed = {key: True for key in state.completed if key in allowed}
            new_state = replace(state, variant=variant, total_steps=total, completed=completed)
            reset = False
        self._commit(new_state)
        logger.info("Switched workflow variant %s -> %s", state.variant.value, variant.value)
        return TransitionResult(
            TransitionKind.VARIANT, changed=True, expected_index=new_state.current_index, variant_reset=reset
        )

    def force_index(self, index: int) -> TransitionResult:
        """Write ``index`` to both the local state and the shared mirror unconditionally."""

        state = self.state
        target = _clamp(index, state.total_steps)
        self._commit(replace(state, current_index=target))
        return TransitionResult(TransitionKind.FORCE, changed=True, expected_index=target)

    def _commit(self, state: WorkflowState) -> None:
        state.progress = percentage(state.current_index, state.total_steps)
        self._session_state[StateKeys.WORKFLOW_STATE] = state
        self._config_store.write_workflow(state.to_mirror())
        step = steps_for(state.variant)[state.current_index] if state.total_steps else None
        set_wizard_step(step.id if step else None)


__all__ = [
    "TransitionKind",
    "TransitionResult",
    "WorkflowController",
    "WorkflowState",
]
