"""Verify, correct and, as a last resort, reload after every workflow transition.

Each transition runs as one explicit sequence while the shared configuration
store's update queue is held:

1. snapshot the variant discriminator fields,
2. apply the transition optimistically,
3. verify the local index and the shared step pointer,
4. on mismatch force both to the expected index and restore the
   discriminator,
5. verify again and hand a forced deep link to the navigator if the state
   still disagrees.

Once a hard reload has been issued, every later transition is superseded.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Callable

from opentelemetry import trace

from core.errors import NavigationDesync, NavigationTerminalFailure
from state.config_store import ConfigStore
from utils.logging_context import log_context
from utils.telemetry import mark_span_failed
from wizard.controller import TransitionResult, WorkflowController
from wizard.deep_link import NavigationTarget
from wizard.step_registry import DISCRIMINATOR_FIELDS

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

Navigator = Callable[[NavigationTarget], None]
Transition = Callable[[], TransitionResult]


class RecoveryPhase(StrEnum):
    OPTIMISTIC = "optimistic"
    VERIFIED = "verified"
    CORRECTING = "correcting"
    CORRECTED = "corrected"
    HARD_FALLBACK = "hard_fallback"
    NOOP = "noop"
    COMPLETE = "complete"
    SUPERSEDED = "superseded"


TERMINAL_PHASES: frozenset[RecoveryPhase] = frozenset(
    {
        RecoveryPhase.VERIFIED,
        RecoveryPhase.CORRECTED,
        RecoveryPhase.HARD_FALLBACK,
        RecoveryPhase.NOOP,
        RecoveryPhase.COMPLETE,
        RecoveryPhase.SUPERSEDED,
    }
)


@dataclass(frozen=True)
class RecoveryOutcome:
    phase: RecoveryPhase
    result: TransitionResult | None = None
    target: NavigationTarget | None = None
    history: tuple[RecoveryPhase, ...] = field(default_factory=tuple)

    @property
    def workflow_complete(self) -> bool:
        return self.phase is RecoveryPhase.COMPLETE


class NavigationRecoveryProtocol:
    """Run controller transitions through the three-tier recovery sequence."""

    def __init__(
        self,
        controller: WorkflowController,
        config_store: ConfigStore,
        *,
        navigator: Navigator,
        path: str = "/",
        verify_delay: float = 0.0,
        recheck_delay: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._controller = controller
        self._config_store = config_store
        self._navigator = navigator
        self._path = path
        self._verify_delay = verify_delay
        self._recheck_delay = recheck_delay
        self._sleep = sleep
        self._reload_target: NavigationTarget | None = None

    @property
    def reload_pending(self) -> bool:
        return self._reload_target is not None

    @property
    def reload_target(self) -> NavigationTarget | None:
        return self._reload_target

    def run(self, transition: Transition, *, name: str) -> RecoveryOutcome:
        if self._reload_target is not None:
            logger.debug("Transition '%s' superseded by pending reload to %s", name, self._reload_target.url())
            return RecoveryOutcome(RecoveryPhase.SUPERSEDED, history=(RecoveryPhase.SUPERSEDED,))

        with self._config_store.serialized(), log_context(transition=name):
            with tracer.start_as_current_span("workflow.transition") as span:
                span.set_attribute("workflow.transition", name)
                outcome = self._run_locked(transition, name=name, span=span)
                span.set_attribute("workflow.phase", outcome.phase.value)
                if outcome.result is not None:
                    span.set_attribute("workflow.expected_index", outcome.result.expected_index)
        if outcome.target is not None:
            self._navigator(outcome.target)
        return outcome

    def _run_locked(self, transition: Transition, *, name: str, span: Any) -> RecoveryOutcome:
        history = [RecoveryPhase.OPTIMISTIC]
        preserved = self._snapshot_discriminator()
        result = transition()
        if result.workflow_complete:
            history.append(RecoveryPhase.COMPLETE)
            return RecoveryOutcome(RecoveryPhase.COMPLETE, result=result, history=tuple(history))
        if not result.changed:
            history.append(RecoveryPhase.NOOP)
            return RecoveryOutcome(RecoveryPhase.NOOP, result=result, history=tuple(history))

        expected = result.expected_index
        self._sleep(self._verify_delay)
        problem = self._verify(expected, preserved)
        if problem is None:
            history.append(RecoveryPhase.VERIFIED)
            return RecoveryOutcome(RecoveryPhase.VERIFIED, result=result, history=tuple(history))

        desync = NavigationDesync(problem)
        mark_span_failed(span, desync, status=False)
        logger.warning("Transition '%s' out of sync; correcting", name, exc_info=desync)
        history.append(RecoveryPhase.CORRECTING)
        self._correct(expected, preserved)

        self._sleep(self._recheck_delay)
        problem = self._verify(expected, preserved)
        if problem is None:
            history.append(RecoveryPhase.CORRECTED)
            logger.info("Transition '%s' corrected at step %s", name, expected)
            return RecoveryOutcome(RecoveryPhase.CORRECTED, result=result, history=tuple(history))

        target = NavigationTarget(
            path=self._path,
            step=expected,
            force=True,
            session_id=self._config_store.session_id(),
        )
        self._reload_target = target
        failure = NavigationTerminalFailure(problem)
        mark_span_failed(span, failure)
        logger.error("Transition '%s' did not converge; reloading %s", name, target.url(), exc_info=failure)
        history.append(RecoveryPhase.HARD_FALLBACK)
        return RecoveryOutcome(RecoveryPhase.HARD_FALLBACK, result=result, target=target, history=tuple(history))

    def _snapshot_discriminator(self) -> dict[str, Any]:
        config = self._config_store.snapshot()
        return {key: config[key] for key in DISCRIMINATOR_FIELDS if key in config}

    def _verify(self, expected: int, preserved: dict[str, Any]) -> str | None:
        problems: list[str] = []
        local = self._controller.current_index
        if local != expected:
            problems.append(f"local index {local} != {expected}")
        shared = self._config_store.step_pointer()
        if shared != expected:
            problems.append(f"shared step pointer {shared} != {expected}")
        lost = self._lost_fields(preserved)
        if lost:
            problems.append(f"lost {', '.join(sorted(lost))}")
        return "; ".join(problems) or None

    def _lost_fields(self, preserved: dict[str, Any]) -> dict[str, Any]:
        config = self._config_store.snapshot()
        return {key: value for key, value in preserved.items() if config.get(key) != value}

    def _correct(self, expected: int, preserved: dict[str, Any]) -> None:
        lost = self._lost_fields(preserved)
        if lost:
            self._config_store.apply_update(lost)
        self._controller.force_index(expected)


__all__ = [
    "Navigator",
    "NavigationRecoveryProtocol",
    "RecoveryOutcome",
    "RecoveryPhase",
    "TERMINAL_PHASES",
]
