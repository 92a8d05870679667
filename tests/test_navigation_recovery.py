from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Any

import pytest

from constants.keys import StateKeys
from models.session import WorkflowMirror
from state.config_store import ConfigStore
from wizard.controller import WorkflowController
from wizard.recovery import NavigationRecoveryProtocol, RecoveryPhase, TERMINAL_PHASES


class DroppingConfigStore(ConfigStore):
    """Config store that silently loses the first ``drops`` workflow writes."""

    def __init__(self, session_state, *, drops: int) -> None:
        super().__init__(session_state)
        self.drops = drops
        self.dropped = 0

    def write_workflow(self, mirror: WorkflowMirror) -> dict[str, Any]:
        if self.dropped < self.drops:
            self.dropped += 1
            return self.snapshot()
        return super().write_workflow(mirror)


def _protocol(controller, config_store, navigator, sleeps: list[float] | None = None, **kwargs):
    return NavigationRecoveryProtocol(
        controller,
        config_store,
        navigator=navigator,
        path="/",
        sleep=(sleeps.append if sleeps is not None else (lambda _seconds: None)),
        **kwargs,
    )


@pytest.fixture
def hydrated(session_state):
    """Return a factory for a dropping store plus a controller already hydrated."""

    def _build(drops: int) -> tuple[DroppingConfigStore, WorkflowController]:
        store = DroppingConfigStore(session_state, drops=0)
        store.load({"gameId": "game_1", "selectedGameType": "classic-reels"})
        controller = WorkflowController(store, session_state=session_state)
        controller.hydrate()
        store.drops = drops
        return store, controller

    return _build


def test_clean_transition_is_verified(controller, config_store, navigator) -> None:
    sleeps: list[float] = []
    protocol = _protocol(controller, config_store, navigator, sleeps, verify_delay=0.05, recheck_delay=0.1)

    outcome = protocol.run(controller.advance, name="advance")

    assert outcome.phase is RecoveryPhase.VERIFIED
    assert outcome.history == (RecoveryPhase.OPTIMISTIC, RecoveryPhase.VERIFIED)
    assert outcome.result is not None and outcome.result.expected_index == 1
    assert sleeps == [0.05]
    assert navigator.targets == []


def test_one_lost_write_is_corrected(hydrated, navigator, caplog) -> None:
    store, controller = hydrated(drops=1)
    sleeps: list[float] = []
    protocol = _protocol(controller, store, navigator, sleeps, verify_delay=0.05, recheck_delay=0.1)

    with caplog.at_level(logging.WARNING, logger="wizard.recovery"):
        outcome = protocol.run(controller.advance, name="advance")

    assert outcome.phase is RecoveryPhase.CORRECTED
    assert outcome.history == (RecoveryPhase.OPTIMISTIC, RecoveryPhase.CORRECTING, RecoveryPhase.CORRECTED)
    assert store.step_pointer() == 1
    assert controller.current_index == 1
    assert sleeps == [0.05, 0.1]
    assert navigator.targets == []
    assert "out of sync" in caplog.text


def test_stale_local_index_is_corrected(controller, config_store, navigator, session_state, caplog) -> None:
    config_store.load({"gameId": "game_1", "selectedGameType": "classic-reels"})
    controller.hydrate()
    protocol = _protocol(controller, config_store, navigator)

    def _advance_and_lose_local_position():
        result = controller.advance()
        session_state[StateKeys.WORKFLOW_STATE] = replace(controller.state, current_index=0)
        return result

    with caplog.at_level(logging.WARNING, logger="wizard.recovery"):
        outcome = protocol.run(_advance_and_lose_local_position, name="advance")

    assert outcome.phase is RecoveryPhase.CORRECTED
    assert outcome.history == (RecoveryPhase.OPTIMISTIC, RecoveryPhase.CORRECTING, RecoveryPhase.CORRECTED)
    assert config_store.step_pointer() == 1
    assert controller.current_index == 1
    assert navigator.targets == []
    assert "local index 0 != 1" in caplog.text


def test_persistent_desync_falls_back_to_a_forced_reload(hydrated, navigator, caplog) -> None:
    store, controller = hydrated(drops=10)
    protocol = _protocol(controller, store, navigator)

    with caplog.at_level(logging.ERROR, logger="wizard.recovery"):
        outcome = protocol.run(controller.advance, name="advance")

    assert outcome.phase is RecoveryPhase.HARD_FALLBACK
    assert outcome.phase in TERMINAL_PHASES
    assert outcome.target is not None
    assert outcome.target.url() == "/?step=1&force=true&game=game_1"
    assert navigator.targets == [outcome.target]
    assert protocol.reload_pending
    assert "did not converge" in caplog.text


def test_transitions_after_a_reload_are_superseded(hydrated, navigator) -> None:
    store, controller = hydrated(drops=10)
    protocol = _protocol(controller, store, navigator)
    protocol.run(controller.advance, name="advance")
    calls: list[str] = []

    def _transition():
        calls.append("called")
        return controller.advance()

    outcome = protocol.run(_transition, name="advance")

    assert outcome.phase is RecoveryPhase.SUPERSEDED
    assert calls == []
    assert len(navigator.targets) == 1


def test_lost_discriminator_is_restored(controller, config_store, navigator, session_state) -> None:
    config_store.load({"gameId": "game_1", "selectedGameType": "classic-reels"})
    protocol = _protocol(controller, config_store, navigator)

    def _advance_and_lose_game_type():
        result = controller.advance()
        config = dict(session_state[StateKeys.CONFIG])
        config.pop("selectedGameType")
        session_state[StateKeys.CONFIG] = config
        return result

    outcome = protocol.run(_advance_and_lose_game_type, name="advance")

    assert outcome.phase is RecoveryPhase.CORRECTED
    assert config_store.get("selectedGameType") == "classic-reels"
    assert config_store.step_pointer() == 1


def test_transition_runs_while_the_update_queue_is_held(controller, config_store, navigator, session_state) -> None:
    protocol = _protocol(controller, config_store, navigator)
    lock = session_state["workflow.config_lock"]
    acquired: list[bool] = []

    def _try_acquire() -> None:
        got = lock.acquire(blocking=False)
        if got:
            lock.release()
        acquired.append(got)

    def _transition():
        worker = threading.Thread(target=_try_acquire)
        worker.start()
        worker.join()
        return controller.advance()

    protocol.run(_transition, name="advance")

    assert acquired == [False]


def test_noop_and_complete_skip_verification(controller, config_store, navigator) -> None:
    sleeps: list[float] = []
    protocol = _protocol(controller, config_store, navigator, sleeps, verify_delay=0.05)

    noop = protocol.run(controller.retreat, name="retreat")
    controller.jump_to(11)
    complete = protocol.run(controller.advance, name="advance")

    assert noop.phase is RecoveryPhase.NOOP
    assert complete.phase is RecoveryPhase.COMPLETE
    assert complete.workflow_complete
    assert sleeps == []
