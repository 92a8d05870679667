"""Mount a workflow session and route user actions through the recovery protocol."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, Mapping, MutableMapping, cast

import streamlit as st

from config import SETTINGS, WorkflowSettings
from constants.keys import ConfigFields, QueryParams, StateKeys
from core.defaults import default_config
from core.errors import PersistenceWriteFailure, SessionNotFoundError
from models.session import Session
from state.config_store import ConfigStore
from state.draft_autosave import DraftAutosaveService
from state.ensure_state import reset_state
from state.session_store import SessionStore, default_session_store
from utils.logging_context import set_session_id
from wizard.controller import WorkflowController
from wizard.deep_link import DeepLink, NavigationTarget
from wizard.recovery import NavigationRecoveryProtocol, Navigator, RecoveryOutcome
from wizard.session_identity import SessionIdentityResolver
from wizard.session_validator import SessionValidator, ValidationStatus

logger = logging.getLogger(__name__)

_LOCATION_PARAMS_TO_DROP: tuple[str, ...] = (QueryParams.FORCE, QueryParams.TEMPLATE)


def reload_with_params(
    params: Mapping[str, str],
    *,
    session_state: MutableMapping[str, Any] | None = None,
    query_params: MutableMapping[str, Any] | None = None,
) -> None:
    """Drop all in-memory state, point the location at ``params`` and rerun."""

    state = session_state if session_state is not None else st.session_state
    location = query_params if query_params is not None else st.query_params
    reset_state(state)
    location.clear()
    for key, value in params.items():
        location[key] = value
    st.rerun()


def streamlit_hard_reload(
    target: NavigationTarget,
    *,
    session_state: MutableMapping[str, Any] | None = None,
    query_params: MutableMapping[str, Any] | None = None,
    draft_service: DraftAutosaveService | None = None,
) -> None:
    logger.warning("Hard reload to %s", target.url())
    if draft_service is not None:
        draft_service.flush()
    reload_with_params(target.query_params(), session_state=session_state, query_params=query_params)


@dataclass(frozen=True)
class MountResult:
    status: ValidationStatus
    session_id: str | None
    redirect_to: str | None = None
    created: bool = False
    outcome: RecoveryOutcome | None = None

    @property
    def ok(self) -> bool:
        return self.status in {ValidationStatus.VALID, ValidationStatus.CORRECTED}


class WorkflowSession:
    """Wire the stores, controller, recovery protocol and autosave for one browser session."""

    def __init__(
        self,
        *,
        settings: WorkflowSettings | None = None,
        session_store: SessionStore | None = None,
        draft_service: DraftAutosaveService | None = None,
        session_state: MutableMapping[str, Any] | None = None,
        query_params: MutableMapping[str, Any] | None = None,
        navigator: Navigator | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings or SETTINGS
        self._session_state = cast(
            MutableMapping[str, Any], session_state if session_state is not None else st.session_state
        )
        self._query_params = cast(
            MutableMapping[str, Any], query_params if query_params is not None else st.query_params
        )
        self._clock = clock
        self.config_store = ConfigStore(self._session_state)
        self.session_store = session_store or default_session_store(self._settings.storage_dir)
        self.resolver = SessionIdentityResolver(self.config_store, self.session_store, session_state=self._session_state)
        self.controller = WorkflowController(self.config_store, session_state=self._session_state)
        self.draft_service = draft_service or DraftAutosaveService(
            self._settings.draft_endpoint,
            debounce_seconds=self._settings.draft_debounce_seconds,
            timeout=self._settings.draft_request_timeout,
        )
        self.recovery = NavigationRecoveryProtocol(
            self.controller,
            self.config_store,
            navigator=navigator
            or partial(
                streamlit_hard_reload,
                session_state=self._session_state,
                query_params=self._query_params,
                draft_service=self.draft_service,
            ),
            path=self._settings.workflow_path,
            verify_delay=self._settings.recovery_verify_delay,
            recheck_delay=self._settings.recovery_recheck_delay,
            sleep=sleep,
        )
        self.validator = SessionValidator(
            self.resolver,
            self.session_store,
            self.config_store,
            safe_default_location=self._settings.safe_default_location,
        )
        self._mount_result: MountResult | None = None
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def mount_result(self) -> MountResult | None:
        return self._mount_result

    @property
    def session_id(self) -> str | None:
        return self.resolver.cached() or self.config_store.session_id()

    def mount(self) -> MountResult:
        """Open (or create) the session once and settle the workflow position."""

        if self._mount_result is not None:
            return self._mount_result

        link = DeepLink.from_query_params(self._query_params)
        session_id, created = self._open_session(link)
        set_session_id(session_id)
        self.controller.hydrate()

        outcome: RecoveryOutcome | None = None
        if link.step is not None:
            if link.force:
                self.controller.force_index(link.step)
            else:
                target = link.step
                outcome = self.recovery.run(lambda: self.controller.jump_to(target), name="deep_link")

        validation = self.validator.validate(initialized=True)
        if validation.ok:
            if validation.session_id != session_id:
                session_id = validation.session_id
                set_session_id(session_id)
                self.controller.hydrate()
            self.draft_service.bind_session(session_id)
            self._unsubscribe = self.config_store.subscribe(self._on_config_change)
            self._on_config_change(self.config_store.snapshot())
            self._sync_location()

        result = MountResult(
            status=validation.status,
            session_id=validation.session_id if validation.session_id else session_id,
            redirect_to=validation.redirect_to,
            created=created,
            outcome=outcome,
        )
        self._mount_result = result
        self._session_state[StateKeys.MOUNT_RESULT] = result
        logger.info("Mounted session '%s' (%s)", result.session_id, result.status.value)
        return result

    def _open_session(self, link: DeepLink) -> tuple[str, bool]:
        if link.game:
            try:
                session = self.session_store.load(link.game)
            except SessionNotFoundError:
                logger.warning("Linked session '%s' not found; starting a new one", link.game)
                return self._create(link.template), True
            self._adopt(session)
            return session.session_id, False

        if link.template:
            return self._create(link.template), True

        session_id = self.resolver.resolve()
        if session_id is None:
            return self._create(None), True
        try:
            session = self.session_store.load(session_id)
        except SessionNotFoundError:
            logger.warning("Resolved session '%s' has no stored record", session_id)
            return session_id, False
        self._adopt(session)
        return session_id, False

    def _adopt(self, session: Session) -> None:
        config = dict(session.config)
        config.setdefault(ConfigFields.GAME_ID, session.session_id)
        self.config_store.load(config)
        self.resolver.remember(session.session_id)
        try:
            self.session_store.set_active(session.session_id)
        except PersistenceWriteFailure:
            logger.exception("Could not mark session '%s' as active", session.session_id)

    def _create(self, template: str | None) -> str:
        session_id = f"game_{int(self._clock() * 1000)}"
        config = default_config(session_id, template=template)
        self.config_store.load(config)
        self.resolver.remember(session_id)
        try:
            self.session_store.create(session_id, config)
        except PersistenceWriteFailure:
            logger.exception("Could not persist new session '%s'; continuing in memory", session_id)
        return session_id

    def _on_config_change(self, config: dict[str, Any]) -> None:
        session_id = self.session_id
        if session_id:
            try:
                self.session_store.persist(session_id, config)
            except PersistenceWriteFailure:
                logger.exception("Persisting session '%s' failed; in-memory state stays authoritative", session_id)
        self.draft_service.notify(config)

    def _sync_location(self) -> None:
        if self.recovery.reload_pending:
            return
        self._query_params[QueryParams.STEP] = str(self.controller.current_index)
        session_id = self.session_id
        if session_id:
            self._query_params[QueryParams.GAME] = session_id
        for key in _LOCATION_PARAMS_TO_DROP:
            if key in self._query_params:
                del self._query_params[key]

    def _transition(self, run: Callable[[], RecoveryOutcome]) -> RecoveryOutcome:
        outcome = run()
        self._sync_location()
        return outcome

    def advance(self) -> RecoveryOutcome:
        return self._transition(lambda: self.recovery.run(self.controller.advance, name="advance"))

    def retreat(self) -> RecoveryOutcome:
        return self._transition(lambda: self.recovery.run(self.controller.retreat, name="retreat"))

    def jump_to(self, index: int) -> RecoveryOutcome:
        return self._transition(lambda: self.recovery.run(lambda: self.controller.jump_to(index), name="jump"))

    def apply_update(self, patch: Mapping[str, Any]) -> RecoveryOutcome:
        """Merge an editor patch and re-resolve the variant it may have changed."""

        with self.config_store.serialized():
            self.config_store.apply_update(patch)
            return self._transition(lambda: self.recovery.run(self.controller.sync_variant, name="variant"))

    def list_sessions(self) -> list[Session]:
        return self.session_store.list_sessions()

    def open_session(self, session_id: str) -> None:
        """Reload the app on another stored session."""

        self.draft_service.flush()
        reload_with_params(
            {QueryParams.GAME: session_id},
            session_state=self._session_state,
            query_params=self._query_params,
        )

    def start_new(self, template: str | None = None) -> None:
        """Reload the app on a fresh session seeded from ``template``."""

        self.draft_service.flush()
        reload_with_params(
            {QueryParams.STEP: "0", QueryParams.FORCE: "true", QueryParams.TEMPLATE: template or "classic-reels"},
            session_state=self._session_state,
            query_params=self._query_params,
        )

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.draft_service.flush()


def get_workflow_session(
    *,
    session_state: MutableMapping[str, Any] | None = None,
    **kwargs: Any,
) -> WorkflowSession:
    """Return the browser session's :class:`WorkflowSession`, creating it on first use."""

    state = cast(MutableMapping[str, Any], session_state if session_state is not None else st.session_state)
    existing = state.get(StateKeys.WORKFLOW_SESSION)
    if isinstance(existing, WorkflowSession):
        return existing
    session = WorkflowSession(session_state=state, **kwargs)
    state[StateKeys.WORKFLOW_SESSION] = session
    return session


__all__ = [
    "MountResult",
    "WorkflowSession",
    "get_workflow_session",
    "reload_with_params",
    "streamlit_hard_reload",
]
