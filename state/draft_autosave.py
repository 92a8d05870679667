"""Debounced background sync of the configuration to the remote draft endpoint."""

from __future__ import annotations

import logging
import threading
from copy import deepcopy
from typing import Any, Callable, Mapping, Protocol

import requests
from opentelemetry import trace

from constants.keys import ConfigFields
from core.merge import get_in
from models.draft import Draft
from utils.telemetry import mark_span_failed

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

PLACEHOLDER_DRAFT_ID = "user_session_current"


class _Timer(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], _Timer]


def _thread_timer(delay: float, callback: Callable[[], None]) -> _Timer:
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    return timer


def _text(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def build_draft(draft_id: str, config: Mapping[str, Any]) -> Draft:
    """Derive the draft payload for ``config``."""

    game_name = (
        _text(config.get(ConfigFields.DISPLAY_NAME)) or _text(config.get(ConfigFields.GAME_ID)) or "Untitled Game"
    )
    description = _text(get_in(config, "theme.description")) or "Work in progress"
    current_step = get_in(config, f"{ConfigFields.WORKFLOW}.currentStep", 0)
    if isinstance(current_step, bool) or not isinstance(current_step, int) or current_step < 0:
        current_step = 0
    return Draft(
        draft_id=draft_id,
        game_name=game_name,
        description=description,
        current_step=current_step,
        config=deepcopy(dict(config)),
    )


class DraftAutosaveService:
    """Send the latest configuration once edits have paused for ``debounce_seconds``.

    Every :meth:`notify` restarts the timer; only the snapshot from the last
    call is sent. Send failures are logged and left for the next edit to retry.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        debounce_seconds: float = 1.0,
        timeout: float = 10.0,
        http: requests.Session | None = None,
        timer_factory: TimerFactory | None = None,
    ) -> None:
        self._endpoint = endpoint.strip()
        self._debounce_seconds = debounce_seconds
        self._timeout = timeout
        self._http = http or requests.Session()
        self._timer_factory = timer_factory or _thread_timer
        self._lock = threading.Lock()
        self._timer: _Timer | None = None
        self._pending: dict[str, Any] | None = None
        self._draft_id = PLACEHOLDER_DRAFT_ID

    @property
    def enabled(self) -> bool:
        return bool(self._endpoint)

    @property
    def draft_id(self) -> str:
        return self._draft_id

    @property
    def has_pending(self) -> bool:
        with self._lock:
            return self._pending is not None

    def bind_session(self, session_id: str | None) -> str:
        """Fix the draft id for the session; only the placeholder is replaceable."""

        cleaned = _text(session_id)
        if cleaned is None or cleaned == self._draft_id:
            return self._draft_id
        if self._draft_id != PLACEHOLDER_DRAFT_ID:
            logger.warning(
                "Draft id already bound to '%s'; ignoring rebind to '%s'",
                self._draft_id,
                cleaned,
            )
            return self._draft_id
        self._draft_id = cleaned
        return self._draft_id

    def notify(self, config: Mapping[str, Any]) -> None:
        """(Re)start the debounce timer for ``config``."""

        if not self.enabled:
            return
        with self._lock:
            self._pending = deepcopy(dict(config))
            if self._timer is not None:
                self._timer.cancel()
            self._timer = self._timer_factory(self._debounce_seconds, self._on_timer)
            self._timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._pending = None

    def flush(self) -> bool:
        """Send a pending draft immediately. Returns ``True`` when it was delivered."""

        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            pending, self._pending = self._pending, None
        if pending is None:
            return False
        return self._send(pending)

    def _on_timer(self) -> None:
        with self._lock:
            self._timer = None
            pending, self._pending = self._pending, None
        if pending is not None:
            self._send(pending)

    def _send(self, config: Mapping[str, Any]) -> bool:
        draft = build_draft(self._draft_id, config)
        with tracer.start_as_current_span("draft.autosave") as span:
            span.set_attribute("draft.id", draft.draft_id)
            span.set_attribute("draft.current_step", draft.current_step)
            try:
                response = self._http.post(self._endpoint, json=draft.to_payload(), timeout=self._timeout)
                response.raise_for_status()
            except requests.RequestException as exc:
                mark_span_failed(span, exc)
                logger.warning("Draft autosave for '%s' failed: %s", draft.draft_id, exc)
                return False
        logger.debug("Draft '%s' saved at step %s", draft.draft_id, draft.current_step)
        return True


__all__ = ["PLACEHOLDER_DRAFT_ID", "DraftAutosaveService", "build_draft"]
