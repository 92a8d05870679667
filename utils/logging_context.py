from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import Iterator, Mapping

_PLACEHOLDER = "-"

LOG_FORMAT = (
    "%(asctime)s %(levelname)s [session=%(session_id)s step=%(wizard_step)s "
    "transition=%(transition)s] %(name)s: %(message)s"
)

# Record attribute -> context variable carrying its value.
_FIELDS: Mapping[str, contextvars.ContextVar[str]] = {
    "session_id": contextvars.ContextVar("workflow_session_id", default=_PLACEHOLDER),
    "wizard_step": contextvars.ContextVar("workflow_wizard_step", default=_PLACEHOLDER),
    "transition": contextvars.ContextVar("workflow_transition", default=_PLACEHOLDER),
}

_base_record_factory = logging.getLogRecordFactory()
_factory_installed = False


def _normalise(value: object) -> str:
    if value is None:
        return _PLACEHOLDER
    text = str(value).strip()
    return text or _PLACEHOLDER


def _stamp(record: logging.LogRecord) -> logging.LogRecord:
    for attribute, var in _FIELDS.items():
        if not hasattr(record, attribute):
            setattr(record, attribute, var.get())
    return record


class WorkflowContextFilter(logging.Filter):
    """Stamp session, step and transition onto records handled by a handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        _stamp(record)
        return True


def _context_record_factory(*args: object, **kwargs: object) -> logging.LogRecord:
    return _stamp(_base_record_factory(*args, **kwargs))


def configure_logging(*, level: int = logging.INFO) -> None:
    """Install the contextual format on the root logger once per process.

    Every record, including those created by third-party loggers, gets the
    workflow context attributes so the format string never fails.
    """

    global _factory_installed
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    for handler in root.handlers:
        if handler.formatter is None:
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
        if not any(isinstance(existing, WorkflowContextFilter) for existing in handler.filters):
            handler.addFilter(WorkflowContextFilter())
    if not _factory_installed:
        logging.setLogRecordFactory(_context_record_factory)
        _factory_installed = True


def set_session_id(session_id: str | None) -> None:
    """Bind the active game session for subsequent records."""

    configure_logging()
    _FIELDS["session_id"].set(_normalise(session_id))


def set_wizard_step(step: str | int | None) -> None:
    _FIELDS["wizard_step"].set(_normalise(step))


def current_context() -> dict[str, str]:
    return {attribute: var.get() for attribute, var in _FIELDS.items()}


@contextmanager
def log_context(
    *,
    session_id: str | None = None,
    wizard_step: str | int | None = None,
    transition: str | None = None,
) -> Iterator[None]:
    """Override context fields for the duration of the block; ``None`` keeps the current value."""

    overrides = {"session_id": session_id, "wizard_step": wizard_step, "transition": transition}
    tokens = [
        (_FIELDS[attribute], _FIELDS[attribute].set(_normalise(value)))
        for attribute, value in overrides.items()
        if value is not None
    ]
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


__all__ = [
    "LOG_FORMAT",
    "WorkflowContextFilter",
    "configure_logging",
    "current_context",
    "log_context",
    "set_session_id",
    "set_wizard_step",
]
