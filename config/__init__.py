"""Central configuration for the GameCrafter workflow.

Settings are read from the environment (optionally seeded from a ``.env``
file) once at import time and exposed both as module constants and as the
frozen :class:`WorkflowSettings` bundle that the orchestration layer receives.

``DRAFT_ENDPOINT`` left empty disables remote draft autosave; the local
session store keeps working regardless.
"""

from __future__ import annotations

import logging
import os
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

_TRUTHY_ENV_VALUES: tuple[str, ...] = ("1", "true", "yes", "on")

_DEFAULT_STORAGE_DIR = ".sessions"
_DEFAULT_DRAFT_DEBOUNCE_SECONDS = 1.0
_DEFAULT_DRAFT_REQUEST_TIMEOUT = 10.0
_DEFAULT_SAFE_LOCATION = "/home"
_DEFAULT_WORKFLOW_PATH = "/"


def _is_truthy_flag(value: str | None) -> bool:
    """Return ``True`` when ``value`` matches a truthy environment token."""

    if value is None:
        return False
    return value.strip().lower() in _TRUTHY_ENV_VALUES


def _parse_non_negative_float_env(value: str | None, *, env_var: str, default: float) -> float:
    """Return a non-negative float parsed from ``value`` or ``default``."""

    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        warnings.warn(
            "%s is not a number; ignoring %s" % (candidate, env_var),
            RuntimeWarning,
        )
        return default
    if parsed < 0:
        warnings.warn(
            "%s must not be negative; ignoring %s" % (candidate, env_var),
            RuntimeWarning,
        )
        return default
    return parsed


def _normalise_location(value: str | None, *, default: str) -> str:
    if not value or not value.strip():
        return default
    cleaned = value.strip()
    if not cleaned.startswith("/"):
        cleaned = "/" + cleaned
    return cleaned


@dataclass(frozen=True, slots=True)
class WorkflowSettings:
    """Runtime settings for persistence, autosave and navigation recovery."""

    storage_dir: Path = Path(_DEFAULT_STORAGE_DIR)
    draft_endpoint: str = ""
    draft_debounce_seconds: float = _DEFAULT_DRAFT_DEBOUNCE_SECONDS
    draft_request_timeout: float = _DEFAULT_DRAFT_REQUEST_TIMEOUT
    recovery_verify_delay: float = 0.0
    recovery_recheck_delay: float = 0.0
    safe_default_location: str = _DEFAULT_SAFE_LOCATION
    workflow_path: str = _DEFAULT_WORKFLOW_PATH
    debug: bool = False

    @property
    def draft_autosave_enabled(self) -> bool:
        return bool(self.draft_endpoint)


def load_settings(environ: Mapping[str, str] | None = None) -> WorkflowSettings:
    """Build :class:`WorkflowSettings` from ``environ`` (defaults to ``os.environ``)."""

    env = os.environ if environ is None else environ
    storage_raw = (env.get("WORKFLOW_STORAGE_DIR") or "").strip()
    return WorkflowSettings(
        storage_dir=Path(storage_raw or _DEFAULT_STORAGE_DIR).expanduser(),
        draft_endpoint=(env.get("DRAFT_ENDPOINT") or "").strip(),
        draft_debounce_seconds=_parse_non_negative_float_env(
            env.get("DRAFT_DEBOUNCE_SECONDS"),
            env_var="DRAFT_DEBOUNCE_SECONDS",
            default=_DEFAULT_DRAFT_DEBOUNCE_SECONDS,
        ),
        draft_request_timeout=_parse_non_negative_float_env(
            env.get("DRAFT_REQUEST_TIMEOUT"),
            env_var="DRAFT_REQUEST_TIMEOUT",
            default=_DEFAULT_DRAFT_REQUEST_TIMEOUT,
        ),
        recovery_verify_delay=_parse_non_negative_float_env(
            env.get("RECOVERY_VERIFY_DELAY"),
            env_var="RECOVERY_VERIFY_DELAY",
            default=0.0,
        ),
        recovery_recheck_delay=_parse_non_negative_float_env(
            env.get("RECOVERY_RECHECK_DELAY"),
            env_var="RECOVERY_RECHECK_DELAY",
            default=0.0,
        ),
        safe_default_location=_normalise_location(env.get("SAFE_DEFAULT_LOCATION"), default=_DEFAULT_SAFE_LOCATION),
        workflow_path=_normalise_location(env.get("WORKFLOW_PATH"), default=_DEFAULT_WORKFLOW_PATH),
        debug=_is_truthy_flag(env.get("WORKFLOW_DEBUG")),
    )


SETTINGS: WorkflowSettings = load_settings()

STORAGE_DIR = SETTINGS.storage_dir

if not SETTINGS.draft_autosave_enabled:
    logger.info("DRAFT_ENDPOINT not configured; remote draft autosave is disabled")


__all__ = [
    "SETTINGS",
    "STORAGE_DIR",
    "WorkflowSettings",
    "load_settings",
]
