"""Utility helpers for the GameCrafter workflow."""

from __future__ import annotations

from .logging_context import configure_logging, log_context, set_session_id, set_wizard_step
from .telemetry import setup_tracing

__all__ = [
    "configure_logging",
    "log_context",
    "set_session_id",
    "set_wizard_step",
    "setup_tracing",
]
