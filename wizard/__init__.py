"""Workflow orchestration package."""

from __future__ import annotations

from .progress import percentage
from .step_registry import (
    CRASH_STEPS,
    INSTANT_STEPS,
    SLOT_STEPS,
    StepDefinition,
    Variant,
    resolve_variant,
    steps_for,
)

__all__ = [
    "CRASH_STEPS",
    "INSTANT_STEPS",
    "SLOT_STEPS",
    "StepDefinition",
    "Variant",
    "percentage",
    "resolve_variant",
    "steps_for",
]
