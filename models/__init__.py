"""Pydantic models for persisted sessions and draft payloads."""

from .draft import Draft
from .session import Session, WorkflowMirror

__all__ = [
    "Draft",
    "Session",
    "WorkflowMirror",
]
