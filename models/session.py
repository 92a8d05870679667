"""Pydantic models for persisted workflow sessions."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Session(BaseModel):
    """Durable record of a single configuration effort."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    session_id: str = Field(alias="sessionId", min_length=1)
    config: dict[str, Any] = Field(default_factory=dict, description="Game configuration snapshot.")
    created_at: datetime = Field(default_factory=utc_now, alias="createdAt")
    last_modified: datetime = Field(default_factory=utc_now, alias="lastModified")

    def to_record(self) -> dict[str, Any]:
        """Return the JSON-ready record stored under ``session_<id>``."""

        return self.model_dump(mode="json", by_alias=True)


class WorkflowMirror(BaseModel):
    """The ``config.workflow`` sub-tree owned by the workflow controller."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    current_step: int = Field(default=0, ge=0, alias="currentStep")
    total_steps: int = Field(default=0, ge=0, alias="totalSteps")
    progress: int = Field(default=0, ge=0, le=100)
    completed_steps: dict[str, bool] = Field(default_factory=dict, alias="completedSteps")

    def to_config(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
