"""Pydantic model for the write-only draft payload."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from models.session import utc_now


class Draft(BaseModel):
    """Snapshot POSTed to the external draft endpoint."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    draft_id: str = Field(alias="draftId", min_length=1)
    game_name: str = Field(default="Untitled Game", alias="gameName")
    description: str = Field(default="Work in progress")
    last_updated: datetime = Field(default_factory=utc_now, alias="lastUpdated")
    current_step: int = Field(default=0, ge=0, alias="currentStep")
    config: dict[str, Any] = Field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
