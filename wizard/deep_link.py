"""Deep-link parameters carried by the app location."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping
from urllib.parse import urlencode

from constants.keys import QueryParams

logger = logging.getLogger(__name__)

_TRUTHY: frozenset[str] = frozenset({"1", "true", "yes", "on"})


def _first(params: Mapping[str, Any], key: str) -> str | None:
    getter = getattr(params, "get_all", None)
    if callable(getter):
        values = getter(key)
        raw = values[0] if values else None
    else:
        raw = params.get(key)
        if isinstance(raw, (list, tuple)):
            raw = raw[0] if raw else None
    if raw is None:
        return None
    cleaned = str(raw).strip()
    return cleaned or None


@dataclass(frozen=True)
class DeepLink:
    """Parsed ``step``, ``force``, ``game`` and ``template`` parameters."""

    step: int | None = None
    force: bool = False
    game: str | None = None
    template: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.step is None and not self.force and self.game is None and self.template is None

    @classmethod
    def from_query_params(cls, params: Mapping[str, Any]) -> "DeepLink":
        step: int | None = None
        raw_step = _first(params, QueryParams.STEP)
        if raw_step is not None:
            try:
                step = int(raw_step)
            except ValueError:
                logger.debug("Ignoring malformed step parameter %r", raw_step)
            else:
                if step < 0:
                    logger.debug("Ignoring negative step parameter %r", raw_step)
                    step = None
        raw_force = _first(params, QueryParams.FORCE)
        return cls(
            step=step,
            force=bool(raw_force and raw_force.lower() in _TRUTHY),
            game=_first(params, QueryParams.GAME),
            template=_first(params, QueryParams.TEMPLATE),
        )


@dataclass(frozen=True)
class NavigationTarget:
    """Re-entry location used by the hard-reload fallback."""

    path: str
    step: int
    force: bool = True
    session_id: str | None = None

    def query_params(self) -> dict[str, str]:
        params = {QueryParams.STEP: str(self.step)}
        if self.force:
            params[QueryParams.FORCE] = "true"
        if self.session_id:
            params[QueryParams.GAME] = self.session_id
        return params

    def url(self) -> str:
        return f"{self.path}?{urlencode(self.query_params())}"


__all__ = ["DeepLink", "NavigationTarget"]
